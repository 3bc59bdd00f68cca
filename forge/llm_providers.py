"""
LLM provider resolution for the generation service.

Maps the configured provider to a litellm model string plus the credentials
litellm needs for it:
- Anthropic (default)
- OpenRouter
- OpenAI
- Google Vertex AI
- Amazon Bedrock
- Microsoft Azure OpenAI
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"
    OPENAI = "openai"
    VERTEX = "vertex"
    BEDROCK = "bedrock"
    AZURE = "azure"


@dataclass
class ProviderConfig:
    """Resolved call parameters for one provider."""
    provider: LLMProvider
    model_name: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    extra_params: Dict[str, Any] = field(default_factory=dict)

    def completion_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``litellm.acompletion``."""
        kwargs: Dict[str, Any] = {"model": self.model_name, **self.extra_params}
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.base_url:
            kwargs["api_base"] = self.base_url
        return kwargs


DEFAULT_MODELS = {
    LLMProvider.ANTHROPIC: "claude-sonnet-4-20250514",
    LLMProvider.OPENROUTER: "anthropic/claude-sonnet-4",
    LLMProvider.OPENAI: "gpt-4o",
    LLMProvider.VERTEX: "gemini-1.5-pro",
    LLMProvider.BEDROCK: "anthropic.claude-3-5-sonnet-20240620-v1:0",
    LLMProvider.AZURE: "gpt-4o",
}


def get_provider_config(
    provider: Optional[str] = None,
    model_name: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> ProviderConfig:
    """
    Resolve the provider and model into litellm call parameters.

    Args:
        provider: Provider name (defaults to MODEL_PROVIDER setting)
        model_name: Model name (defaults to MODEL_NAME setting or provider default)
        settings: Settings to read credentials from

    Returns:
        ProviderConfig with a litellm-format model string
    """
    settings = settings or default_settings
    provider_str = (provider or settings.MODEL_PROVIDER or "anthropic").lower()

    try:
        llm_provider = LLMProvider(provider_str)
    except ValueError:
        logger.warning(f"Unknown provider '{provider_str}', falling back to anthropic")
        llm_provider = LLMProvider.ANTHROPIC

    final_model = model_name or settings.MODEL_NAME or DEFAULT_MODELS[llm_provider]

    if llm_provider == LLMProvider.ANTHROPIC:
        return ProviderConfig(
            provider=llm_provider,
            model_name=f"anthropic/{final_model}",
            api_key=settings.ANTHROPIC_API_KEY,
        )

    if llm_provider == LLMProvider.OPENROUTER:
        return ProviderConfig(
            provider=llm_provider,
            model_name=f"openrouter/{final_model}",
            api_key=settings.OPENROUTER_API_KEY,
            base_url=settings.OPENROUTER_BASE_URL,
        )

    if llm_provider == LLMProvider.OPENAI:
        return ProviderConfig(
            provider=llm_provider,
            model_name=final_model,
            api_key=settings.OPENAI_API_KEY,
        )

    if llm_provider == LLMProvider.VERTEX:
        return ProviderConfig(
            provider=llm_provider,
            model_name=f"vertex_ai/{final_model}",
            extra_params={
                "vertex_project": settings.GOOGLE_PROJECT_ID,
                "vertex_location": settings.GOOGLE_LOCATION,
            },
        )

    if llm_provider == LLMProvider.BEDROCK:
        return ProviderConfig(
            provider=llm_provider,
            model_name=f"bedrock/{final_model}",
            extra_params={"aws_region_name": settings.AWS_REGION},
        )

    # Azure uses the deployment name in the model field
    deployment = settings.AZURE_OPENAI_DEPLOYMENT or final_model
    return ProviderConfig(
        provider=llm_provider,
        model_name=f"azure/{deployment}",
        api_key=settings.AZURE_OPENAI_API_KEY,
        base_url=settings.AZURE_OPENAI_ENDPOINT,
        extra_params={"api_version": settings.AZURE_OPENAI_API_VERSION},
    )


def validate_provider_config(provider: str, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Check that the credentials a provider needs are configured.

    Returns:
        Dict with 'valid' bool and 'missing' list of missing config keys
    """
    settings = settings or default_settings
    provider_str = provider.lower()
    missing = []

    if provider_str == "anthropic":
        if not settings.ANTHROPIC_API_KEY:
            missing.append("ANTHROPIC_API_KEY")
    elif provider_str == "openrouter":
        if not settings.OPENROUTER_API_KEY:
            missing.append("OPENROUTER_API_KEY")
    elif provider_str == "openai":
        if not settings.OPENAI_API_KEY:
            missing.append("OPENAI_API_KEY")
    elif provider_str == "vertex":
        if not settings.GOOGLE_PROJECT_ID:
            missing.append("GOOGLE_PROJECT_ID")
    elif provider_str == "azure":
        if not settings.AZURE_OPENAI_API_KEY:
            missing.append("AZURE_OPENAI_API_KEY")
        if not settings.AZURE_OPENAI_ENDPOINT:
            missing.append("AZURE_OPENAI_ENDPOINT")
    # bedrock credentials can come from an IAM role

    return {
        "valid": len(missing) == 0,
        "missing": missing,
        "provider": provider_str,
    }


def list_available_providers(settings: Optional[Settings] = None) -> Dict[str, Dict[str, Any]]:
    """List all providers and their configuration status."""
    providers = {}
    for p in LLMProvider:
        validation = validate_provider_config(p.value, settings)
        providers[p.value] = {
            "configured": validation["valid"],
            "missing_config": validation["missing"],
            "default_model": DEFAULT_MODELS.get(p),
        }
    return providers
