"""
Tests for provider resolution and the litellm-backed generation service.
"""

from types import SimpleNamespace

import pytest

from forge.core.config import Settings
from forge.errors import GenerationError
from forge.generation import LiteLLMGenerationService
from forge.llm_providers import (
    DEFAULT_MODELS,
    LLMProvider,
    get_provider_config,
    list_available_providers,
    validate_provider_config,
)


def make_settings(**overrides):
    return Settings(_env_file=None, **overrides)


class TestProviderConfig:
    """Test mapping providers to litellm model strings."""

    def test_default_is_anthropic(self):
        config = get_provider_config(settings=make_settings(ANTHROPIC_API_KEY="sk-test"))
        assert config.provider == LLMProvider.ANTHROPIC
        assert config.model_name == f"anthropic/{DEFAULT_MODELS[LLMProvider.ANTHROPIC]}"
        assert config.completion_kwargs()["api_key"] == "sk-test"

    def test_model_override(self):
        config = get_provider_config("openrouter", "meta/llama-3", settings=make_settings())
        assert config.model_name == "openrouter/meta/llama-3"
        assert config.completion_kwargs()["api_base"] == "https://openrouter.ai/api/v1"

    def test_vertex_extra_params(self):
        config = get_provider_config("vertex", settings=make_settings(GOOGLE_PROJECT_ID="proj"))
        kwargs = config.completion_kwargs()
        assert kwargs["model"].startswith("vertex_ai/")
        assert kwargs["vertex_project"] == "proj"

    def test_azure_uses_deployment(self):
        config = get_provider_config("azure", settings=make_settings(AZURE_OPENAI_DEPLOYMENT="prod-gpt"))
        assert config.model_name == "azure/prod-gpt"
        assert "api_version" in config.completion_kwargs()

    def test_unknown_provider_falls_back(self):
        config = get_provider_config("nonexistent", settings=make_settings())
        assert config.provider == LLMProvider.ANTHROPIC

    def test_validation_reports_missing_keys(self):
        result = validate_provider_config("azure", make_settings())
        assert result["valid"] is False
        assert set(result["missing"]) == {"AZURE_OPENAI_API_KEY", "AZURE_OPENAI_ENDPOINT"}

    def test_bedrock_needs_no_keys(self):
        assert validate_provider_config("bedrock", make_settings())["valid"] is True

    def test_list_available_providers(self):
        providers = list_available_providers(make_settings(OPENAI_API_KEY="sk"))
        assert set(providers) == {p.value for p in LLMProvider}
        assert providers["openai"]["configured"] is True


class TestLiteLLMGenerationService:
    """Test the generation service with litellm patched out."""

    @pytest.mark.asyncio
    async def test_single_call_without_retries(self, monkeypatch):
        captured = {}

        async def fake_acompletion(**kwargs):
            captured.update(kwargs)
            return SimpleNamespace(
                choices=[SimpleNamespace(message=SimpleNamespace(content="hello"))],
                usage=SimpleNamespace(prompt_tokens=3, completion_tokens=2, total_tokens=5),
            )

        monkeypatch.setattr("forge.generation.litellm.acompletion", fake_acompletion)
        service = LiteLLMGenerationService(settings=make_settings(ANTHROPIC_API_KEY="sk"))

        text = await service.generate("system", "user", max_tokens=100, purpose="plan")

        assert text == "hello"
        assert captured["num_retries"] == 0
        assert captured["max_tokens"] == 100
        assert captured["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]
        assert service.usage == {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5}

    @pytest.mark.asyncio
    async def test_provider_error_is_wrapped(self, monkeypatch):
        async def failing(**kwargs):
            raise ConnectionError("connection reset")

        monkeypatch.setattr("forge.generation.litellm.acompletion", failing)
        service = LiteLLMGenerationService(settings=make_settings())

        with pytest.raises(GenerationError, match="connection reset") as exc_info:
            await service.generate("system", "user")
        assert exc_info.value.provider == "anthropic"

    @pytest.mark.asyncio
    async def test_streaming_is_reassembled(self, monkeypatch):
        chunks = [
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content="<file "))]),
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=None))]),
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content='path="a.ts">'))]),
            SimpleNamespace(choices=[], usage={"total_tokens": 7}),
        ]

        async def stream():
            for chunk in chunks:
                yield chunk

        async def fake_acompletion(**kwargs):
            assert kwargs["stream"] is True
            return stream()

        monkeypatch.setattr("forge.generation.litellm.acompletion", fake_acompletion)
        service = LiteLLMGenerationService(settings=make_settings(GENERATION_STREAM=True))

        assert await service.generate("s", "u") == '<file path="a.ts">'
        assert service.usage == {"total_tokens": 7}
