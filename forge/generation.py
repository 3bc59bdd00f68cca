"""
Text-generation service boundary.

The orchestrator treats generation as an opaque call: system prompt and
user prompt in, text out. Usage counters are accumulated on the service
and forwarded upward without interpretation.
"""

import logging
import time
from typing import Dict, Optional, Protocol

import litellm

from .core.config import Settings, settings as default_settings
from .errors import GenerationError
from .llm_providers import ProviderConfig, get_provider_config
from .middleware.metrics import track_generation

logger = logging.getLogger(__name__)


class GenerationService(Protocol):
    """Anything that can turn a prompt pair into text."""

    usage: Dict[str, int]

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: Optional[int] = None,
        purpose: str = "task",
    ) -> str:
        ...


def _add_usage(totals: Dict[str, int], usage: object) -> None:
    if usage is None:
        return
    for key in ("prompt_tokens", "completion_tokens", "total_tokens"):
        value = getattr(usage, key, None)
        if value is None and isinstance(usage, dict):
            value = usage.get(key)
        if isinstance(value, int):
            totals[key] = totals.get(key, 0) + value


class LiteLLMGenerationService:
    """Generation service backed by ``litellm.acompletion``."""

    def __init__(
        self,
        provider_config: Optional[ProviderConfig] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or default_settings
        self.provider_config = provider_config or get_provider_config(settings=self.settings)
        self.usage: Dict[str, int] = {}

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: Optional[int] = None,
        purpose: str = "task",
    ) -> str:
        """
        Send one completion request.

        Args:
            system_prompt: Agent system prompt
            user_prompt: Task prompt
            max_tokens: Completion budget (defaults to TASK_MAX_TOKENS)
            purpose: Metrics label, "plan" or "task"

        Returns:
            The full response text (streamed responses are re-assembled)

        Raises:
            GenerationError: If the provider call fails
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        kwargs = {
            **self.provider_config.completion_kwargs(),
            "messages": messages,
            "max_tokens": max_tokens or self.settings.TASK_MAX_TOKENS,
            "temperature": self.settings.GENERATION_TEMPERATURE,
            "timeout": self.settings.GENERATION_TIMEOUT_SECONDS,
            "num_retries": 0,
        }
        model = self.provider_config.model_name
        provider = self.provider_config.provider.value
        start = time.time()

        try:
            if self.settings.GENERATION_STREAM:
                text = await self._generate_streaming(kwargs)
            else:
                response = await litellm.acompletion(**kwargs)
                text = response.choices[0].message.content or ""
                _add_usage(self.usage, getattr(response, "usage", None))
        except GenerationError:
            raise
        except Exception as e:
            logger.error(f"Generation call to {model} failed: {e}")
            raise GenerationError(f"Generation call failed: {e}", provider=provider) from e
        finally:
            track_generation(purpose, time.time() - start)

        logger.info(f"Generation ({purpose}) via {model} returned {len(text)} chars in {time.time() - start:.1f}s")
        return text

    async def _generate_streaming(self, kwargs: Dict) -> str:
        chunks = []
        stream = await litellm.acompletion(**kwargs, stream=True)
        async for chunk in stream:
            if not chunk.choices:
                _add_usage(self.usage, getattr(chunk, "usage", None))
                continue
            delta = chunk.choices[0].delta
            content = getattr(delta, "content", None)
            if content:
                chunks.append(content)
        return "".join(chunks)


def get_generation_service() -> GenerationService:
    """FastAPI dependency: a generation service for the configured provider."""
    return LiteLLMGenerationService()
