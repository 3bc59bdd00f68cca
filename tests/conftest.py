import json
from typing import Any, Dict, List, Optional, Sequence, Union

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from forge.core.config import Settings
from forge.errors import GenerationError
from forge.generation import get_generation_service
from forge.main import app
from forge.storage import store


ScriptItem = Union[str, BaseException]


class FakeGenerationService:
    """Scripted generation service: returns (or raises) one item per call, in order."""

    def __init__(self, responses: Sequence[ScriptItem] = ()):
        self.responses: List[ScriptItem] = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.usage: Dict[str, int] = {}

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: Optional[int] = None,
        purpose: str = "task",
    ) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "max_tokens": max_tokens,
            "purpose": purpose,
        })
        if not self.responses:
            raise GenerationError("No scripted response left")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        self.usage["total_tokens"] = self.usage.get("total_tokens", 0) + len(item)
        return item


def plan_response(tasks: List[Dict[str, Any]], summary: str = "Test plan") -> str:
    """A planning response with the plan in a fenced json block."""
    body = json.dumps({"summary": summary, "tasks": tasks}, indent=2)
    return f"Here is the plan.\n\n```json\n{body}\n```\n"


def file_block(path: str, content: str) -> str:
    return f'<file path="{path}">\n{content}\n</file>'


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, ANTHROPIC_API_KEY=None)


@pytest.fixture
def fake_generator():
    """Factory for scripted generation services."""
    def _make(*responses: ScriptItem) -> FakeGenerationService:
        return FakeGenerationService(responses)
    return _make


@pytest_asyncio.fixture
async def clean_store():
    await store.clear()
    yield store
    await store.clear()


@pytest_asyncio.fixture
async def api_client(clean_store):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.pop(get_generation_service, None)


@pytest.fixture
def use_generator():
    """Route API requests to the given generation service."""
    def _use(generator: FakeGenerationService) -> FakeGenerationService:
        app.dependency_overrides[get_generation_service] = lambda: generator
        return generator
    return _use
