"""Chat endpoints: run the orchestrator for a user message."""

import asyncio
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import ORJSONResponse, StreamingResponse

from ..core.config import settings
from ..events import SSE_DONE, EventEmitter, format_sse
from ..generation import GenerationService, get_generation_service
from ..models import ProcessRequest, ProcessResult
from ..storage import store
from ..workflows.orchestrator import MultiAgentOrchestrator


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/chat", tags=["chat"])


async def prepare_request(request: ProcessRequest) -> ProcessRequest:
    """Fill omitted project files and history from the project store."""
    update = {}
    if request.existing_files is None:
        update["existing_files"] = await store.list_files(request.project_id)
    if not request.recent_history and request.conversation_id:
        update["recent_history"] = await store.recent_messages(
            request.conversation_id, settings.PLAN_HISTORY_WINDOW
        )
    return request.model_copy(update=update) if update else request


async def persist_result(request: ProcessRequest, result: ProcessResult) -> None:
    """Store generated files and the user/assistant message pair."""
    if result.files:
        await store.upsert_files(request.project_id, result.files)
    if request.conversation_id:
        await store.append_message(request.conversation_id, "user", request.user_message)
        await store.append_message(
            request.conversation_id,
            "assistant",
            result.response,
            files=[f.path for f in result.files],
        )


async def chat_stream(request: ProcessRequest, generator: GenerationService) -> AsyncIterator[bytes]:
    """
    Stream orchestration progress as server-sent events.

    The orchestration runs in its own task and writes into the emitter;
    this generator only drains it. If the client goes away the generator
    is closed and the orchestration task is cancelled.
    """
    emitter = EventEmitter(maxsize=settings.EVENT_QUEUE_SIZE)
    orchestrator = MultiAgentOrchestrator(generator, emitter, settings)

    async def run() -> None:
        try:
            result = await orchestrator.process_request(request)
            emitter.publish_text(result.response)
            await persist_result(request, result)
        except Exception as e:
            logger.error(f"Chat run for project {request.project_id} failed: {e}", exc_info=True)
            emitter.publish_error(str(e) or e.__class__.__name__)
        finally:
            await emitter.close()

    task = asyncio.create_task(run())
    try:
        async for frame in emitter.frames():
            yield format_sse(frame)
        yield SSE_DONE
    finally:
        if not task.done():
            logger.info(f"Client disconnected, cancelling run for project {request.project_id}")
            task.cancel()


@router.post("")
async def chat(
    request: ProcessRequest,
    generator: GenerationService = Depends(get_generation_service),
):
    """Run a request and stream progress events (SSE)."""
    request = await prepare_request(request)
    headers = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}
    return StreamingResponse(
        chat_stream(request, generator),
        media_type="text/event-stream",
        headers=headers,
    )


@router.post("/sync", response_model=ProcessResult, response_class=ORJSONResponse)
async def chat_sync(
    request: ProcessRequest,
    generator: GenerationService = Depends(get_generation_service),
):
    """Run a request to completion and return the full result."""
    request = await prepare_request(request)
    orchestrator = MultiAgentOrchestrator(generator, settings=settings)
    result = await orchestrator.process_request(request)
    await persist_result(request, result)
    return result
