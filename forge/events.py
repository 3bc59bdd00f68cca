"""
Progress event channel.

The orchestrator is the single writer; the transport (an SSE response) is
the single consumer. Writes never block the orchestration: frames go into
a bounded asyncio queue with ``put_nowait``.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from .models import AgentEvent, AgentEventType, AgentRole, GeneratedFile


logger = logging.getLogger(__name__)


SSE_DONE = b"data: [DONE]\n\n"


@dataclass(frozen=True)
class StreamFrame:
    """One item on the channel: an ``event``, ``files``, ``text`` or ``error`` frame."""
    kind: str
    data: Dict[str, Any]


_CLOSED = object()
_PROGRESS_KINDS = ("event", "files")


class EventEmitter:
    """Append-only, single-writer notification sink for one request."""

    def __init__(self, maxsize: int = 1000):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.history: List[AgentEvent] = []
        self.dropped = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(
        self,
        event_type: AgentEventType,
        message: str,
        agent_role: Optional[AgentRole] = None,
        task_id: Optional[str] = None,
        payload: Any = None,
    ) -> AgentEvent:
        """Record an AgentEvent and hand it to the consumer without blocking."""
        event = AgentEvent(
            type=event_type,
            agent_role=agent_role,
            task_id=task_id,
            message=message,
            payload=payload,
        )
        self.history.append(event)
        logger.debug(f"[{agent_role.value if agent_role else '-'}] {event_type.value}: {message}")
        self._offer(StreamFrame(kind="event", data=event.to_wire()))
        return event

    def publish_files(self, files: Sequence[GeneratedFile]) -> None:
        """Send the cumulative generated-file list."""
        self._offer(StreamFrame(
            kind="files",
            data={"files": [f.model_dump(mode="json", by_alias=True) for f in files]},
        ))

    def publish_text(self, text: str) -> None:
        """Send the terminal summary text. Never dropped."""
        self._offer(StreamFrame(kind="text", data={"content": text}), terminal=True)

    def publish_error(self, message: str) -> None:
        self._offer(StreamFrame(kind="error", data={"message": message}), terminal=True)

    def _offer(self, frame: StreamFrame, terminal: bool = False) -> None:
        if self._closed:
            logger.warning(f"Dropping {frame.kind} frame emitted after close")
            return
        if terminal:
            self._put_evicting(frame)
            return
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Event queue full, dropping {frame.kind} frame (dropped={self.dropped})")

    def _put_evicting(self, item: object) -> None:
        """
        Queue ``item`` without waiting.

        When the queue is full the oldest progress frame (``event`` or
        ``files``) is evicted to make room; terminal frames already queued
        are kept.
        """
        if self._queue.full():
            pending = []
            while not self._queue.empty():
                pending.append(self._queue.get_nowait())
            victim = next(
                (i for i, queued in enumerate(pending)
                 if isinstance(queued, StreamFrame) and queued.kind in _PROGRESS_KINDS),
                0,
            )
            evicted = pending.pop(victim)
            self.dropped += 1
            logger.warning(
                f"Event queue full, evicting {getattr(evicted, 'kind', 'sentinel')} frame "
                f"(dropped={self.dropped})"
            )
            for queued in pending:
                self._queue.put_nowait(queued)
        self._queue.put_nowait(item)

    async def close(self) -> None:
        """
        Terminate the stream.

        Never waits on the consumer: if the queue is full, a progress frame
        is evicted so the sentinel still fits, even when nobody is draining.
        """
        if self._closed:
            return
        self._closed = True
        self._put_evicting(_CLOSED)

    async def frames(self) -> AsyncIterator[StreamFrame]:
        """Drain frames until the emitter is closed."""
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item


def format_sse(frame: StreamFrame) -> bytes:
    """Serialize a frame as a server-sent event."""
    data = json.dumps(frame.data)
    return f"event: {frame.kind}\n".encode() + f"data: {data}\n\n".encode()
