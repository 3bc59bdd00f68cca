from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import ExistingFile, GeneratedFile, HistoryEntry, utcnow


@dataclass
class FileRecord:
    project_id: str
    path: str
    content: str
    language: Optional[str]
    updated_at: datetime


@dataclass
class MessageRecord:
    conversation_id: str
    role: str
    content: Any
    files: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)


class InMemoryProjectStore:
    """Project files and conversation messages, held in process memory."""

    def __init__(self):
        self._files: Dict[Tuple[str, str], FileRecord] = {}
        self._messages: Dict[str, List[MessageRecord]] = {}

    async def list_files(self, project_id: str) -> List[ExistingFile]:
        return [
            ExistingFile(path=rec.path, content=rec.content, language=rec.language)
            for (pid, _), rec in self._files.items()
            if pid == project_id
        ]

    async def upsert_files(self, project_id: str, files: Iterable[GeneratedFile]) -> int:
        """Store files keyed by (project, path). Returns the number written."""
        count = 0
        for file in files:
            self._files[(project_id, file.path)] = FileRecord(
                project_id=project_id,
                path=file.path,
                content=file.content,
                language=file.language,
                updated_at=utcnow(),
            )
            count += 1
        return count

    async def append_message(
        self,
        conversation_id: str,
        role: str,
        content: Any,
        files: Optional[List[str]] = None,
    ) -> MessageRecord:
        record = MessageRecord(
            conversation_id=conversation_id,
            role=role,
            content=content,
            files=list(files or []),
        )
        self._messages.setdefault(conversation_id, []).append(record)
        return record

    async def recent_messages(self, conversation_id: str, limit: int = 10) -> List[HistoryEntry]:
        """Most recent messages of a conversation, oldest first."""
        records = self._messages.get(conversation_id, [])[-limit:] if limit > 0 else []
        return [HistoryEntry(role=rec.role, content=rec.content) for rec in records]

    async def clear(self) -> None:
        self._files.clear()
        self._messages.clear()


store = InMemoryProjectStore()
