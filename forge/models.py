"""Pydantic models for the multi-agent orchestration engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase wire names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Enums
class AgentRole(str, Enum):
    """Agent roles. Used as lookup keys into the agent registry."""
    orchestrator = "orchestrator"
    ui = "ui"
    backend = "backend"
    database = "database"
    devops = "devops"
    reviewer = "reviewer"


class FileAction(str, Enum):
    """Whether a generated file is new to the project."""
    create = "create"
    modify = "modify"


class TaskStatus(str, Enum):
    """Terminal status of an attempted task."""
    completed = "completed"
    failed = "failed"


class AgentEventType(str, Enum):
    """Progress notifications emitted while a request is processed."""
    agent_started = "agent_started"
    agent_thinking = "agent_thinking"
    agent_writing = "agent_writing"
    agent_completed = "agent_completed"
    agent_error = "agent_error"
    task_started = "task_started"
    task_completed = "task_completed"
    task_skipped = "task_skipped"
    file_created = "file_created"
    file_modified = "file_modified"


# Agent registry entries
@dataclass(frozen=True)
class AgentDescriptor:
    """Static description of an agent role."""
    role: AgentRole
    name: str
    description: str
    system_prompt: str
    capabilities: Tuple[str, ...] = ()
    file_patterns: Tuple[str, ...] = ()


# Plan models
class PlannedTask(CamelModel):
    """One unit of work assigned to a single agent."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    order: int = Field(..., ge=1)
    agent: AgentRole
    description: str
    target_files: List[str] = Field(default_factory=list)
    dependencies: List[int] = Field(default_factory=list)

    @property
    def task_id(self) -> str:
        return f"task-{self.order}"


class OrchestratorPlan(CamelModel):
    """Ordered, dependency-annotated task list produced once per request."""
    summary: str
    tasks: List[PlannedTask]
    estimated_file_count: int = 0


# File models
class ExistingFile(CamelModel):
    """A file that already belongs to the project before the request."""
    path: str
    content: str = ""
    language: Optional[str] = None


class GeneratedFile(CamelModel):
    """A file produced by an agent during the current run."""
    path: str
    content: str
    language: str
    action: FileAction


class HistoryEntry(CamelModel):
    """A previous conversation turn."""
    role: Literal["user", "assistant", "system"]
    content: Any = ""


# Task execution records
class TaskResult(CamelModel):
    """Outcome of a single agent invocation."""
    success: bool
    files: List[GeneratedFile] = Field(default_factory=list)
    error: Optional[str] = None
    message: Optional[str] = None
    cancelled: bool = False


class CompletedTask(CamelModel):
    """An attempted task and its result."""
    task: PlannedTask
    status: TaskStatus
    result: TaskResult
    started_at: datetime
    ended_at: datetime


# Events
class AgentEvent(CamelModel):
    """Transient wire notification. Never persisted."""
    type: AgentEventType
    agent_role: Optional[AgentRole] = None
    task_id: Optional[str] = None
    message: str
    payload: Optional[Any] = None
    timestamp: datetime = Field(default_factory=utcnow)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the event-frame payload: {type, agentRole?, taskId?, message, timestamp}."""
        data: Dict[str, Any] = {"type": self.type.value}
        if self.agent_role is not None:
            data["agentRole"] = self.agent_role.value
        if self.task_id is not None:
            data["taskId"] = self.task_id
        data["message"] = self.message
        data["timestamp"] = self.timestamp.isoformat()
        return data


# Request / response models
class ProcessRequest(CamelModel):
    """Input to a single orchestration run."""
    project_id: str = Field(..., min_length=1)
    conversation_id: Optional[str] = None
    user_message: str = Field(..., min_length=1)
    existing_files: Optional[List[ExistingFile]] = None
    recent_history: List[HistoryEntry] = Field(default_factory=list)


class ProcessResult(CamelModel):
    """Output of a single orchestration run."""
    plan: OrchestratorPlan
    files: List[GeneratedFile]
    response: str
    completed_tasks: List[CompletedTask] = Field(default_factory=list)
    skipped_tasks: List[PlannedTask] = Field(default_factory=list)
    usage: Dict[str, int] = Field(default_factory=dict)


class AgentInfo(CamelModel):
    """Public view of an agent registry entry."""
    role: AgentRole
    name: str
    description: str
    capabilities: List[str]
    file_patterns: List[str]


@dataclass
class ExtractionResult:
    """Files parsed from a generation response. Empty ``files`` is a valid outcome."""
    files: List[GeneratedFile] = field(default_factory=list)
    skipped: int = 0
