"""Plan execution and request orchestration."""

from .executor import ExecutionOutcome, TaskExecutor, build_summary
from .orchestrator import MultiAgentOrchestrator


__all__ = [
    "ExecutionOutcome",
    "TaskExecutor",
    "build_summary",
    "MultiAgentOrchestrator",
]
