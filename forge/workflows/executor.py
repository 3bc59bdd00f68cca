"""Sequential, dependency-aware execution of an orchestrator plan."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Set

from ..agents.invoker import AgentInvoker
from ..agents.registry import get_agent_name
from ..events import EventEmitter
from ..files import FileRegistry
from ..middleware.metrics import track_file_merged, track_task_finished
from ..models import (
    AgentEventType,
    CompletedTask,
    ExistingFile,
    FileAction,
    GeneratedFile,
    OrchestratorPlan,
    PlannedTask,
    TaskResult,
    TaskStatus,
    utcnow,
)


logger = logging.getLogger(__name__)


CANCELLED_ERROR = "Generation cancelled by client"


@dataclass
class ExecutionOutcome:
    """What a plan run produced."""
    files: List[GeneratedFile] = field(default_factory=list)
    completed_tasks: List[CompletedTask] = field(default_factory=list)
    skipped_tasks: List[PlannedTask] = field(default_factory=list)
    cancelled: bool = False


class TaskExecutor:
    """
    Runs plan tasks one at a time, in listed order.

    A task runs only when every order in its dependencies belongs to a task
    that already completed successfully; otherwise it is skipped. Skipped
    tasks are never attempted and never retried.
    """

    def __init__(self, invoker: AgentInvoker, emitter: EventEmitter, registry: FileRegistry):
        self.invoker = invoker
        self.emitter = emitter
        self.registry = registry

    async def execute(
        self,
        plan: OrchestratorPlan,
        existing_files: Sequence[ExistingFile] = (),
    ) -> ExecutionOutcome:
        """
        Execute every task of the plan.

        Args:
            plan: The plan to run
            existing_files: Project files supplied with the request

        Returns:
            ExecutionOutcome with the registry snapshot and per-task records
        """
        outcome = ExecutionOutcome()
        succeeded: Set[int] = set()

        for task in plan.tasks:
            unmet = [dep for dep in task.dependencies if dep not in succeeded]
            if unmet:
                self._skip(task, unmet, outcome)
                continue

            record = await self._run(task, existing_files)
            outcome.completed_tasks.append(record)

            if record.status == TaskStatus.completed:
                succeeded.add(task.order)

            if record.result.cancelled:
                outcome.cancelled = True
                logger.info(f"Execution stopped at {task.task_id}: {CANCELLED_ERROR}")
                break

        outcome.files = self.registry.files()
        return outcome

    def _skip(self, task: PlannedTask, unmet: List[int], outcome: ExecutionOutcome) -> None:
        logger.info(f"Skipping {task.task_id}: unmet dependencies {unmet}")
        outcome.skipped_tasks.append(task)
        track_task_finished(task.agent.value, "skipped")
        self.emitter.emit(
            AgentEventType.task_skipped,
            f"Skipped: {task.description} (waiting on {', '.join(f'task-{d}' for d in unmet)})",
            agent_role=task.agent,
            task_id=task.task_id,
        )

    async def _run(self, task: PlannedTask, existing_files: Sequence[ExistingFile]) -> CompletedTask:
        agent_name = get_agent_name(task.agent)
        started_at = utcnow()

        self.emitter.emit(
            AgentEventType.task_started,
            task.description,
            agent_role=task.agent,
            task_id=task.task_id,
        )
        self.emitter.emit(
            AgentEventType.agent_started,
            f"{agent_name} is working on: {task.description}",
            agent_role=task.agent,
            task_id=task.task_id,
        )

        known_files = self.registry.known_files(existing_files)
        try:
            result = await self.invoker.run_task(task, known_files)
        except asyncio.CancelledError:
            result = TaskResult(success=False, error=CANCELLED_ERROR, cancelled=True)

        if result.success:
            self._merge(task, result.files)
            self.emitter.publish_files(self.registry.files())
            status = TaskStatus.completed
            message = f"Completed: {task.description}"
        else:
            status = TaskStatus.failed
            message = f"Failed: {result.error}"
            logger.warning(f"{task.task_id} ({task.agent.value}) failed: {result.error}")

        track_task_finished(task.agent.value, status.value)

        self.emitter.emit(
            AgentEventType.task_completed,
            message,
            agent_role=task.agent,
            task_id=task.task_id,
            payload={"success": result.success, "fileCount": len(result.files)},
        )
        self.emitter.emit(
            AgentEventType.agent_completed,
            f"{agent_name} finished",
            agent_role=task.agent,
            task_id=task.task_id,
        )

        return CompletedTask(
            task=task,
            status=status,
            result=result,
            started_at=started_at,
            ended_at=utcnow(),
        )

    def _merge(self, task: PlannedTask, files: Sequence[GeneratedFile]) -> None:
        """Upsert files into the registry, one file event per merged path."""
        for file in files:
            self.registry.upsert(file)
            track_file_merged(file.action.value)
            event_type = (
                AgentEventType.file_modified
                if file.action == FileAction.modify
                else AgentEventType.file_created
            )
            verb = "Modified" if file.action == FileAction.modify else "Created"
            self.emitter.emit(
                event_type,
                f"{verb} {file.path}",
                agent_role=task.agent,
                task_id=task.task_id,
                payload={"path": file.path, "language": file.language},
            )


def build_summary(
    plan: OrchestratorPlan,
    files: Sequence[GeneratedFile],
    completed: Sequence[CompletedTask],
    skipped: Sequence[PlannedTask] = (),
) -> str:
    """
    Render the final Markdown response for a run.

    Lists the plan summary, each attempted task with a check or cross, any
    skipped tasks, and the generated files split into created and modified.
    """
    lines = [f"## {plan.summary}", ""]

    if completed:
        lines.append("### Tasks")
        for record in completed:
            mark = "✓" if record.status == TaskStatus.completed else "✗"
            line = f"- [{mark}] {get_agent_name(record.task.agent)}: {record.task.description}"
            if record.status == TaskStatus.failed and record.result.error:
                line += f" ({record.result.error})"
            lines.append(line)
        lines.append("")

    if skipped:
        lines.append("### Skipped")
        for task in skipped:
            lines.append(f"- {get_agent_name(task.agent)}: {task.description}")
        lines.append("")

    created = [f for f in files if f.action == FileAction.create]
    modified = [f for f in files if f.action == FileAction.modify]
    if files:
        lines.append(f"### Generated {len(files)} file(s)")
        if created:
            lines.append("**Created:**")
            lines.extend(f"- `{f.path}`" for f in created)
        if modified:
            lines.append("**Modified:**")
            lines.extend(f"- `{f.path}`" for f in modified)
        lines.append("")

    succeeded = sum(1 for record in completed if record.status == TaskStatus.completed)
    total = len(plan.tasks)
    if total and succeeded == total:
        lines.append("All tasks completed successfully!")
    else:
        lines.append(f"{succeeded}/{total} tasks completed.")

    return "\n".join(lines)
