"""
Multi-agent orchestrator.

Flow for one request:
1. Planner turns the user message into an ordered task plan (or the
   keyword fallback plan when planning fails)
2. Executor runs the tasks one by one through their agents
3. Generated files are merged into a per-request file registry
4. A Markdown summary is built from the results
"""

import logging
from typing import Optional

from ..agents.invoker import AgentInvoker
from ..agents.planner import PlanGenerator, create_fallback_plan
from ..core.config import Settings, settings as default_settings
from ..errors import PlanGenerationError
from ..events import EventEmitter
from ..files import FileRegistry
from ..generation import GenerationService
from ..middleware.metrics import track_plan_created
from ..models import AgentEventType, AgentRole, ProcessRequest, ProcessResult
from .executor import TaskExecutor, build_summary


logger = logging.getLogger(__name__)


class MultiAgentOrchestrator:
    """
    Coordinates planning and execution for a single request.

    One instance serves one ``process_request`` call: the file registry,
    task records and emitter are never shared between requests.
    """

    def __init__(
        self,
        generator: GenerationService,
        emitter: Optional[EventEmitter] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or default_settings
        self.generator = generator
        self.emitter = emitter or EventEmitter(maxsize=self.settings.EVENT_QUEUE_SIZE)
        self.planner = PlanGenerator(generator, self.settings)
        self.registry = FileRegistry()
        self.invoker = AgentInvoker(generator, self.emitter, self.settings)
        self.executor = TaskExecutor(self.invoker, self.emitter, self.registry)

    async def process_request(self, request: ProcessRequest) -> ProcessResult:
        """
        Plan and execute a user request.

        Args:
            request: The user message with project context

        Returns:
            ProcessResult with the plan, generated files and summary text
        """
        existing_files = request.existing_files or []
        logger.info(
            f"Processing request for project {request.project_id} "
            f"({len(existing_files)} existing file(s))"
        )

        self.emitter.emit(
            AgentEventType.agent_started,
            "Analyzing your request...",
            agent_role=AgentRole.orchestrator,
        )

        try:
            plan = await self.planner.create_plan(
                request.user_message,
                existing_files,
                request.recent_history,
            )
            track_plan_created("model")
        except PlanGenerationError as e:
            logger.warning(f"Planning failed, using fallback plan: {e}")
            self.emitter.emit(
                AgentEventType.agent_error,
                f"Planning failed: {e}. Using simplified approach.",
                agent_role=AgentRole.orchestrator,
            )
            plan = create_fallback_plan(request.user_message)
            track_plan_created("fallback")

        self.emitter.emit(
            AgentEventType.agent_completed,
            f"Created plan with {len(plan.tasks)} task(s)",
            agent_role=AgentRole.orchestrator,
            payload=plan.model_dump(mode="json", by_alias=True),
        )

        outcome = await self.executor.execute(plan, existing_files)
        response = build_summary(plan, outcome.files, outcome.completed_tasks, outcome.skipped_tasks)

        logger.info(
            f"Request for project {request.project_id} finished: "
            f"{len(outcome.files)} file(s), {len(outcome.completed_tasks)} attempted, "
            f"{len(outcome.skipped_tasks)} skipped"
        )

        return ProcessResult(
            plan=plan,
            files=outcome.files,
            response=response,
            completed_tasks=outcome.completed_tasks,
            skipped_tasks=outcome.skipped_tasks,
            usage=dict(getattr(self.generator, "usage", {}) or {}),
        )
