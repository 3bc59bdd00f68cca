"""
Planner: turns a free-form request into an ordered, dependency-aware plan.

Supervisory step that:
- Sends one planning call with the orchestrator system prompt
- Extracts the JSON plan from the free-text response
- Normalizes tasks (order, agent role, files, dependencies)
- Builds a keyword-based fallback plan when the response is unusable
"""

import json
import logging
import re
from bisect import bisect_left
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.config import Settings, settings as default_settings
from ..errors import PlanGenerationError, PlanParseError
from ..generation import GenerationService
from ..models import AgentRole, ExistingFile, HistoryEntry, OrchestratorPlan, PlannedTask
from .registry import get_agent_descriptor


logger = logging.getLogger(__name__)


DEFAULT_PLAN_SUMMARY = "Building the requested feature"

_ROLE_SYNONYMS = {
    "ui": AgentRole.ui,
    "ui_engineer": AgentRole.ui,
    "frontend": AgentRole.ui,
    "frontend_engineer": AgentRole.ui,
    "backend": AgentRole.backend,
    "backend_engineer": AgentRole.backend,
    "api": AgentRole.backend,
    "server": AgentRole.backend,
    "database": AgentRole.database,
    "database_architect": AgentRole.database,
    "db": AgentRole.database,
    "devops": AgentRole.devops,
    "devops_engineer": AgentRole.devops,
    "config": AgentRole.devops,
    "reviewer": AgentRole.reviewer,
    "code_reviewer": AgentRole.reviewer,
    "orchestrator": AgentRole.orchestrator,
}

_FENCED_JSON = re.compile(r"```json[ \t]*\r?\n?([\s\S]*?)\r?\n?```", re.IGNORECASE)
_TASKS_KEY = re.compile(r'"tasks"')

_HISTORY_LABELS = {"user": "User", "assistant": "Assistant", "system": "System"}

_DATABASE_KEYWORDS = ("database", "schema", "table", "sql")
_BACKEND_KEYWORDS = ("api", "endpoint", "backend", "server")


def normalize_agent_role(role: Any) -> AgentRole:
    """Map a model-supplied agent name onto a role; unknown names become ``ui``."""
    if not isinstance(role, str):
        return AgentRole.ui
    key = role.strip().lower().replace("-", "_").replace(" ", "_")
    return _ROLE_SYNONYMS.get(key, AgentRole.ui)


def build_planning_prompt(
    user_message: str,
    existing_files: Sequence[ExistingFile],
    recent_history: Sequence[HistoryEntry],
    settings: Optional[Settings] = None,
) -> str:
    """
    Build the user prompt for the planning call.

    Only file paths are included, never contents. History is limited to the
    last few turns, each truncated.
    """
    settings = settings or default_settings

    if existing_files:
        listing = "\n".join(f"- {f.path}" for f in existing_files)
        files_context = f"\n\nExisting project files:\n{listing}"
    else:
        files_context = "\n\nThis is a new project with no existing files."

    history_context = ""
    window = list(recent_history)[-settings.PLAN_HISTORY_WINDOW:] if settings.PLAN_HISTORY_WINDOW > 0 else []
    if window:
        lines = []
        for entry in window:
            speaker = _HISTORY_LABELS[entry.role]
            if isinstance(entry.content, str):
                content = entry.content[:settings.PLAN_HISTORY_ENTRY_CHARS]
            else:
                content = "Code generated"
            lines.append(f"{speaker}: {content}")
        history_context = "\n\nPrevious conversation:\n" + "\n".join(lines)

    return (
        f"User request: {user_message}{files_context}{history_context}\n\n"
        "Create a detailed implementation plan as JSON. "
        "Include task dependencies if tasks need to be executed in order."
    )


def _balanced_objects(text: str) -> List[Tuple[int, int]]:
    """
    Spans of every brace-balanced object in ``text``, outermost first.

    One pass with a stack of open braces. Quotes only open JSON strings
    inside an object, so stray quotes in surrounding prose are ignored.
    Braces that never close produce no span.
    """
    spans: List[Tuple[int, int]] = []
    stack: List[int] = []
    in_string = False
    escaped = False
    for i, char in enumerate(text):
        if not stack:
            if char == "{":
                stack.append(i)
            continue
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            stack.append(i)
        elif char == "}":
            spans.append((stack.pop(), i + 1))
    spans.sort()
    return spans


def extract_plan_json(text: str) -> Optional[str]:
    """
    Locate the structured plan inside a free-text response.

    Tries a fenced ``json`` block first, then the first brace-delimited
    object that mentions a "tasks" key.

    Returns:
        The JSON text, or None when nothing plan-like is present
    """
    fenced = _FENCED_JSON.search(text)
    if fenced:
        return fenced.group(1).strip()

    markers = [m.start() for m in _TASKS_KEY.finditer(text)]
    if not markers:
        return None

    for start, end in _balanced_objects(text):
        index = bisect_left(markers, start)
        if index < len(markers) and markers[index] + len(_TASKS_KEY.pattern) <= end:
            return text[start:end]
    return None


def validate_plan_data(data: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate that decoded plan data has the required structure.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, "Plan must be a JSON object"

    tasks = data.get("tasks")
    if not isinstance(tasks, list):
        return False, "Plan missing 'tasks' list"

    if not tasks:
        return False, "Plan contains no tasks"

    for i, task in enumerate(tasks):
        if not isinstance(task, dict):
            return False, f"Task {i + 1} must be an object"

    return True, None


def _coerce_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()]


def normalize_tasks(raw_tasks: List[Dict[str, Any]]) -> List[PlannedTask]:
    """Turn raw task dictionaries into PlannedTasks, keeping their listed order."""
    tasks: List[PlannedTask] = []
    used_orders = set()

    for position, raw in enumerate(raw_tasks, start=1):
        order = _coerce_int(raw.get("order"))
        if order is None or order < 1 or order in used_orders:
            order = position
            while order in used_orders:
                order += 1
        used_orders.add(order)

        files = raw.get("files")
        if files is None:
            files = raw.get("targetFiles", raw.get("target_files"))

        dependencies = [
            dep for dep in (_coerce_int(d) for d in (raw.get("dependencies") or []))
            if dep is not None
        ] if isinstance(raw.get("dependencies"), list) else []

        description = raw.get("description") or raw.get("title") or f"Task {order}"

        tasks.append(PlannedTask(
            order=order,
            agent=normalize_agent_role(raw.get("agent")),
            description=str(description),
            target_files=_string_list(files),
            dependencies=dependencies,
        ))

    return tasks


def estimate_file_count(tasks: Sequence[PlannedTask]) -> int:
    """Each task counts its target files, or one file when it lists none."""
    return sum(len(task.target_files) or 1 for task in tasks)


def parse_plan(text: str) -> OrchestratorPlan:
    """
    Parse a planning response into an OrchestratorPlan.

    Raises:
        PlanParseError: If no plan is found or it cannot be decoded
    """
    json_text = extract_plan_json(text)
    if json_text is None:
        raise PlanParseError("No valid plan found in AI response")

    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise PlanParseError(f"Invalid plan format from AI: {e}") from e

    is_valid, error = validate_plan_data(data)
    if not is_valid:
        raise PlanParseError(f"Invalid plan format from AI: {error}")

    tasks = normalize_tasks(data["tasks"])
    summary = data.get("summary") or data.get("understanding") or DEFAULT_PLAN_SUMMARY

    return OrchestratorPlan(
        summary=str(summary),
        tasks=tasks,
        estimated_file_count=estimate_file_count(tasks),
    )


def create_fallback_plan(user_message: str) -> OrchestratorPlan:
    """
    Build a plan from keywords in the request.

    Emits a database task and a backend task when the request mentions them,
    then always appends a UI task. Each task depends on the one before it.
    """
    message = user_message.lower()
    excerpt = user_message[:100]
    tasks: List[PlannedTask] = []

    def previous() -> List[int]:
        return [tasks[-1].order] if tasks else []

    if any(keyword in message for keyword in _DATABASE_KEYWORDS):
        tasks.append(PlannedTask(
            order=len(tasks) + 1,
            agent=AgentRole.database,
            description=f"Create database schema for: {excerpt}",
            target_files=["src/db/schema.sql", "src/types/database.ts"],
            dependencies=[],
        ))

    if any(keyword in message for keyword in _BACKEND_KEYWORDS):
        tasks.append(PlannedTask(
            order=len(tasks) + 1,
            agent=AgentRole.backend,
            description=f"Create API endpoints for: {excerpt}",
            target_files=["src/app/api/route.ts"],
            dependencies=previous(),
        ))

    tasks.append(PlannedTask(
        order=len(tasks) + 1,
        agent=AgentRole.ui,
        description=f"Create UI components for: {excerpt}",
        target_files=["src/App.tsx", "src/components/Main.tsx"],
        dependencies=previous(),
    ))

    return OrchestratorPlan(
        summary=f"Building feature: {excerpt}...",
        tasks=tasks,
        estimated_file_count=estimate_file_count(tasks),
    )


class PlanGenerator:
    """Creates plans with a single call to the generation service."""

    def __init__(self, generator: GenerationService, settings: Optional[Settings] = None):
        self.generator = generator
        self.settings = settings or default_settings

    async def create_plan(
        self,
        user_message: str,
        existing_files: Sequence[ExistingFile] = (),
        recent_history: Sequence[HistoryEntry] = (),
    ) -> OrchestratorPlan:
        """
        Ask the orchestrator agent for a plan.

        Args:
            user_message: The user's request
            existing_files: Files already in the project (paths only are sent)
            recent_history: Previous conversation turns

        Returns:
            The normalized plan

        Raises:
            PlanGenerationError: If the call fails or the response has no usable plan
        """
        descriptor = get_agent_descriptor(AgentRole.orchestrator)
        prompt = build_planning_prompt(user_message, existing_files, recent_history, self.settings)

        try:
            content = await self.generator.generate(
                descriptor.system_prompt,
                prompt,
                max_tokens=self.settings.PLAN_MAX_TOKENS,
                purpose="plan",
            )
        except Exception as e:
            raise PlanGenerationError(f"API call failed: {e}") from e

        plan = parse_plan(content)
        logger.info(f"Planner produced {len(plan.tasks)} task(s), ~{plan.estimated_file_count} file(s)")
        return plan
