"""
Agent invoker: runs one planned task through its agent.

Execution-layer step that:
- Builds the task prompt from the agent's owned files and the project listing
- Makes one generation call with the agent's system prompt
- Extracts <file path="..."> blocks from the response into GeneratedFiles
"""

import logging
import posixpath
import re
from typing import Dict, List, Mapping, Optional

from ..core.config import Settings, settings as default_settings
from ..errors import GenerationError
from ..events import EventEmitter
from ..generation import GenerationService
from ..models import (
    AgentEventType,
    ExtractionResult,
    FileAction,
    GeneratedFile,
    PlannedTask,
    TaskResult,
)
from .registry import get_agent_descriptor, matches_any


logger = logging.getLogger(__name__)


NO_FILES_ERROR = "No files were generated. The AI response may not have used the correct format."

LANGUAGE_BY_EXTENSION = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "css": "css",
    "scss": "scss",
    "less": "less",
    "html": "html",
    "json": "json",
    "md": "markdown",
    "sql": "sql",
    "py": "python",
    "go": "go",
    "rs": "rust",
    "java": "java",
    "rb": "ruby",
    "php": "php",
    "sh": "shell",
    "bash": "shell",
    "yaml": "yaml",
    "yml": "yaml",
    "toml": "toml",
    "xml": "xml",
    "svg": "xml",
    "graphql": "graphql",
    "gql": "graphql",
    "prisma": "prisma",
    "env": "dotenv",
}

_OPEN_TAG = re.compile(r'<file\s+path\s*=\s*"([^"]*)"[^>]*>')
_CLOSE_TAG = "</file>"
_LEADING_BLANK_LINES = re.compile(r"\A(?:[ \t]*\r?\n)+")
_TRAILING_BLANK_LINES = re.compile(r"(?:\r?\n[ \t]*)+\Z")


def infer_language(path: str) -> str:
    """Language tag for a path, by extension. Unknown extensions are ``plaintext``."""
    name = posixpath.basename(path)
    if name == "Dockerfile":
        return "dockerfile"
    if name.startswith(".env"):
        return "dotenv"
    if "." not in name:
        return "plaintext"
    extension = name.rsplit(".", 1)[-1].lower()
    return LANGUAGE_BY_EXTENSION.get(extension, "plaintext")


def normalize_path(path: str) -> str:
    """
    Make a model-supplied path project-relative with forward slashes.

    Returns an empty string for paths that climb out of the project.
    """
    path = path.strip().replace("\\", "/")
    while path.startswith(("/", "./")):
        path = path[1:] if path.startswith("/") else path[2:]
    if ".." in path.split("/"):
        return ""
    return path


def trim_blank_lines(content: str) -> str:
    """Drop leading and trailing blank lines; keep everything in between as-is."""
    content = _LEADING_BLANK_LINES.sub("", content)
    return _TRAILING_BLANK_LINES.sub("", content)


def extract_files(content: str, known_paths) -> ExtractionResult:
    """
    Parse ``<file path="...">...</file>`` blocks out of a response.

    A block is skipped when it has no closing tag, when another opening tag
    comes before its closing tag, or when its path is empty or contains a
    ".." segment. Leading slashes are stripped. Repeated paths keep the last
    block's content.

    Args:
        content: Raw response text
        known_paths: Paths that exist before this task runs

    Returns:
        ExtractionResult; ``files`` is empty when nothing usable was found
    """
    extracted: Dict[str, GeneratedFile] = {}
    skipped = 0

    opens = list(_OPEN_TAG.finditer(content))
    for index, match in enumerate(opens):
        body_start = match.end()
        close_at = content.find(_CLOSE_TAG, body_start)
        next_open = opens[index + 1].start() if index + 1 < len(opens) else None

        if close_at == -1 or (next_open is not None and next_open < close_at):
            skipped += 1
            logger.debug(f"Skipping unterminated file block for '{match.group(1)}'")
            continue

        path = normalize_path(match.group(1))
        if not path:
            skipped += 1
            logger.debug(f"Skipping file block with unusable path '{match.group(1)}'")
            continue

        extracted[path] = GeneratedFile(
            path=path,
            content=trim_blank_lines(content[body_start:close_at]),
            language=infer_language(path),
            action=FileAction.modify if path in known_paths else FileAction.create,
        )

    return ExtractionResult(files=list(extracted.values()), skipped=skipped)


class AgentInvoker:
    """Runs tasks with a single generation call each."""

    def __init__(
        self,
        generator: GenerationService,
        emitter: EventEmitter,
        settings: Optional[Settings] = None,
    ):
        self.generator = generator
        self.emitter = emitter
        self.settings = settings or default_settings

    def build_task_prompt(self, task: PlannedTask, known_files: Mapping[str, str]) -> str:
        """
        Build the user prompt for a task.

        Files the agent owns are shown with (truncated) content; every other
        known path is listed without content.
        """
        descriptor = get_agent_descriptor(task.agent)
        relevant = [
            path for path in known_files
            if matches_any(path, descriptor.file_patterns)
        ][:self.settings.RELEVANT_FILE_LIMIT]

        files_context = ""
        if relevant:
            blocks = [
                f"### {path}\n```\n{known_files[path][:self.settings.RELEVANT_FILE_MAX_CHARS]}\n```"
                for path in relevant
            ]
            files_context = "\n\nExisting related files:\n" + "\n\n".join(blocks)

        shown = set(relevant)
        others = [path for path in known_files if path not in shown]
        listing_context = ""
        if others:
            listing_context = "\n\nOther project files:\n" + "\n".join(f"- {path}" for path in others)

        targets = ", ".join(task.target_files) if task.target_files else "(agent's choice)"

        return (
            f"Task: {task.description}\n\n"
            f"Expected files to create/modify: {targets}"
            f"{files_context}{listing_context}\n\n"
            'Generate the complete file contents. Use <file path="...">content</file> format '
            "for each file. Make sure to close each file tag properly."
        )

    async def run_task(self, task: PlannedTask, known_files: Mapping[str, str]) -> TaskResult:
        """
        Execute a task with its agent.

        Args:
            task: The planned task
            known_files: Path to content for existing and already generated files

        Returns:
            TaskResult; ``success`` is False on a service error or when no
            files could be extracted
        """
        descriptor = get_agent_descriptor(task.agent)
        prompt = self.build_task_prompt(task, known_files)

        self.emitter.emit(
            AgentEventType.agent_thinking,
            "Thinking...",
            agent_role=task.agent,
            task_id=task.task_id,
        )

        try:
            content = await self.generator.generate(
                descriptor.system_prompt,
                prompt,
                max_tokens=self.settings.TASK_MAX_TOKENS,
                purpose="task",
            )
        except GenerationError as e:
            logger.warning(f"{task.task_id} ({task.agent.value}) generation failed: {e}")
            return TaskResult(success=False, error=str(e))
        except Exception as e:
            logger.error(f"{task.task_id} ({task.agent.value}) unexpected generation error: {e}", exc_info=True)
            return TaskResult(success=False, error=str(e) or e.__class__.__name__)

        self.emitter.emit(
            AgentEventType.agent_writing,
            "Writing code...",
            agent_role=task.agent,
            task_id=task.task_id,
        )

        extraction = extract_files(content, known_files)
        if extraction.skipped:
            logger.warning(f"{task.task_id}: skipped {extraction.skipped} malformed file block(s)")

        if not extraction.files:
            return TaskResult(success=False, error=NO_FILES_ERROR)

        files: List[GeneratedFile] = extraction.files
        return TaskResult(
            success=True,
            files=files,
            message=f"Created {len(files)} file(s)",
        )
