"""
Tests for the agent invoker: prompt building, file extraction and task runs.
"""

import pytest

from forge.agents.invoker import NO_FILES_ERROR, AgentInvoker, extract_files, infer_language
from forge.errors import GenerationError
from forge.events import EventEmitter
from forge.models import AgentEventType, AgentRole, FileAction, PlannedTask

from .conftest import file_block


def ui_task(**overrides):
    data = {
        "order": 1,
        "agent": AgentRole.ui,
        "description": "Build the navigation bar",
        "target_files": ["src/components/Nav.tsx"],
    }
    data.update(overrides)
    return PlannedTask(**data)


class TestExtractFiles:
    """Test parsing <file path> blocks."""

    def test_extracts_multiple_files(self):
        text = "Here you go:\n" + file_block("src/App.tsx", "export default App;") + "\n" + \
            file_block("src/index.css", "body {}")
        result = extract_files(text, set())

        assert [f.path for f in result.files] == ["src/App.tsx", "src/index.css"]
        assert result.files[0].content == "export default App;"
        assert result.skipped == 0

    def test_only_outer_blank_lines_are_trimmed(self):
        text = '<file path="a.ts">\n\n  const a = 1;\n\n  const b = 2;\n\n</file>'
        [file] = extract_files(text, set()).files
        assert file.content == "  const a = 1;\n\n  const b = 2;"

    def test_action_depends_on_known_paths(self):
        text = file_block("src/App.tsx", "new") + file_block("src/New.tsx", "x")
        result = extract_files(text, {"src/App.tsx": "old"})
        actions = {f.path: f.action for f in result.files}
        assert actions == {"src/App.tsx": FileAction.modify, "src/New.tsx": FileAction.create}

    def test_tsx_is_typescript(self):
        [file] = extract_files(file_block("src/components/Card.tsx", "x"), set()).files
        assert file.language == "typescript"

    def test_unterminated_block_is_skipped(self):
        result = extract_files('<file path="a.ts">const a = 1;', set())
        assert result.files == []
        assert result.skipped == 1

    def test_block_interrupted_by_another_open_tag_is_skipped(self):
        text = '<file path="a.ts">partial\n<file path="b.ts">complete</file>'
        result = extract_files(text, set())
        assert [f.path for f in result.files] == ["b.ts"]
        assert result.files[0].content == "complete"
        assert result.skipped == 1

    def test_empty_path_is_skipped(self):
        result = extract_files('<file path="">x</file>', set())
        assert result.files == []
        assert result.skipped == 1

    def test_duplicate_paths_collapse_to_last(self):
        text = file_block("a.ts", "first") + file_block("b.ts", "b") + file_block("a.ts", "second")
        result = extract_files(text, set())
        assert [f.path for f in result.files] == ["a.ts", "b.ts"]
        assert result.files[0].content == "second"

    def test_paths_are_normalized(self):
        text = '<file path=".\\src\\lib\\util.ts">x</file>'
        [file] = extract_files(text, set()).files
        assert file.path == "src/lib/util.ts"

    def test_absolute_path_becomes_relative(self):
        [file] = extract_files('<file path="/src/App.tsx">x</file>', set()).files
        assert file.path == "src/App.tsx"

    @pytest.mark.parametrize("path", [
        "../../outside.ts",
        "/../etc/passwd",
        "src/../../secrets.env",
        "..",
        "/",
    ])
    def test_paths_escaping_the_project_are_skipped(self, path):
        result = extract_files(f'<file path="{path}">x</file>' + file_block("src/ok.ts", "ok"), set())
        assert [f.path for f in result.files] == ["src/ok.ts"]
        assert result.skipped == 1

    def test_dots_inside_names_are_allowed(self):
        [file] = extract_files('<file path="src/..hidden/a..b.ts">x</file>', set()).files
        assert file.path == "src/..hidden/a..b.ts"

    def test_extra_attributes_are_allowed(self):
        [file] = extract_files('<file path="a.py" mode="full">print(1)</file>', set()).files
        assert file.path == "a.py"
        assert file.language == "python"

    def test_no_blocks(self):
        result = extract_files("I would create a component called Nav.", set())
        assert result.files == []
        assert result.skipped == 0


class TestInferLanguage:
    """Test language detection by extension."""

    @pytest.mark.parametrize("path,language", [
        ("src/App.tsx", "typescript"),
        ("src/lib/api.ts", "typescript"),
        ("src/main.jsx", "javascript"),
        ("styles/App.CSS", "css"),
        ("supabase/schema.sql", "sql"),
        ("README.md", "markdown"),
        ("config.yml", "yaml"),
        ("icon.svg", "xml"),
        ("Dockerfile", "dockerfile"),
        (".env.local", "dotenv"),
        ("LICENSE", "plaintext"),
        ("data.unknown", "plaintext"),
    ])
    def test_languages(self, path, language):
        assert infer_language(path) == language


class TestTaskPrompt:
    """Test the per-task user prompt."""

    def test_owned_files_with_content_others_listed(self, fake_generator, test_settings):
        invoker = AgentInvoker(fake_generator(), EventEmitter(), test_settings)
        known = {
            "src/components/Header.tsx": "export const Header = () => null;",
            "src/app/api/route.ts": "export async function GET() {}",
        }
        prompt = invoker.build_task_prompt(ui_task(), known)

        assert prompt.startswith("Task: Build the navigation bar")
        assert "Expected files to create/modify: src/components/Nav.tsx" in prompt
        assert "export const Header = () => null;" in prompt
        assert "- src/app/api/route.ts" in prompt
        assert "export async function GET() {}" not in prompt
        assert '<file path="...">' in prompt

    def test_owned_files_are_limited_and_truncated(self, fake_generator, test_settings):
        invoker = AgentInvoker(fake_generator(), EventEmitter(), test_settings)
        known = {f"src/components/C{i}.tsx": "z" * 3000 for i in range(7)}
        prompt = invoker.build_task_prompt(ui_task(), known)

        assert prompt.count("### src/components/") == test_settings.RELEVANT_FILE_LIMIT
        assert "z" * 2000 in prompt
        assert "z" * 2001 not in prompt
        assert "- src/components/C5.tsx" in prompt
        assert "- src/components/C6.tsx" in prompt


class TestRunTask:
    """Test running a task through its agent."""

    @pytest.mark.asyncio
    async def test_successful_task(self, fake_generator, test_settings):
        generator = fake_generator(file_block("src/components/Nav.tsx", "export const Nav = () => null;"))
        emitter = EventEmitter()
        invoker = AgentInvoker(generator, emitter, test_settings)

        result = await invoker.run_task(ui_task(), {})

        assert result.success is True
        assert [f.path for f in result.files] == ["src/components/Nav.tsx"]
        assert result.files[0].action == FileAction.create
        assert [e.type for e in emitter.history] == [AgentEventType.agent_thinking, AgentEventType.agent_writing]
        assert all(e.task_id == "task-1" for e in emitter.history)

        call = generator.calls[0]
        assert call["purpose"] == "task"
        assert call["max_tokens"] == test_settings.TASK_MAX_TOKENS
        assert "UI Engineer" in call["system_prompt"]

    @pytest.mark.asyncio
    async def test_no_files_is_a_failure(self, fake_generator, test_settings):
        invoker = AgentInvoker(fake_generator("Here is a description of the code."), EventEmitter(), test_settings)
        result = await invoker.run_task(ui_task(), {})

        assert result.success is False
        assert result.files == []
        assert result.error == NO_FILES_ERROR

    @pytest.mark.asyncio
    async def test_generation_error_is_a_failure(self, fake_generator, test_settings):
        emitter = EventEmitter()
        invoker = AgentInvoker(fake_generator(GenerationError("upstream timeout")), emitter, test_settings)
        result = await invoker.run_task(ui_task(), {})

        assert result.success is False
        assert result.error == "upstream timeout"
        assert AgentEventType.agent_writing not in [e.type for e in emitter.history]

    @pytest.mark.asyncio
    async def test_existing_path_is_modified(self, fake_generator, test_settings):
        generator = fake_generator(file_block("src/App.tsx", "v2"))
        invoker = AgentInvoker(generator, EventEmitter(), test_settings)
        result = await invoker.run_task(ui_task(target_files=["src/App.tsx"]), {"src/App.tsx": "v1"})

        assert result.files[0].action == FileAction.modify
