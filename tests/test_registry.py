"""
Tests for the agent registry and path glob matching.
"""

import pytest

from forge.agents.registry import (
    AGENT_CONFIGS,
    get_agent_descriptor,
    get_agent_name,
    matches_any,
    matches_pattern,
)
from forge.models import AgentRole


class TestAgentConfigs:
    """Test the static agent table."""

    def test_every_role_has_a_descriptor(self):
        """Test the registry is exhaustive over AgentRole."""
        assert set(AGENT_CONFIGS) == set(AgentRole)
        for role, descriptor in AGENT_CONFIGS.items():
            assert descriptor.role == role
            assert descriptor.system_prompt

    def test_registry_is_read_only(self):
        """Test the mapping cannot be mutated."""
        with pytest.raises(TypeError):
            AGENT_CONFIGS[AgentRole.ui] = AGENT_CONFIGS[AgentRole.backend]

    def test_orchestrator_owns_no_files(self):
        assert get_agent_descriptor(AgentRole.orchestrator).file_patterns == ()

    def test_execution_agents_ask_for_file_blocks(self):
        """Test task agents are told to answer with <file path> blocks."""
        for role in (AgentRole.ui, AgentRole.backend, AgentRole.database, AgentRole.devops, AgentRole.reviewer):
            assert '<file path="' in get_agent_descriptor(role).system_prompt

    def test_display_names(self):
        assert get_agent_name(AgentRole.ui) == "UI Engineer"
        assert get_agent_name(AgentRole.database) == "Database Architect"

    def test_lookup_by_string_value(self):
        assert get_agent_descriptor("backend").role == AgentRole.backend


class TestPatternMatching:
    """Test glob semantics used for file ownership."""

    @pytest.mark.parametrize("path", [
        "src/components/Button.tsx",
        "src/components/forms/Input.tsx",
        "src/components/forms/deep/Field.tsx",
    ])
    def test_double_star_matches_any_depth(self, path):
        assert matches_pattern(path, "src/components/**/*.tsx")

    def test_double_star_slash_matches_zero_directories(self):
        """Test '**/' also matches no intermediate directory."""
        assert matches_pattern("src/index.css", "src/**/*.css")
        assert matches_pattern("src/styles/app.css", "src/**/*.css")

    def test_single_star_does_not_cross_directories(self):
        assert matches_pattern("src/App.tsx", "src/*.tsx")
        assert not matches_pattern("src/components/App.tsx", "src/*.tsx")

    def test_question_mark_matches_one_character(self):
        assert matches_pattern("a1.ts", "a?.ts")
        assert not matches_pattern("a12.ts", "a?.ts")
        assert not matches_pattern("a/.ts", "a?.ts")

    def test_whole_path_must_match(self):
        assert not matches_pattern("src/components/Button.tsx.bak", "src/components/**/*.tsx")
        assert not matches_pattern("other/src/components/Button.tsx", "src/components/**/*.tsx")

    def test_dots_are_literal(self):
        assert matches_pattern("next.config.js", "next.config.js")
        assert not matches_pattern("nextXconfigXjs", "next.config.js")

    def test_devops_patterns(self):
        patterns = get_agent_descriptor(AgentRole.devops).file_patterns
        assert matches_any(".env", patterns)
        assert matches_any(".env.local", patterns)
        assert matches_any("tailwind.config.ts", patterns)
        assert matches_any(".github/workflows/ci.yml", patterns)
        assert not matches_any("src/App.tsx", patterns)

    def test_reviewer_sees_everything(self):
        patterns = get_agent_descriptor(AgentRole.reviewer).file_patterns
        assert matches_any("README.md", patterns)
        assert matches_any("src/app/api/users/route.ts", patterns)

    def test_empty_pattern_list_matches_nothing(self):
        assert not matches_any("src/App.tsx", ())
