"""
Agents for prompt-driven code generation.

SUPERVISORY LAYER:
- Planner: Turns a request into ordered, dependency-annotated tasks
  (keyword fallback plan when the model output is unusable)

EXECUTION LAYER:
- Invoker: Runs one task through its agent and extracts generated files

REGISTRY:
- One descriptor per role: display name, system prompt, owned file globs
"""

from .registry import AGENT_CONFIGS, get_agent_descriptor, get_agent_name, matches_any, matches_pattern
from .planner import PlanGenerator, create_fallback_plan, parse_plan
from .invoker import AgentInvoker, extract_files, infer_language


__all__ = [
    # Registry
    "AGENT_CONFIGS",
    "get_agent_descriptor",
    "get_agent_name",
    "matches_pattern",
    "matches_any",
    # Supervisory
    "PlanGenerator",
    "create_fallback_plan",
    "parse_plan",
    # Execution
    "AgentInvoker",
    "extract_files",
    "infer_language",
]
