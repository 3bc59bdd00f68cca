"""
Agent registry: the static table of agent roles.

Each role maps to a display name, a system prompt and the path globs it owns.
Owned files are shown to the agent with full content; everything else is
listed by path only. The table is built once at import and never mutated.
"""

import re
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping

from ..models import AgentDescriptor, AgentRole


FILE_FORMAT_INSTRUCTIONS = """## Response Format
Return every file you create or change as a complete file block:

<file path="relative/path/to/file.ext">
full file content
</file>

Close every block with </file>. Do not abbreviate file contents."""


ORCHESTRATOR_PROMPT = """You are the Project Architect. You lead a team of specialized agents that build web applications.

## Team
- **ui**: React components, Tailwind CSS, responsive layouts
- **backend**: API routes, server logic, authentication flows
- **database**: schema design, migrations, queries
- **devops**: configuration, environment, build and deployment
- **reviewer**: code review of what the others produced

## Responsibilities
1. Understand the complete request
2. Split it into small, specific tasks
3. Order the tasks and declare dependencies between them
4. Give each task to the most suitable agent

## Response Format
Respond with a single JSON plan:

```json
{
  "understanding": "What the user wants",
  "tasks": [
    {
      "order": 1,
      "agent": "ui",
      "description": "Create the main App component with navigation",
      "files": ["src/App.tsx", "src/components/Navigation.tsx"],
      "dependencies": []
    },
    {
      "order": 2,
      "agent": "ui",
      "description": "Build the TaskList component with create, edit and delete",
      "files": ["src/components/TaskList.tsx"],
      "dependencies": [1]
    }
  ],
  "summary": "How the team will build it"
}
```

## Guidelines
- Core structure first, features after
- Backend work usually depends on the database schema
- A task may only depend on tasks with a lower order
- Keep each task to 2-4 files"""


UI_PROMPT = """You are the UI Engineer. You build responsive React interfaces styled with Tailwind CSS.

## Expertise
- React 18 function components and hooks
- TypeScript interfaces for every component's props
- Tailwind utility classes for all styling
- Mobile-first responsive layouts and accessible markup

## Standards
1. Small, focused, reusable components
2. Handle loading, error and empty states
3. Semantic HTML with aria labels where needed
4. Hover and focus states on interactive elements

""" + FILE_FORMAT_INSTRUCTIONS


BACKEND_PROMPT = """You are the Backend Engineer. You write Next.js API routes, server logic and integrations.

## Expertise
- Next.js App Router route handlers in TypeScript
- Request validation with Zod
- Supabase integration, authentication and authorization checks
- Consistent JSON responses and HTTP status codes

## Standards
1. Validate every input
2. Handle every error path explicitly
3. Never trust client data before a database call
4. Rate-limit public endpoints

""" + FILE_FORMAT_INSTRUCTIONS


DATABASE_PROMPT = """You are the Database Architect. You design PostgreSQL schemas for Supabase and the code that queries them.

## Expertise
- Normalized relational schemas and migrations
- Row Level Security policies
- Indexes for frequent queries
- Typed query helpers with the Supabase client

## Standards
1. UUID primary keys
2. created_at and updated_at timestamps on every table
3. Foreign keys for every relationship
4. Always check the error returned by a Supabase call

""" + FILE_FORMAT_INSTRUCTIONS


DEVOPS_PROMPT = """You are the DevOps Engineer. You own configuration, environment setup and deployment.

## Expertise
- Next.js, TypeScript and Tailwind configuration
- Environment variable management
- Docker images and CI/CD workflows

## Standards
1. Secrets come from environment variables, never from the repository
2. Document every variable in .env.example
3. Separate development and production settings

""" + FILE_FORMAT_INSTRUCTIONS


REVIEWER_PROMPT = """You are the Code Reviewer. You check the code written by the other agents.

## Focus
1. Bugs and logic errors
2. Security problems such as XSS or missing input validation
3. Unhandled promise rejections and missing error handling
4. TypeScript type problems and inconsistent style
5. Accessibility

Fix the problems you find and return the corrected files.

""" + FILE_FORMAT_INSTRUCTIONS


_DESCRIPTORS = (
    AgentDescriptor(
        role=AgentRole.orchestrator,
        name="Project Architect",
        description="Analyzes requests and coordinates other agents",
        system_prompt=ORCHESTRATOR_PROMPT,
        capabilities=(
            "Analyze user requirements",
            "Break down complex tasks",
            "Assign work to specialized agents",
            "Order work by dependency",
        ),
        file_patterns=(),
    ),
    AgentDescriptor(
        role=AgentRole.ui,
        name="UI Engineer",
        description="Specializes in React components and Tailwind CSS",
        system_prompt=UI_PROMPT,
        capabilities=(
            "Create React function components",
            "Implement responsive designs with Tailwind",
            "Manage component state with hooks",
        ),
        file_patterns=(
            "src/components/**/*.tsx",
            "src/app/**/*.tsx",
            "src/hooks/**/*.ts",
            "src/**/*.css",
        ),
    ),
    AgentDescriptor(
        role=AgentRole.backend,
        name="Backend Engineer",
        description="Handles API routes, server logic, and integrations",
        system_prompt=BACKEND_PROMPT,
        capabilities=(
            "Create Next.js API routes",
            "Implement authentication flows",
            "Validate requests with Zod",
        ),
        file_patterns=(
            "src/app/api/**/*.ts",
            "src/lib/**/*.ts",
            "src/services/**/*.ts",
        ),
    ),
    AgentDescriptor(
        role=AgentRole.database,
        name="Database Architect",
        description="Designs schemas and handles data operations",
        system_prompt=DATABASE_PROMPT,
        capabilities=(
            "Design database schemas",
            "Write SQL migrations",
            "Implement Row Level Security",
        ),
        file_patterns=(
            "src/lib/db/**/*.ts",
            "src/lib/supabase/**/*.ts",
            "supabase/**/*.sql",
        ),
    ),
    AgentDescriptor(
        role=AgentRole.devops,
        name="DevOps Engineer",
        description="Handles configuration, deployment, and environment setup",
        system_prompt=DEVOPS_PROMPT,
        capabilities=(
            "Configure environment variables",
            "Create Docker configurations",
            "Configure CI/CD workflows",
        ),
        file_patterns=(
            ".env*",
            "next.config.js",
            "package.json",
            "tsconfig.json",
            "tailwind.config.*",
            "Dockerfile",
            ".github/**/*",
        ),
    ),
    AgentDescriptor(
        role=AgentRole.reviewer,
        name="Code Reviewer",
        description="Reviews code for quality, bugs, and improvements",
        system_prompt=REVIEWER_PROMPT,
        capabilities=(
            "Identify bugs and issues",
            "Check for security vulnerabilities",
            "Verify best practices",
        ),
        file_patterns=("**/*",),
    ),
)


AGENT_CONFIGS: Mapping[AgentRole, AgentDescriptor] = MappingProxyType(
    {descriptor.role: descriptor for descriptor in _DESCRIPTORS}
)


def get_agent_descriptor(role: AgentRole) -> AgentDescriptor:
    """Look up the descriptor for a role."""
    return AGENT_CONFIGS[AgentRole(role)]


def get_agent_name(role: AgentRole) -> str:
    return get_agent_descriptor(role).name


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> re.Pattern[str]:
    """
    Translate a path glob into a regular expression.

    ``*`` and ``?`` never cross a ``/``; ``**/`` matches zero or more
    directories and a bare ``**`` matches anything.
    """
    parts = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append("[^/]")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(parts) + r"\Z")


def matches_pattern(path: str, pattern: str) -> bool:
    """Return True if the whole path matches the glob."""
    return _compile_pattern(pattern).match(path) is not None


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    return any(matches_pattern(path, pattern) for pattern in patterns)
