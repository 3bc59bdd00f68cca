"""Read-only endpoints for the agent registry and stored project files."""

from typing import List

from fastapi import APIRouter
from fastapi.responses import ORJSONResponse

from ..agents.registry import AGENT_CONFIGS
from ..models import AgentInfo, ExistingFile
from ..storage import store


router = APIRouter(tags=["agents"])


@router.get("/agents", response_model=List[AgentInfo], response_class=ORJSONResponse)
async def list_agents():
    """List every agent role with its capabilities and owned file patterns."""
    return [
        AgentInfo(
            role=descriptor.role,
            name=descriptor.name,
            description=descriptor.description,
            capabilities=list(descriptor.capabilities),
            file_patterns=list(descriptor.file_patterns),
        )
        for descriptor in AGENT_CONFIGS.values()
    ]


@router.get("/projects/{project_id}/files", response_model=List[ExistingFile], response_class=ORJSONResponse)
async def list_project_files(project_id: str):
    """Files stored for a project. Unknown projects have no files."""
    return await store.list_files(project_id)
