"""Agent launch, status and log routes."""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response

from agentdash.agents import AgentLauncher
from agentdash.errors import NotFoundError, ProvisionError, ValidationError
from agentdash.web.deps import get_current_user, get_launcher
from agentdash.web.models import LaunchRequest, LaunchResponse, LogsResponse
from agentdash.web.utils import _compute_etag

router = APIRouter(prefix="/api", tags=["agents"])
logger = logging.getLogger("agentdash.web")


@router.post("/launch-agent")
async def launch_agent(
    body: LaunchRequest,
    launcher: AgentLauncher = Depends(get_launcher),
    user: str | None = Depends(get_current_user),
) -> dict:
    """Launch a coding agent on an issue.

    Returns once the agent process is spawned; poll /api/agent/{id} for
    its outcome.
    """
    if not (body.repo and body.issue and body.prompt and body.agent_type):
        raise HTTPException(
            status_code=400,
            detail="Repository, issue, prompt, and agent type are required",
        )

    try:
        record = await asyncio.to_thread(
            launcher.launch, body.repo, body.issue, body.prompt, body.agent_type
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProvisionError as e:
        logger.error(f"Launch failed for {body.repo}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    response = LaunchResponse(
        workspace_id=record.id,
        message=f"Agent launched for issue #{record.issue_number}",
    )
    return response.model_dump(by_alias=True)


@router.get("/agents")
async def list_agents(
    launcher: AgentLauncher = Depends(get_launcher),
    user: str | None = Depends(get_current_user),
) -> dict:
    """All tracked agents keyed by workspace id (statuses are not refreshed)."""
    return await asyncio.to_thread(launcher.list_agents)


@router.get("/agent/{workspace_id}")
async def get_agent(
    workspace_id: str,
    launcher: AgentLauncher = Depends(get_launcher),
    user: str | None = Depends(get_current_user),
) -> dict:
    """Get an agent's record, refreshing its status first."""
    try:
        record = await asyncio.to_thread(launcher.resolve, workspace_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return record.to_dict()


@router.get("/agent/{workspace_id}/logs")
async def get_agent_logs(
    request: Request,
    workspace_id: str,
    log_type: str = Query("output", alias="type"),
    launcher: AgentLauncher = Depends(get_launcher),
    user: str | None = Depends(get_current_user),
) -> Response:
    """Get one of an agent's logs: output, error or claude (structured result).

    Returns ETag header for conditional requests. If client sends If-None-Match
    with matching ETag, returns 304 Not Modified to save bandwidth.
    """
    try:
        logs = await asyncio.to_thread(launcher.read_log, workspace_id, log_type)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    etag = _compute_etag(logs)
    if_none_match = request.headers.get("If-None-Match")
    if if_none_match and if_none_match == etag:
        return Response(status_code=304, headers={"ETag": etag})

    return JSONResponse(LogsResponse(logs=logs).model_dump(), headers={"ETag": etag})
