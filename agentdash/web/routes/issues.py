"""Repository and issue browsing routes (gh pass-through)."""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from agentdash import github
from agentdash.config import Config
from agentdash.errors import ExternalToolError
from agentdash.web.deps import get_config, get_current_user
from agentdash.web.models import GenerateConfigRequest

router = APIRouter(prefix="/api", tags=["issues"])
logger = logging.getLogger("agentdash.web")


@router.get("/repos")
async def list_repos(
    limit: int | None = None,
    config: Config = Depends(get_config),
    user: str | None = Depends(get_current_user),
) -> list:
    """List repositories available to the gh user."""
    try:
        return await asyncio.to_thread(
            github.list_repos, limit or config.repo_list_limit, config.gh_timeout
        )
    except ExternalToolError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/issues")
async def list_issues(
    repo: str | None = None,
    state: str = "open",
    config: Config = Depends(get_config),
    user: str | None = Depends(get_current_user),
) -> list:
    """List issues of a repository."""
    if not repo:
        raise HTTPException(status_code=400, detail="Repository is required")
    if state not in github.ISSUE_STATES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid state '{state}'. Valid states: {', '.join(github.ISSUE_STATES)}",
        )

    try:
        return await asyncio.to_thread(
            github.list_issues, repo, state, config.issue_list_limit, config.gh_timeout
        )
    except ExternalToolError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/issues/{number}")
async def get_issue(
    number: int,
    repo: str | None = None,
    config: Config = Depends(get_config),
    user: str | None = Depends(get_current_user),
) -> dict:
    """Get full details of an issue."""
    if not repo:
        raise HTTPException(status_code=400, detail="Repository is required")

    try:
        return await asyncio.to_thread(github.get_issue, repo, number, config.gh_timeout)
    except ExternalToolError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/generate-config")
async def generate_config(
    body: GenerateConfigRequest,
    config: Config = Depends(get_config),
    user: str | None = Depends(get_current_user),
) -> dict:
    """Have the agent tool draft instructions for an issue."""
    if not body.issue or not body.config_type:
        raise HTTPException(status_code=400, detail="Issue and config type are required")

    agent_type = body.agent_type or config.default_agent_type
    tool = config.get_agent_type(agent_type)
    if tool is None:
        raise HTTPException(status_code=400, detail=f"Unknown agent type '{agent_type}'")

    try:
        text = await asyncio.to_thread(
            github.generate_instructions, body.issue, body.config_type, tool
        )
    except ExternalToolError as e:
        logger.warning(f"Instruction generation failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {"config": text}
