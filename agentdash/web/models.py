"""Pydantic models for web API."""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class LaunchRequest(BaseModel):
    """Request to launch an agent on an issue.

    Every field is optional here so that a missing one is reported as a
    400 by the route rather than a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    repo: Optional[str] = None
    issue: Optional[Union[Dict[str, Any], int]] = None
    prompt: Optional[str] = None
    agent_type: Optional[str] = Field(default=None, alias="agentType")


class LaunchResponse(BaseModel):
    """Result of a launch request."""

    model_config = ConfigDict(populate_by_name=True)

    workspace_id: str = Field(alias="workspaceId")
    message: str


class GenerateConfigRequest(BaseModel):
    """Request to draft agent instructions for an issue."""

    model_config = ConfigDict(populate_by_name=True)

    issue: Optional[Dict[str, Any]] = None
    config_type: Optional[str] = Field(default=None, alias="configType")
    agent_type: Optional[str] = Field(default=None, alias="agentType")


class LogsResponse(BaseModel):
    """Log content for one agent."""

    logs: str
