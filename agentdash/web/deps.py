"""Shared dependencies for web routes."""

import os
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from agentdash.agents import AgentLauncher
from agentdash.config import Config

# Optional authentication (auto_error=False allows requests without credentials)
security = HTTPBasic(auto_error=False)


def _auth_settings() -> tuple[bool, str, str]:
    return (
        os.getenv("AGENTDASH_WEB_AUTH", "false").lower() == "true",
        os.getenv("AGENTDASH_WEB_USERNAME", "admin"),
        os.getenv("AGENTDASH_WEB_PASSWORD", "changeme"),
    )


def verify_credentials(
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
) -> Optional[str]:
    """Verify HTTP Basic Auth credentials.

    Only enforced when AGENTDASH_WEB_AUTH=true.
    """
    enabled, username, password = _auth_settings()
    if not enabled:
        return None

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Basic"},
        )

    # Constant-time comparison to prevent timing attacks
    username_correct = secrets.compare_digest(
        credentials.username.encode("utf-8"), username.encode("utf-8")
    )
    password_correct = secrets.compare_digest(
        credentials.password.encode("utf-8"), password.encode("utf-8")
    )

    if not (username_correct and password_correct):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return str(credentials.username)


def get_current_user(
    username: Optional[str] = Depends(verify_credentials),
) -> Optional[str]:
    """Get current authenticated user (or None if auth disabled)."""
    return username


def get_launcher(request: Request) -> AgentLauncher:
    """The app's agent launcher, which owns the agent registry."""
    return request.app.state.launcher


def get_config(request: Request) -> Config:
    return request.app.state.config
