"""Per-agent workspace directories.

Each launch gets its own directory under ``workspaces_dir`` holding the
instruction, an issue snapshot, the transcripts and the cloned repository.
Workspaces of launched agents are never deleted; only a launch that
fails before its process starts removes its own directory.
"""

import json
import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from agentdash.errors import ProvisionError

log = logging.getLogger("agentdash.workspace")

PROMPT_FILE = "prompt.txt"
ISSUE_FILE = "issue.json"
OUTPUT_LOG = "output.log"
ERROR_LOG = "error.log"
TRANSCRIPT_LOG = "agent.log"
STRUCTURED_OUTPUT = "claude_output.json"
ENV_DUMP = "env.txt"
REPO_DIR = "repo"


def make_workspace_id(issue_number: int) -> str:
    """Build a workspace id from the issue number and a microsecond timestamp."""
    return f"issue-{issue_number}-{time.time_ns() // 1000}"


@dataclass
class Workspace:
    """A provisioned workspace directory."""

    id: str
    path: Path

    @property
    def prompt_file(self) -> Path:
        return self.path / PROMPT_FILE

    @property
    def issue_file(self) -> Path:
        return self.path / ISSUE_FILE

    @property
    def output_log(self) -> Path:
        return self.path / OUTPUT_LOG

    @property
    def error_log(self) -> Path:
        return self.path / ERROR_LOG


def provision(
    root: Path,
    issue_number: int,
    issue_payload: Mapping[str, Any],
    instruction_text: str,
) -> Workspace:
    """Create and seed a fresh workspace directory.

    Args:
        root: Directory that holds all workspaces (created if missing)
        issue_number: Issue the agent works on
        issue_payload: Issue data to snapshot as JSON
        instruction_text: Instruction the agent runs against, written verbatim

    Returns:
        The new workspace

    Raises:
        ProvisionError: If the directory exists already or cannot be written
    """
    workspace_id = make_workspace_id(issue_number)
    path = Path(root) / workspace_id

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ProvisionError(f"Could not create workspace root {path.parent}: {e}") from e

    try:
        path.mkdir()
    except FileExistsError as e:
        raise ProvisionError(f"Workspace {path} already exists") from e
    except OSError as e:
        raise ProvisionError(f"Could not create workspace {path}: {e}") from e

    workspace = Workspace(id=workspace_id, path=path)
    try:
        workspace.prompt_file.write_text(instruction_text, encoding="utf-8")
        workspace.issue_file.write_text(
            json.dumps(dict(issue_payload), indent=2), encoding="utf-8"
        )
    except (OSError, TypeError, ValueError) as e:
        discard(workspace)
        raise ProvisionError(f"Could not write workspace files in {path}: {e}") from e

    log.info(f"Provisioned workspace {path}")
    return workspace


def discard(workspace: Workspace) -> None:
    """Remove a workspace whose launch did not go through."""
    try:
        shutil.rmtree(workspace.path)
    except OSError as e:
        log.warning(f"Could not remove abandoned workspace {workspace.path}: {e}")
