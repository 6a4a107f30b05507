"""GitHub access through the gh CLI.

Listing and detail calls are pass-throughs: the JSON gh prints is returned
as parsed Python data with the fields the dashboard asks for.
"""

import json
import logging
import shutil
import subprocess
from typing import Any, Dict, List, Mapping, Optional

from agentdash.config import AgentTypeConfig
from agentdash.errors import ExternalToolError

log = logging.getLogger("agentdash.github")

REPO_FIELDS = "nameWithOwner,description,isPrivate,stargazerCount"
ISSUE_LIST_FIELDS = "number,title,state,labels"
ISSUE_DETAIL_FIELDS = "number,title,body,state,labels,assignees,url"

ISSUE_STATES = ("open", "closed", "all")

DEFAULT_TIMEOUT = 30
GENERATE_TIMEOUT = 300


def ensure_gh_cli() -> None:
    """Ensure gh CLI is installed.

    Raises:
        ExternalToolError: If gh is not on PATH
    """
    if not shutil.which("gh"):
        raise ExternalToolError(
            "GitHub CLI (gh) not found.\n\n"
            "Install: https://cli.github.com/\n"
        )


def gh_command(args: List[str], timeout: int = DEFAULT_TIMEOUT) -> str:
    """Run a gh (GitHub CLI) command.

    Args:
        args: Command arguments
        timeout: Seconds before the call is abandoned

    Returns:
        Command output

    Raises:
        ExternalToolError: If gh is missing, fails or times out
    """
    return _run_tool(["gh"] + args, timeout)


def _run_tool(cmd: List[str], timeout: int) -> str:
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise ExternalToolError(f"{cmd[0]} not found: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise ExternalToolError(f"{cmd[0]} timed out after {timeout}s") from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        log.warning(f"{cmd[0]} {cmd[1] if len(cmd) > 1 else ''} failed: {stderr}")
        raise ExternalToolError(stderr or f"{cmd[0]} exited with status {e.returncode}", stderr) from e
    return result.stdout.strip()


def _parse_json(output: str, what: str) -> Any:
    try:
        return json.loads(output)
    except ValueError as e:
        raise ExternalToolError(f"Could not parse {what} from gh output: {e}", output) from e


def list_repos(limit: int = 100, timeout: int = DEFAULT_TIMEOUT) -> List[Dict[str, Any]]:
    """List repositories visible to the authenticated gh user."""
    output = gh_command(["repo", "list", "--limit", str(limit), "--json", REPO_FIELDS], timeout)
    data = _parse_json(output, "repository list")
    if not isinstance(data, list):
        raise ExternalToolError("Unexpected repository list format from gh", output)
    return data


def list_issues(
    repo: str,
    state: str = "open",
    limit: int = 100,
    timeout: int = DEFAULT_TIMEOUT,
) -> List[Dict[str, Any]]:
    """List issues of a repository.

    Args:
        repo: Repository as "owner/name"
        state: "open", "closed" or "all"
        limit: Maximum issues to return
    """
    output = gh_command(
        [
            "issue",
            "list",
            "--repo",
            repo,
            "--state",
            state,
            "--limit",
            str(limit),
            "--json",
            ISSUE_LIST_FIELDS,
        ],
        timeout,
    )
    data = _parse_json(output, "issue list")
    if not isinstance(data, list):
        raise ExternalToolError("Unexpected issue list format from gh", output)
    return data


def get_issue(repo: str, issue_number: int, timeout: int = DEFAULT_TIMEOUT) -> Dict[str, Any]:
    """Get full details of one issue."""
    output = gh_command(
        ["issue", "view", str(issue_number), "--repo", repo, "--json", ISSUE_DETAIL_FIELDS],
        timeout,
    )
    data = _parse_json(output, f"issue #{issue_number}")
    if not isinstance(data, dict):
        raise ExternalToolError(f"Unexpected format for issue #{issue_number} from gh", output)
    return data


def build_generate_prompt(issue: Mapping[str, Any], config_type: str) -> str:
    """Build the prompt asking the agent tool to draft instructions for an issue."""
    return (
        f"Generate a {config_type} configuration for GitHub issue "
        f"#{issue.get('number')}: {issue.get('title', '')}\n"
        f"Issue description: {issue.get('body') or ''}\n"
        "Please create a configuration that would help an AI agent understand and fix this issue."
    )


def generate_instructions(
    issue: Mapping[str, Any],
    config_type: str,
    tool: AgentTypeConfig,
    timeout: Optional[int] = None,
) -> str:
    """Ask the agent tool to draft an instruction text for an issue.

    Returns:
        The tool's stdout

    Raises:
        ExternalToolError: If the tool fails or times out
    """
    prompt = build_generate_prompt(issue, config_type)
    cmd = [tool.command, *tool.generate_args, prompt]
    return _run_tool(cmd, timeout or GENERATE_TIMEOUT)
