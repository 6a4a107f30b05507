"""Agent lifecycle: launch, status resolution and log reading.

Launching is two-phase. ``launch()`` provisions a workspace, spawns a
detached shell pipeline and returns a ``running`` record right away.
``resolve()`` is called later (on each status poll): it probes whether the
process is still alive and, once it is gone, classifies the transcript by
its markers exactly once. Terminal records are never touched again.

The registry lives in process memory only; a restart forgets every agent.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shlex
import subprocess
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, Iterator, Mapping, Optional, Union

from agentdash.config import AgentTypeConfig, Config
from agentdash.errors import (
    AgentNotFoundError,
    LogNotFoundError,
    ProvisionError,
    ValidationError,
)
from agentdash.markers import classify_transcript
from agentdash.state_machine import RUNNING, TERMINAL_STATES, validate_status_transition
from agentdash.workspace import (
    ENV_DUMP,
    ERROR_LOG,
    OUTPUT_LOG,
    PROMPT_FILE,
    REPO_DIR,
    STRUCTURED_OUTPUT,
    TRANSCRIPT_LOG,
    Workspace,
    discard,
    provision,
)

log = logging.getLogger("agentdash.agents")

# Log kinds served to the UI, mapped to their file in the workspace
LOG_FILES = {
    "output": OUTPUT_LOG,
    "error": ERROR_LOG,
    "structured": STRUCTURED_OUTPUT,
}
LOG_KIND_ALIASES = {"claude": "structured"}

# Loaded into debug_artifacts once an agent reaches a terminal status
DEBUG_ARTIFACTS = (ENV_DUMP, STRUCTURED_OUTPUT, TRANSCRIPT_LOG)

_REPO_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class AgentRecord:
    """One launched agent."""

    id: str
    pid: int
    issue_number: int
    repo: str
    agent_type: str
    branch: str
    started_at: str  # ISO format timestamp
    workspace_path: Path
    status: str = RUNNING
    pull_request_url: Optional[str] = None
    roadblock_reason: Optional[str] = None
    error_details: Optional[str] = None
    finished_at: Optional[str] = None
    debug_artifacts: Dict[str, str] = field(default_factory=dict)
    # Kept so the exited child can be reaped; never serialized
    process: Optional[subprocess.Popen] = field(default=None, repr=False, compare=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON responses."""
        return {
            "id": self.id,
            "pid": self.pid,
            "issueNumber": self.issue_number,
            "repo": self.repo,
            "agentType": self.agent_type,
            "branch": self.branch,
            "startedAt": self.started_at,
            "status": self.status,
            "workspacePath": str(self.workspace_path),
            "pullRequestUrl": self.pull_request_url,
            "roadblockReason": self.roadblock_reason,
            "errorDetails": self.error_details,
            "finishedAt": self.finished_at,
            "debugArtifacts": dict(self.debug_artifacts),
        }


class AgentRegistry:
    """In-memory mapping of workspace id to agent record.

    Request handlers may run on several threads, so every access goes
    through the lock. Use ``locked()`` for read-modify-write sequences.
    """

    def __init__(self) -> None:
        self._agents: Dict[str, AgentRecord] = {}
        self._lock = threading.RLock()

    @contextmanager
    def locked(self) -> Generator[None, None, None]:
        with self._lock:
            yield

    def add(self, record: AgentRecord) -> None:
        with self._lock:
            if record.id in self._agents:
                raise ValueError(f"Agent {record.id} already registered")
            self._agents[record.id] = record

    def get(self, agent_id: str) -> Optional[AgentRecord]:
        with self._lock:
            return self._agents.get(agent_id)

    def snapshot(self) -> Dict[str, dict]:
        """Serialized copy of every record, without resolving any of them."""
        with self._lock:
            return {agent_id: record.to_dict() for agent_id, record in self._agents.items()}

    def clear(self) -> None:
        with self._lock:
            self._agents.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        with self._lock:
            return agent_id in self._agents

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._agents))


def is_process_alive(pid: int, process: Optional[subprocess.Popen] = None) -> bool:
    """Check whether a process is still running without affecting it.

    A child we spawned is polled through its Popen handle so that it gets
    reaped; otherwise a zombie would look alive to signal 0.
    """
    if process is not None:
        return process.poll() is None

    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but belongs to someone else
        return True
    return True


def build_agent_script(repo: str, branch: str, tool: AgentTypeConfig) -> str:
    """Build the bash pipeline an agent runs inside its workspace.

    Progress lines are timestamped and go both to stdout and the
    transcript. The tool's structured output is teed into its own file so
    the markers it prints also land in the stdout log.
    """
    agent_cmd = " ".join(shlex.quote(part) for part in [tool.command, *tool.args])
    tool_name = shlex.quote(tool.command)
    repo_q = shlex.quote(repo)
    branch_q = shlex.quote(branch)

    return "\n".join([
        'WORKSPACE="$PWD"',
        "progress() {",
        f"  printf '[%s] %s\\n' \"$(date -u +%Y-%m-%dT%H:%M:%SZ)\" \"$*\" | tee -a \"$WORKSPACE/{TRANSCRIPT_LOG}\"",
        "}",
        f"progress Agent started for {repo_q} on branch {branch_q}",
        f'env > "$WORKSPACE/{ENV_DUMP}"',
        f"progress Cloning {repo_q}",
        f"gh repo clone {repo_q} {REPO_DIR} || {{ progress Clone failed; exit 1; }}",
        f"cd {REPO_DIR} || {{ progress Clone directory missing; exit 1; }}",
        f"progress Creating branch {branch_q}",
        f"git checkout -b {branch_q} || {{ progress Branch creation failed; exit 1; }}",
        f"progress Running {tool_name}",
        f'{agent_cmd} < "$WORKSPACE/{PROMPT_FILE}" | tee "$WORKSPACE/{STRUCTURED_OUTPUT}"',
        "status=${PIPESTATUS[0]}",
        f"progress {tool_name} exited with status $status",
        "exit $status",
    ]) + "\n"


def _read_text(path: Path) -> Optional[str]:
    """Read a file that another process may still be writing.

    Returns None if the file does not exist. Undecodable bytes (for
    example a multibyte character cut off mid-write) are replaced.
    """
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return None


def load_debug_artifacts(workspace_path: Path) -> Dict[str, str]:
    """Load whichever debug artifacts exist in a workspace.

    Missing files are skipped; a file that fails to read is logged and
    skipped without affecting the others.
    """
    artifacts: Dict[str, str] = {}
    for name in DEBUG_ARTIFACTS:
        path = workspace_path / name
        if not path.exists():
            continue
        try:
            content = _read_text(path)
        except OSError as e:
            log.warning(f"Could not read debug artifact {path}: {e}")
            continue
        if content is not None:
            artifacts[name] = content
    return artifacts


def format_structured_log(content: str) -> str:
    """Pretty-print the tool's JSON result, or return it unchanged if it is not JSON."""
    try:
        data = json.loads(content)
    except ValueError:
        return content
    return json.dumps(data, indent=2)


def decode_transcript(text: str) -> str:
    """Unwrap JSON result lines so markers are scanned as the agent wrote them.

    In JSON output mode the tool prints its whole reply as one line with
    escaped newlines. Each line that parses as a JSON object carrying a
    string ``result`` is replaced by that result; other lines are kept.
    """
    lines = []
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith("{"):
            try:
                data = json.loads(stripped)
            except ValueError:
                data = None
            if isinstance(data, dict) and isinstance(data.get("result"), str):
                lines.append(data["result"])
                continue
        lines.append(line)
    return "\n".join(lines)


IssueInput = Union[Mapping[str, Any], int, None]


class AgentLauncher:
    """Launches agents and reports on them.

    Args:
        config: Loaded configuration
        registry: Registry to record agents in (a new one if omitted)
    """

    def __init__(self, config: Config, registry: Optional[AgentRegistry] = None):
        self.config = config
        self.registry = registry if registry is not None else AgentRegistry()

    def launch(
        self,
        repo: Optional[str],
        issue: IssueInput,
        instruction_text: Optional[str],
        agent_type: Optional[str] = None,
    ) -> AgentRecord:
        """Start an agent on an issue.

        Returns as soon as the process is spawned; the outcome of the fix
        attempt is only learned through ``resolve()``.

        Args:
            repo: Repository as "owner/name"
            issue: Issue data (must carry a "number") or a bare issue number
            instruction_text: Instruction fed to the agent tool
            agent_type: Configured agent type (default: config.default_agent_type)

        Returns:
            The new running record

        Raises:
            ValidationError: If an input is missing or invalid (nothing is created)
            ProvisionError: If the workspace or the process cannot be created
        """
        repo = (repo or "").strip()
        if not repo:
            raise ValidationError("Repository is required")
        if not _REPO_PATTERN.match(repo):
            raise ValidationError(f"Invalid repository '{repo}', expected owner/name")

        issue_payload = self._normalize_issue(issue)
        issue_number = issue_payload["number"]

        if not instruction_text or not instruction_text.strip():
            raise ValidationError("Prompt is required")

        agent_type = agent_type or self.config.default_agent_type
        tool = self.config.get_agent_type(agent_type)
        if tool is None:
            raise ValidationError(
                f"Unknown agent type '{agent_type}'. "
                f"Configured types: {', '.join(sorted(self.config.agent_types))}"
            )

        branch = self.config.get_branch_name(issue_number)
        workspace = provision(
            self.config.workspaces_dir, issue_number, issue_payload, instruction_text
        )

        try:
            process = self._spawn(workspace, build_agent_script(repo, branch, tool))
        except OSError as e:
            discard(workspace)
            raise ProvisionError(f"Could not start agent for issue #{issue_number}: {e}") from e

        record = AgentRecord(
            id=workspace.id,
            pid=process.pid,
            issue_number=issue_number,
            repo=repo,
            agent_type=agent_type,
            branch=branch,
            started_at=_utcnow(),
            workspace_path=workspace.path,
            process=process,
        )
        self.registry.add(record)
        log.info(
            f"Launched {agent_type} agent {record.id} for {repo}#{issue_number} (pid {record.pid})"
        )
        return record

    def resolve(self, agent_id: str) -> AgentRecord:
        """Refresh and return an agent's record.

        A running agent whose process has exited is classified from its
        output log. Terminal records are returned untouched.

        Raises:
            AgentNotFoundError: If no agent has this id
        """
        with self.registry.locked():
            record = self.registry.get(agent_id)
            if record is None:
                raise AgentNotFoundError(agent_id)

            if record.is_terminal or is_process_alive(record.pid, record.process):
                return record

            self._finish(record)
            return record

    def list_agents(self) -> Dict[str, dict]:
        """All known agents, serialized, without resolving any of them."""
        return self.registry.snapshot()

    def read_log(self, agent_id: str, kind: str) -> str:
        """Read one of an agent's logs.

        Args:
            agent_id: Workspace id
            kind: "output", "error" or "structured" ("claude" is accepted too)

        Returns:
            The log text; structured output is pretty-printed when it parses

        Raises:
            ValidationError: If the kind is unknown
            AgentNotFoundError: If no agent has this id
            LogNotFoundError: If the log file has not been written
        """
        kind = LOG_KIND_ALIASES.get(kind, kind)
        filename = LOG_FILES.get(kind)
        if filename is None:
            valid = sorted([*LOG_FILES, *LOG_KIND_ALIASES])
            raise ValidationError(f"Unknown log type '{kind}'. Valid types: {', '.join(valid)}")

        record = self.registry.get(agent_id)
        if record is None:
            raise AgentNotFoundError(agent_id)

        content = _read_text(record.workspace_path / filename)
        if content is None:
            raise LogNotFoundError(agent_id, kind)

        if kind == "structured":
            return format_structured_log(content)
        return content

    def _normalize_issue(self, issue: IssueInput) -> Dict[str, Any]:
        if issue is None or issue == {}:
            raise ValidationError("Issue is required")
        if isinstance(issue, Mapping):
            payload = dict(issue)
        else:
            payload = {"number": issue}

        number = payload.get("number")
        if isinstance(number, bool):
            number = None
        try:
            payload["number"] = int(number)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise ValidationError("Issue number is required")
        if payload["number"] <= 0:
            raise ValidationError("Issue number must be positive")
        return payload

    def _spawn(self, workspace: Workspace, script: str) -> subprocess.Popen:
        """Start the pipeline detached, with stdout/stderr going to workspace files."""
        with open(workspace.output_log, "w") as stdout, open(workspace.error_log, "w") as stderr:
            return subprocess.Popen(
                ["bash", "-c", script],
                cwd=workspace.path,
                stdin=subprocess.DEVNULL,
                stdout=stdout,
                stderr=stderr,
                start_new_session=True,
            )

    def _finish(self, record: AgentRecord) -> None:
        """Classify an exited agent and record its terminal status."""
        try:
            transcript = _read_text(record.workspace_path / OUTPUT_LOG) or ""
        except OSError as e:
            log.warning(f"Could not read output log for agent {record.id}: {e}")
            transcript = ""

        result = classify_transcript(decode_transcript(transcript), self.config.markers)
        validate_status_transition(record.status, result.status)

        record.pull_request_url = result.pull_request_url
        record.roadblock_reason = result.roadblock_reason
        record.error_details = result.error_details
        record.debug_artifacts = load_debug_artifacts(record.workspace_path)
        record.finished_at = _utcnow()
        record.status = result.status

        log.info(f"Agent {record.id} finished with status {record.status}")
