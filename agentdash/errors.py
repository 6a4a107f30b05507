"""Exceptions raised by agentdash operations.

Web routes translate these into HTTP status codes:

    ValidationError    -> 400
    NotFoundError      -> 404
    ExternalToolError  -> 500
    ProvisionError     -> 500
"""


class AgentDashError(Exception):
    """Base class for agentdash errors."""


class ValidationError(AgentDashError):
    """Raised when a required input is missing or malformed."""


class NotFoundError(AgentDashError):
    """Raised when a requested agent or artifact does not exist."""


class AgentNotFoundError(NotFoundError):
    """Raised when no agent is registered under the given id."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent {agent_id} not found")


class LogNotFoundError(NotFoundError):
    """Raised when an agent's log file has not been written."""

    def __init__(self, agent_id: str, kind: str):
        self.agent_id = agent_id
        self.kind = kind
        super().__init__(f"No {kind} log for agent {agent_id}")


class ExternalToolError(AgentDashError):
    """Raised when an external CLI call fails or returns unparsable output."""

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        super().__init__(message)


class ProvisionError(AgentDashError):
    """Raised when a workspace cannot be created or the agent cannot be spawned."""
