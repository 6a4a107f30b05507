"""Configuration management for agentdash."""

import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

CONFIG_FILENAME = ".agentdash.yaml"


class AgentTypeConfig(BaseModel):
    """Configuration for an external coding-agent tool."""

    command: str
    # Arguments for the non-interactive fix run; the instruction arrives on stdin
    args: List[str] = Field(default_factory=list)
    # Arguments for one-shot text generation; the prompt is appended last
    generate_args: List[str] = Field(default_factory=lambda: ["-p"])


class MarkerConfig(BaseModel):
    """Transcript markers used to classify a finished agent."""

    pull_request: str = "Pull request created:"
    roadblock: str = "ROADBLOCK:"
    auth_failures: List[str] = Field(
        default_factory=lambda: ["Invalid API key", "Please run /login"]
    )


class ServerConfig(BaseModel):
    """Web server bind settings."""

    host: str = "127.0.0.1"
    port: int = 3000


def _default_agent_types() -> Dict[str, AgentTypeConfig]:
    return {
        "claude-code": AgentTypeConfig(
            command="claude",
            args=["-p", "--output-format", "json"],
        )
    }


class Config(BaseModel):
    """agentdash configuration."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    workspaces_dir: Path = Path("/data/workspaces")
    default_agent_type: str = "claude-code"
    agent_types: Dict[str, AgentTypeConfig] = Field(default_factory=_default_agent_types)
    branch_prefix: str = "fix-issue-"
    gh_timeout: int = 30
    repo_list_limit: int = 100
    issue_list_limit: int = 100
    markers: MarkerConfig = Field(default_factory=MarkerConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    def get_agent_type(self, name: str) -> Optional[AgentTypeConfig]:
        """Get configuration for an agent type.

        Args:
            name: Agent type name (e.g. "claude-code")

        Returns:
            Agent type config, or None if the type is not configured
        """
        return self.agent_types.get(name)

    def get_branch_name(self, issue_number: int) -> str:
        """Get the branch an agent works on for an issue."""
        return f"{self.branch_prefix}{issue_number}"


def find_config_file(start_path: Path) -> Optional[Path]:
    """Find .agentdash.yaml file by walking up directory tree.

    Args:
        start_path: Directory to start searching from

    Returns:
        Path to config file, or None if not found
    """
    current = start_path.resolve()

    while True:
        config_file = current / CONFIG_FILENAME
        if config_file.exists():
            return config_file

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from .agentdash.yaml file.

    The AGENTDASH_CONFIG environment variable, when set, names the file
    directly and skips the directory walk.

    Args:
        path: Path to directory containing config file (default: current directory)

    Returns:
        Loaded configuration (or default if file not found)

    Raises:
        ValueError: If the file is not valid YAML or does not match the schema
    """
    env_file = os.getenv("AGENTDASH_CONFIG")
    if env_file:
        config_file: Optional[Path] = Path(env_file)
    else:
        config_file = find_config_file(path if path is not None else Path.cwd())

    if config_file is None or not config_file.exists():
        return Config()

    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_file}: {e}") from e

    if data is None:
        return Config()

    try:
        return Config(**data)
    except PydanticValidationError as e:
        raise ValueError(f"Invalid configuration in {config_file}: {e}") from e
