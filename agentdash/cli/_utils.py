"""Shared utilities for CLI modules."""

import logging

from rich.console import Console
from rich.logging import RichHandler

# Shared Rich console instance for all CLI modules
console = Console()

# Re-export commonly used functions for consistent import paths
from agentdash.config import load_config, Config  # noqa: E402


def configure_logging(level: str = "info") -> None:
    """Send agentdash logs through Rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
