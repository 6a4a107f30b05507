"""agentdash: launch and monitor coding agents against GitHub issues."""

__version__ = "0.1.0"
