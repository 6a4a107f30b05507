"""Web API for agentdash."""
