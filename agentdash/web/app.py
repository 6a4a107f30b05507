"""HTTP API for agentdash using FastAPI."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from agentdash import __version__
from agentdash.agents import AgentLauncher, AgentRegistry
from agentdash.config import Config, load_config
from agentdash.web.routes import agents as agents_routes
from agentdash.web.routes import issues as issues_routes

# Module-level logger for web app
logger = logging.getLogger("agentdash.web")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """FastAPI lifespan context.

    The registry is created with the app and dropped when the server stops;
    agent processes still running at that point are left alone.
    """
    config: Config = app.state.config
    logger.info(f"Serving agentdash {__version__}, workspaces in {config.workspaces_dir}")

    yield

    launcher: AgentLauncher = app.state.launcher
    running = sum(
        1 for record in launcher.list_agents().values() if record["status"] == "running"
    )
    if running:
        logger.warning(f"Shutting down with {running} agent(s) still running; they are not tracked anymore")
    launcher.registry.clear()


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the FastAPI app with its own agent registry.

    Args:
        config: Configuration to use (loaded from .agentdash.yaml if omitted)
    """
    config = config or load_config()

    app = FastAPI(title="agentdash", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.launcher = AgentLauncher(config, AgentRegistry())

    app.include_router(issues_routes.router)
    app.include_router(agents_routes.router)

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy", "service": "agentdash"}

    return app


app = create_app()


def run_server(
    host: str = "127.0.0.1",
    port: int = 3000,
    config_path: Optional[Path] = None,
    log_level: str = "info",
) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to
        port: Port to bind to
        config_path: Directory to search for .agentdash.yaml (optional)
        log_level: Uvicorn log level
    """
    import uvicorn

    config = load_config(config_path)
    # Single worker: the agent registry lives in this process's memory
    uvicorn.run(create_app(config), host=host, port=port, workers=1, log_level=log_level)


if __name__ == "__main__":
    run_server()
