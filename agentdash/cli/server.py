"""Server commands (serve, config)."""

from pathlib import Path

import click
import yaml
from rich.markup import escape

from agentdash.cli._utils import configure_logging, console, load_config
from agentdash.errors import ExternalToolError


@click.command()
@click.option("--host", default=None, help="Host to bind to (default: from config)")
@click.option("--port", default=None, type=int, help="Port to bind to (default: from config)")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
)
def serve(host: str | None, port: int | None, log_level: str) -> None:
    """Start the agentdash API server.

    Agents launched through the server are tracked in memory only; stopping
    the server forgets them, though their processes keep running.

    Examples:
        agentdash serve                  # Bind to the configured host/port
        agentdash serve --port 9000      # Use a custom port
    """
    from agentdash.github import ensure_gh_cli

    configure_logging(log_level)

    try:
        config = load_config()
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise SystemExit(1)

    # Imported after the config check: the module builds its app on import
    from agentdash.web.app import run_server

    try:
        ensure_gh_cli()
    except ExternalToolError as e:
        console.print(f"[yellow]Warning: {escape(str(e))}[/yellow]")

    host = host or config.server.host
    port = port or config.server.port

    console.print(f"\n[cyan]Starting agentdash at http://{host}:{port}[/cyan]")
    console.print(f"[dim]Workspaces: {config.workspaces_dir}[/dim]")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    run_server(host=host, port=port, config_path=Path.cwd(), log_level=log_level)


@click.command("config")
def show_config() -> None:
    """Print the effective configuration as YAML."""
    try:
        config = load_config()
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise SystemExit(1)

    # Raw print so the output can be piped back into a config file
    print(yaml.safe_dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False), end="")
