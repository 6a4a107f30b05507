"""CLI for agentdash."""

import click

from agentdash import __version__


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """agentdash: launch coding agents on GitHub issues and watch them work."""
    pass


from agentdash.cli import server  # noqa: E402

main.add_command(server.serve)
main.add_command(server.show_config)
