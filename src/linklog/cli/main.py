"""Main CLI entry point for linklog.

Defines the CLI group and registers all subcommands.

Commands:
    config   - Configuration management (init, show, path)
    logs     - Durable log store (show, status, export, clear)
    session  - Session record (show, renew)

Subcommand help:
    linklog COMMAND -h         Show help for a specific command
"""

from __future__ import annotations

__all__ = ["cli"]

import sys

import click

from linklog import __version__

from .commands.config import config
from .commands.logs import logs
from .commands.session import session


class ReorderedGroup(click.Group):
    """Custom group that shows commands before custom help text."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Add extra help after commands section."""
        formatter.write(
            """
Quick Start:
  linklog config init                      Write a config file with defaults
  linklog logs show -n 20                  Show the 20 newest entries
  linklog logs show --min-level ERROR      Show errors and fatals only
  linklog logs export -f csv -o logs.csv   Export the durable store as CSV
  linklog session show                     Show the current session record
"""
        )


@click.group(
    cls=ReorderedGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """linklog: logging and telemetry pipeline for the URL shortener."""
    if version:
        click.echo(f"linklog {__version__}")
        sys.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Register commands
cli.add_command(config)
cli.add_command(logs)
cli.add_command(session)


def main() -> None:
    """CLI entry point."""
    cli()
