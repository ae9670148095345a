"""CLI interface for activity-watch.

Commands that follow platform activities until they finish.
"""

import logging as _logging

import click
from dotenv import load_dotenv

from activity_watch import __version__

# Load environment variables from .env file
load_dotenv(override=True)

logger = _logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    help="Show the activity-watch version and exit.",
)
@click.pass_context
def main(ctx: click.Context, version: bool) -> None:
    """activity-watch - follow platform activities until they finish.

    \b
      activity-watch wait ID -p PROJECT          Stream the log of one activity
      activity-watch wait ID1 ID2 -p PROJECT     Wait for several activities
      activity-watch log ID -p PROJECT           Print (or follow) an activity log
      activity-watch show ID -p PROJECT          Show an activity's state
    """
    if version:
        click.echo(__version__)
        ctx.exit()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def register_commands() -> None:
    """Register all commands with the main CLI."""
    from activity_watch.cli.activity import log, show, wait

    main.add_command(wait)
    main.add_command(log)
    main.add_command(show)


# Register commands at import time
register_commands()

__all__ = ["main"]
