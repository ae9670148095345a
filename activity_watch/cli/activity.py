"""Activity commands: wait, log, show."""

import logging
from contextlib import contextmanager

import click
import httpx
from rich.console import Console
from rich.markup import escape

from activity_watch.activity.formatting import (
    format_log,
    format_result,
    format_state,
    get_formatted_description,
)
from activity_watch.activity.log_stream import StreamUnavailable
from activity_watch.activity.wait_options import should_wait, wait_options
from activity_watch.activity.waiter import ActivityWaiter
from activity_watch.api.client import ApiError, PlatformClient

logger = logging.getLogger(__name__)

project_option = click.option(
    "--project",
    "-p",
    required=True,
    envvar="ACTIVITY_WATCH_PROJECT",
    help="Project ID (or set ACTIVITY_WATCH_PROJECT)",
)


@contextmanager
def _api_errors():
    """Turn API and stream failures into clean CLI errors."""
    try:
        yield
    except (ApiError, StreamUnavailable, httpx.HTTPError) as e:
        logger.debug("Command failed", exc_info=True)
        raise click.ClickException(str(e)) from e


@click.command("wait")
@click.argument("activity_ids", nargs=-1, required=True)
@project_option
@click.option(
    "--poll-interval",
    type=float,
    default=None,
    help="Seconds between activity refreshes while streaming (default: 3)",
)
@click.option("--timestamps", "-t", is_flag=True, help="Prefix log lines with timestamps")
@click.option(
    "--date-format",
    default=None,
    help="strftime format for --timestamps (default from settings)",
)
@click.option("--no-context", is_flag=True, help="Do not print the activity header")
@click.option("--verbose", "-v", is_flag=True, help="Log progress details to stderr")
@click.pass_context
def wait(
    ctx: click.Context,
    activity_ids: tuple[str, ...],
    project: str,
    poll_interval: float | None,
    timestamps: bool,
    date_format: str | None,
    no_context: bool,
    verbose: bool,
) -> None:
    """Wait for one or more activities to finish.

    A single activity has its log streamed live. Several activities are
    tracked together, and the logs of the failed ones are printed at the end.
    Exits with status 1 if any activity did not succeed.

    \b
    Examples:
        activity-watch wait abc123 -p qx7zvbsaxm4ba
        activity-watch wait abc123 def456 -p qx7zvbsaxm4ba
    """
    from activity_watch.cli.logging import configure_cli_logging

    configure_cli_logging("wait", verbose=verbose)

    with PlatformClient() as client, _api_errors():
        activities = [client.get_activity(aid, project) for aid in activity_ids]
        waiter = ActivityWaiter(client, date_format=date_format)
        if len(activities) == 1:
            ok = waiter.wait_and_log(
                activities[0],
                poll_interval=poll_interval,
                timestamps=timestamps,
                context=not no_context,
            )
        else:
            ok = waiter.wait_multiple(activities, project_id=project)

    if not ok:
        ctx.exit(1)


@click.command("log")
@click.argument("activity_id")
@project_option
@click.option("--timestamps", "-t", is_flag=True, help="Prefix log lines with timestamps")
@wait_options
@click.pass_context
def log(
    ctx: click.Context,
    activity_id: str,
    project: str,
    timestamps: bool,
    wait: bool,
    no_wait: bool,
) -> None:
    """Print the log of an activity.

    An activity that is still running is followed until it finishes,
    unless --no-wait is given.
    """
    from activity_watch.cli.logging import configure_cli_logging

    configure_cli_logging("log")

    with PlatformClient() as client, _api_errors():
        activity = client.get_activity(activity_id, project)
        if not activity.is_terminal and should_wait(wait, no_wait):
            ok = ActivityWaiter(client).wait_and_log(
                activity, timestamps=timestamps, context=False
            )
            if not ok:
                ctx.exit(1)
            return
        items = client.read_log(activity)

    click.echo(format_log(items, timestamps), nl=False)


@click.command("show")
@click.argument("activity_id")
@project_option
def show(activity_id: str, project: str) -> None:
    """Show the state, result and description of an activity."""
    console = Console()
    with PlatformClient() as client, _api_errors():
        activity = client.get_activity(activity_id, project)

    console.print(f"[bold]Activity[/bold] [cyan]{escape(activity.id)}[/cyan]")
    console.print(f"  Description: {get_formatted_description(activity)}")
    console.print(f"  State:       {format_state(activity.state)}")
    if activity.result is not None:
        console.print(f"  Result:      {format_result(activity.result)}")
    if activity.created_at is not None:
        console.print(f"  Created:     {activity.created_at.isoformat()}")
