"""Waiting for activities to finish.

``ActivityWaiter.wait_and_log`` follows one activity, printing its log as
it arrives while a progress line shows the elapsed time and state.
``ActivityWaiter.wait_multiple`` follows several activities at once,
refreshing them with one bulk listing per tick, and prints the full log of
each failed activity at the end.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from rich.console import Console
from rich.markup import escape

from activity_watch.activity.formatting import (
    format_log,
    format_state,
    get_formatted_description,
    indent,
)
from activity_watch.activity.log_stream import DEFAULT_POLL_WAIT, LogStreamReader
from activity_watch.activity.progress import (
    STATE_TEMPLATE,
    STATES_TEMPLATE,
    ActivityProgress,
)
from activity_watch.api.client import PlatformClient
from activity_watch.models import Activity, ActivityResult, ActivityState, State

logger = logging.getLogger(__name__)

# Seconds between bulk refreshes while waiting for several activities
BATCH_TICK = 1.0


@dataclass
class DisplayState:
    """State shown on the progress line.

    ``override`` is a cosmetic state shown until the next refresh, e.g.
    "in progress" once log output arrives for an activity still reported
    as pending. It is never written back to the activity.
    """

    actual: State
    override: ActivityState | None = None

    @property
    def shown(self) -> State:
        return self.override or self.actual

    def refreshed(self, state: State) -> None:
        self.actual = state
        self.override = None


def summarize_states(activities: Iterable[Activity]) -> str:
    """Comma-joined count per state, e.g. ``2 pending, 1 complete``."""
    counts: dict[str, int] = {}
    for activity in activities:
        label = format_state(activity.state)
        counts[label] = counts.get(label, 0) + 1
    return ", ".join(f"{count} {label}" for label, count in counts.items())


class ActivityWaiter:
    """Waits for activities, showing progress and logs on the console.

    Parameters
    ----------
    client:
        API client used for refreshes, listings and logs.
    console:
        Console for status messages and the progress line (default stderr).
    log_console:
        Console the streamed log is printed on (default stdout).
    stream_reader:
        Opens log streams; built from ``client`` when omitted.
    date_format:
        strftime format for ``timestamps=True``; from settings when omitted.
    use_rich:
        Force the progress line on or off; autodetected when None.
    sleep, clock:
        Time sources, replaceable in tests.
    """

    def __init__(
        self,
        client: PlatformClient,
        console: Console | None = None,
        log_console: Console | None = None,
        stream_reader: LogStreamReader | None = None,
        date_format: str | None = None,
        use_rich: bool | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.console = console or Console(stderr=True)
        self.log_console = log_console or Console()
        self.stream_reader = stream_reader or LogStreamReader(client)
        self.date_format = date_format
        self.use_rich = use_rich
        self._sleep = sleep
        self._clock = clock

    def _new_progress(self, activity: Activity | None, template: str) -> ActivityProgress:
        start = activity.start_time if activity is not None else None
        return ActivityProgress(
            self.console,
            start_time=start.timestamp() if start is not None else None,
            template=template,
            use_rich=self.use_rich,
        )

    # ------------------------------------------------------------------
    # Single activity
    # ------------------------------------------------------------------

    def wait_and_log(
        self,
        activity: Activity,
        poll_interval: float | None = None,
        timestamps: bool | str = False,
        context: bool = True,
    ) -> bool:
        """Wait for a single activity to complete, and display the log continuously.

        Args:
            activity: The activity
            poll_interval: Seconds between refreshes of the activity
                (default from settings, 3 seconds)
            timestamps: False for none, True for the configured date format,
                or a strftime format
            context: Print a header naming the activity first

        Returns:
            True if the activity succeeded, False otherwise

        Raises:
            StreamUnavailable: If the log stream could not be opened
        """
        if poll_interval is None:
            from activity_watch.settings import get_poll_interval

            poll_interval = get_poll_interval()

        if context:
            self.console.print(
                f"Waiting for the activity [cyan]{escape(activity.id)}[/cyan] "
                f"({get_formatted_description(activity)}):"
            )
            self.console.print()

        display = DisplayState(activity.state)
        progress = self._new_progress(activity, STATE_TEMPLATE)
        progress.start(state=format_state(display.shown))
        try:
            with self.stream_reader.open(activity, progress) as stream:
                progress.advance()
                last_refresh = self._clock()
                while not stream.eof or not activity.is_terminal:
                    # Refresh when the poll interval has passed, or when the
                    # log has ended and there is nothing else to do.
                    if stream.eof or self._clock() - last_refresh >= poll_interval:
                        activity = self.client.refresh(activity)
                        display.refreshed(activity.state)
                        last_refresh = self._clock()

                    progress.advance(state=format_state(display.shown))

                    if not stream.poll_readable(DEFAULT_POLL_WAIT):
                        continue
                    items = stream.read_available()
                    if not items:
                        continue

                    # Log output means the activity has started, whatever the
                    # last refresh said.
                    if activity.state is ActivityState.PENDING:
                        display.override = ActivityState.IN_PROGRESS

                    formatted = format_log(items, timestamps, self.date_format)
                    with progress.suspend():
                        self.log_console.print(
                            formatted,
                            end="",
                            markup=False,
                            highlight=False,
                            emoji=False,
                            soft_wrap=True,
                        )
                    progress.advance(state=format_state(display.shown))
        finally:
            progress.finish()

        return self._report(activity)

    def _report(self, activity: Activity) -> bool:
        activity_id = escape(activity.id)
        if activity.result is ActivityResult.SUCCESS:
            self.console.print(f"Activity [green]{activity_id}[/green] succeeded")
            return True
        if activity.result is ActivityResult.FAILURE:
            if activity.state is ActivityState.CANCELLED:
                self.console.print(f"The activity [red]{activity_id}[/red] was cancelled")
            else:
                self.console.print(f"Activity [red]{activity_id}[/red] failed")
            return False
        logger.debug("Activity %s ended with result %r", activity.id, activity.result)
        self.console.print(
            f"The log for activity [cyan]{activity_id}[/cyan] finished "
            "with an unknown result"
        )
        return False

    # ------------------------------------------------------------------
    # Several activities
    # ------------------------------------------------------------------

    def wait_multiple(
        self, activities: Iterable[Activity], project_id: str | None = None
    ) -> bool:
        """Wait for multiple activities to complete.

        A progress line tracks the states of all activities. The log of an
        activity is only displayed at the end, if it failed. A single
        activity is followed with ``wait_and_log`` instead.

        Args:
            activities: The activities
            project_id: Project to bulk-list activities from; defaults to
                the projects owning the activities

        Returns:
            True if all activities succeeded, False otherwise
        """
        activities = list(activities)
        count = len(activities)
        if count == 0:
            return True
        if count == 1:
            return self.wait_and_log(activities[0])

        self.console.print(f"Waiting for {count} activities...")

        if project_id is not None:
            projects = [project_id]
        else:
            projects = list(dict.fromkeys(a.project_id for a in activities if a.project_id))

        # Only list activities at least as recent as the newest one tracked,
        # rather than the whole history. Older ones are refreshed one by one.
        created = [a.created_at for a in activities if a.created_at is not None]
        most_recent = max(created) if created else None

        progress = self._new_progress(None, STATES_TEMPLATE)
        progress.start(states=summarize_states(activities))
        try:
            done = 0
            tick = 0
            while done < count:
                self._sleep(BATCH_TICK)
                tick += 1
                listed: dict[str, Activity] = {}
                for project in projects:
                    for item in self.client.list_activities(project, starts_at=most_recent):
                        listed[item.id] = item

                done = 0
                for i, activity in enumerate(activities):
                    if activity.id in listed:
                        activities[i] = listed[activity.id]
                    elif not activity.is_terminal:
                        activities[i] = self.client.refresh(activity)
                    if activities[i].is_terminal:
                        done += 1
                logger.debug("Batch tick %d: %d/%d activities done", tick, done, count)
                progress.advance(states=summarize_states(activities))
        finally:
            progress.finish()

        return self._report_multiple(activities)

    def _report_multiple(self, activities: list[Activity]) -> bool:
        success = True
        for activity in activities:
            activity_id = escape(activity.id)
            description = get_formatted_description(activity)
            if activity.result is ActivityResult.SUCCESS:
                self.console.print(
                    f"Activity [green]{activity_id}[/green] succeeded: {description}"
                )
                continue

            success = False
            if activity.result is not ActivityResult.FAILURE:
                self.console.print(
                    f"Activity [cyan]{activity_id}[/cyan] finished with an "
                    f"unknown result: {description}"
                )
                continue

            if activity.state is ActivityState.CANCELLED:
                self.console.print(f"Activity [red]{activity_id}[/red] was cancelled")
            else:
                self.console.print(f"Activity [red]{activity_id}[/red] failed")

            # The activity has finished, so fetch the complete log at once.
            self.console.print(f"  Description: {description}")
            self.console.print("  Log:")
            log = format_log(self.client.read_log(activity), date_format=self.date_format)
            self.console.print(
                indent(log),
                end="",
                markup=False,
                highlight=False,
                emoji=False,
                soft_wrap=True,
            )
        return success


def wait_and_log(
    activity: Activity,
    client: PlatformClient,
    poll_interval: float | None = None,
    timestamps: bool | str = False,
    context: bool = True,
) -> bool:
    """Convenience wrapper around ``ActivityWaiter.wait_and_log``."""
    return ActivityWaiter(client).wait_and_log(
        activity, poll_interval=poll_interval, timestamps=timestamps, context=context
    )


def wait_multiple(activities: Iterable[Activity], client: PlatformClient) -> bool:
    """Convenience wrapper around ``ActivityWaiter.wait_multiple``."""
    return ActivityWaiter(client).wait_multiple(activities)


__all__ = [
    "ActivityWaiter",
    "DisplayState",
    "summarize_states",
    "wait_and_log",
    "wait_multiple",
]
