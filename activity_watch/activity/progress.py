"""Redrawable progress line for activity waits.

Shows a pulsing bar, the time elapsed since the activity started and one or
more custom fields (the activity state, or a per-state count summary). The
line is rendered with a transient Rich progress display that is refreshed
explicitly on each tick and suspended while log output is printed, so
printed lines never land in the middle of a redraw. When the console is not
an interactive terminal every call is a no-op.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import timedelta

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn


STATE_TEMPLATE = "{elapsed:>8} ({state})"
STATES_TEMPLATE = "{elapsed:>8} ({states})"


def format_elapsed(seconds: float) -> str:
    """Format elapsed seconds as H:MM:SS."""
    return str(timedelta(seconds=max(0, int(seconds))))


def _resolve_rich(use_rich: bool | None, console: Console) -> bool:
    """Determine whether to draw the progress line on this console."""
    if use_rich is not None:
        return use_rich
    from activity_watch.cli.rich_output import should_use_rich

    return console.is_terminal and should_use_rich(console.file)


class ActivityProgress:
    """Progress line showing elapsed time and custom fields.

    Parameters
    ----------
    console:
        Console the line is drawn on (usually stderr).
    start_time:
        Unix timestamp the elapsed time is measured from; defaults to now.
    template:
        ``str.format`` template receiving ``elapsed`` and the custom fields.
    use_rich:
        Force the display on or off; autodetected when None.
    clock:
        Time source, replaceable in tests.
    """

    def __init__(
        self,
        console: Console,
        start_time: float | None = None,
        template: str = STATE_TEMPLATE,
        use_rich: bool | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.console = console
        self.template = template
        self._clock = clock
        self.start_time = start_time if start_time is not None else clock()
        self._fields: dict[str, str] = {}
        self._use_rich = _resolve_rich(use_rich, console)
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None

    @property
    def enabled(self) -> bool:
        return self._use_rich

    def render(self, elapsed: float, fields: dict[str, str]) -> str:
        """Render the text of the progress line."""
        return self.template.format(elapsed=format_elapsed(elapsed), **fields)

    def _line(self) -> str:
        return self.render(self._clock() - self.start_time, self._fields)

    def start(self, **fields: str) -> None:
        """Draw the line for the first time."""
        self._fields.update(fields)
        if not self._use_rich:
            return
        self._progress = Progress(
            BarColumn(bar_width=28),
            TextColumn("{task.description}", markup=False),
            console=self.console,
            transient=True,
            auto_refresh=False,
        )
        self._progress.start()
        self._task_id = self._progress.add_task(self._line(), total=None)
        self._progress.refresh()

    def advance(self, **fields: str) -> None:
        """Update the given fields and redraw the line."""
        self._fields.update(fields)
        if self._progress is None or self._task_id is None:
            return
        self._progress.update(self._task_id, advance=1, description=self._line())
        self._progress.refresh()

    @contextmanager
    def suspend(self) -> Iterator[None]:
        """Clear the line for the duration of the block, then redraw it."""
        if self._progress is None:
            yield
            return
        self._progress.stop()
        try:
            yield
        finally:
            self._progress.start()
            self.advance()

    def finish(self) -> None:
        """Remove the line."""
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task_id = None


__all__ = [
    "STATES_TEMPLATE",
    "STATE_TEMPLATE",
    "ActivityProgress",
    "format_elapsed",
]
