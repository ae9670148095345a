"""Display formatting for activity states, results, descriptions and logs.

Labels and descriptions are returned as rich markup strings, ready to be
printed on a ``rich.console.Console``.
"""

from __future__ import annotations

import html
import re
from collections.abc import Iterable

from rich.markup import escape

from activity_watch.models import (
    Activity,
    ActivityResult,
    ActivityState,
    LogItem,
    Result,
    State,
)

EMPHASIS_STYLE = "underline"
ERROR_STYLE = "bold white on red"

_TAG_RE = re.compile(r"(<[^>]+>)")


def format_state(state: State | str) -> str:
    """Format a state for display; unknown codes pass through unchanged."""
    if isinstance(state, str):
        state = ActivityState.parse(state)
    return state.label


def format_result(result: Result | str, decorate: bool = True) -> str:
    """Format a result for display.

    Args:
        result: Result member or raw result code
        decorate: Wrap a failure in error markup
    """
    if result is None:
        return ""
    if isinstance(result, str):
        result = ActivityResult.parse(result)
    name = result.label
    if decorate and result is ActivityResult.FAILURE:
        return f"[{ERROR_STYLE}]{name}[/{ERROR_STYLE}]"
    return name


def get_formatted_description(activity: Activity, with_decoration: bool = True) -> str:
    """Get the description of an activity for display.

    Undecorated, the inline markup is stripped and entities are decoded.
    Decorated, opening inline tags become emphasis, closing tags close it,
    literal text that rich would read as markup is escaped, and entities
    are decoded.
    """
    value = activity.description
    if not with_decoration:
        return html.unescape(_TAG_RE.sub("", value))

    parts = []
    depth = 0
    for token in _TAG_RE.split(value):
        if not token:
            continue
        if _TAG_RE.fullmatch(token):
            if token.startswith("</"):
                if depth > 0:
                    parts.append("[/]")
                    depth -= 1
            else:
                parts.append(f"[{EMPHASIS_STYLE}]")
                depth += 1
            continue
        parts.append(escape(html.unescape(token)))
    parts.extend("[/]" for _ in range(depth))
    return "".join(parts)


def format_log(
    items: Iterable[LogItem],
    timestamps: bool | str = False,
    date_format: str | None = None,
) -> str:
    """Format log items for display.

    Args:
        items: Log items, whose messages carry their own line endings
        timestamps: False for no timestamps, True for the configured date
            format, or an explicit strftime format
        date_format: Format used when ``timestamps`` is True
    """
    timestamp_format: str | None = None
    if timestamps is not False:
        if isinstance(timestamps, str) and timestamps:
            timestamp_format = timestamps
        else:
            if date_format is None:
                from activity_watch.settings import get_date_format

                date_format = get_date_format()
            timestamp_format = date_format

    lines = []
    for item in items:
        if timestamp_format is not None and item.time is not None:
            lines.append(f"[{item.time.strftime(timestamp_format)}] {item.message}")
        else:
            lines.append(item.message)
    return "".join(lines)


def indent(text: str, prefix: str = "    ") -> str:
    """Indent every line of a multi-line string."""
    return "".join(prefix + line for line in text.splitlines(keepends=True))


__all__ = [
    "format_log",
    "format_result",
    "format_state",
    "get_formatted_description",
    "indent",
]
