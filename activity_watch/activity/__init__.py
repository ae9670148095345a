"""Waiting for platform activities, with live logs and progress."""

from activity_watch.activity.formatting import (
    format_log,
    format_result,
    format_state,
    get_formatted_description,
)
from activity_watch.activity.log_stream import (
    LogStream,
    LogStreamReader,
    StreamUnavailable,
)
from activity_watch.activity.waiter import ActivityWaiter, wait_and_log, wait_multiple

__all__ = [
    "ActivityWaiter",
    "LogStream",
    "LogStreamReader",
    "StreamUnavailable",
    "format_log",
    "format_result",
    "format_state",
    "get_formatted_description",
    "wait_and_log",
    "wait_multiple",
]
