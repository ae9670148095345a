"""Test fixtures for activity waiting tests.

Everything runs offline: the API client is a ``MagicMock`` and log streams
are fed from in-memory chunks.

Fixtures:
- ``console`` / ``log_console``: non-terminal Rich consoles writing to StringIO
- ``client``: mocked PlatformClient
- ``make_activity``: builds Activity snapshots
"""

from __future__ import annotations

import io
import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from activity_watch.activity.log_stream import LogStream
from activity_watch.api.client import PlatformClient
from activity_watch.models import Activity, ActivityResult, ActivityState


def output_of(console: Console) -> str:
    """Text written so far to a StringIO-backed console."""
    return console.file.getvalue()  # type: ignore[attr-defined]


def log_line(message: str, timestamp: str | None = None) -> bytes:
    """Encode one platform log record as a JSON line."""
    record: dict = {"data": {"message": message}}
    if timestamp:
        record["timestamp"] = timestamp
    return (json.dumps(record) + "\n").encode()


class FakeStreamReader:
    """Stands in for LogStreamReader, serving fixed chunks."""

    def __init__(self, chunks: list[bytes] | None = None):
        self.chunks = chunks or []
        self.opened: list[Activity] = []

    def open(self, activity, progress=None) -> LogStream:
        self.opened.append(activity)
        return LogStream(iter(self.chunks))


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=200, force_terminal=False, color_system=None)


@pytest.fixture
def log_console() -> Console:
    return Console(file=io.StringIO(), width=200, force_terminal=False, color_system=None)


@pytest.fixture
def client() -> MagicMock:
    return MagicMock(spec=PlatformClient)


@pytest.fixture
def make_activity():
    def _make(
        activity_id: str = "a1",
        state: ActivityState = ActivityState.PENDING,
        result: ActivityResult | None = None,
        created_at: datetime | None = None,
        description: str = "<user>Alice</user> pushed to <environment>main</environment>",
        project_id: str = "proj1",
    ) -> Activity:
        return Activity(
            id=activity_id,
            project_id=project_id,
            state=state,
            result=result,
            created_at=created_at or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            description=description,
            log_url=f"https://api.example.com/projects/{project_id}/activities/{activity_id}/log",
        )

    return _make


@pytest.fixture
def stream_reader():
    """Factory for FakeStreamReader instances."""
    return FakeStreamReader


@pytest.fixture(name="log_line")
def log_line_fixture():
    return log_line


@pytest.fixture(name="output_of")
def output_of_fixture():
    return output_of
