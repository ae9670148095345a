"""Activity and log data model.

Activities are immutable snapshots of a remote operation. Waiters never
mutate them: a refresh or a bulk listing returns a fresher snapshot that
replaces the local reference.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnrecognizedCode:
    """A state or result code this client does not know about.

    Displayed as its raw value so newer server-side codes still show
    something meaningful.
    """

    raw: str

    @property
    def label(self) -> str:
        return self.raw

    @property
    def is_terminal(self) -> bool:
        return False

    def __str__(self) -> str:
        return self.raw


class ActivityState(Enum):
    """Lifecycle state of an activity."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return _STATE_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return self in (ActivityState.COMPLETE, ActivityState.CANCELLED)

    @classmethod
    def parse(cls, code: str) -> ActivityState | UnrecognizedCode:
        try:
            return cls(code)
        except ValueError:
            return UnrecognizedCode(code)


class ActivityResult(Enum):
    """Outcome of a terminal activity."""

    SUCCESS = "success"
    FAILURE = "failure"

    @property
    def label(self) -> str:
        return _RESULT_LABELS[self]

    @classmethod
    def parse(cls, code: str | None) -> ActivityResult | UnrecognizedCode | None:
        if code is None:
            return None
        try:
            return cls(code)
        except ValueError:
            return UnrecognizedCode(code)


_STATE_LABELS = {
    ActivityState.PENDING: "pending",
    ActivityState.IN_PROGRESS: "in progress",
    ActivityState.COMPLETE: "complete",
    ActivityState.CANCELLED: "cancelled",
}

_RESULT_LABELS = {
    ActivityResult.SUCCESS: "success",
    ActivityResult.FAILURE: "failure",
}

State = ActivityState | UnrecognizedCode
Result = ActivityResult | UnrecognizedCode | None


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp as returned by the API."""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Unparseable timestamp: %r", value)
        return None


@dataclass(frozen=True)
class Activity:
    """Snapshot of a remote asynchronous operation."""

    id: str
    project_id: str | None = None
    state: State = ActivityState.PENDING
    result: Result = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    description: str = ""
    log_url: str | None = None
    type: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def start_time(self) -> datetime | None:
        """When the activity started, falling back to its creation time."""
        return self.started_at or self.created_at

    @classmethod
    def from_api(cls, data: dict[str, Any], project_id: str | None = None) -> Activity:
        """Build a snapshot from an API activity document."""
        links = data.get("_links") or {}
        log_link = links.get("log") or {}
        return cls(
            id=data["id"],
            project_id=data.get("project") or project_id,
            state=ActivityState.parse(data.get("state", "pending")),
            result=ActivityResult.parse(data.get("result")),
            created_at=parse_timestamp(data.get("created_at")),
            started_at=parse_timestamp(data.get("started_at")),
            description=data.get("description") or "",
            log_url=log_link.get("href"),
            type=data.get("type", ""),
        )


@dataclass(frozen=True)
class LogItem:
    """One decoded log record."""

    message: str
    time: datetime | None = None

    @classmethod
    def from_json(cls, line: str) -> LogItem | None:
        """Decode one JSON log record, or return None if it is not one.

        The platform nests the message under ``data.message``; a top-level
        ``message`` is accepted as well.
        """
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            return None
        if not isinstance(record, dict):
            return None
        data = record.get("data")
        if isinstance(data, dict) and isinstance(data.get("message"), str):
            message = data["message"]
        elif isinstance(record.get("message"), str):
            message = record["message"]
        else:
            return None
        return cls(message=message, time=parse_timestamp(record.get("timestamp")))

    @classmethod
    def multiple_from_json_stream(cls, content: str) -> list[LogItem]:
        """Decode newline-delimited JSON records, dropping undecodable lines."""
        items = []
        for line in content.split("\n"):
            if not line.strip():
                continue
            item = cls.from_json(line)
            if item is None:
                logger.debug("Dropping undecodable log line: %.80r", line)
                continue
            items.append(item)
        return items


__all__ = [
    "Activity",
    "ActivityResult",
    "ActivityState",
    "LogItem",
    "Result",
    "State",
    "UnrecognizedCode",
    "parse_timestamp",
]
