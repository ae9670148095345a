"""Incremental reading of activity logs.

The log of a running activity is a remote resource delivering one JSON
record per line, growing while the activity runs. ``LogStreamReader``
opens it (retrying while the platform is not ready to serve it yet) and
returns a ``LogStream``. A daemon thread moves raw chunks from the HTTP
response into a queue, so the waiter can poll for data with a bounded wait
and never blocks on the network while it has a progress display to keep
alive.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

import httpx

from activity_watch.models import Activity, LogItem

if TYPE_CHECKING:
    from activity_watch.activity.progress import ActivityProgress
    from activity_watch.api.client import PlatformClient

logger = logging.getLogger(__name__)

# Give up opening a log stream after this many seconds
STREAM_OPEN_TIMEOUT = 120.0
# Timeout for each attempt at opening the stream (seconds)
STREAM_ATTEMPT_TIMEOUT = 10.0
# Delay between attempts (seconds)
STREAM_RETRY_INTERVAL = 0.5
# Default bound for poll_readable (seconds)
DEFAULT_POLL_WAIT = 0.2

_EOF = object()


class StreamUnavailable(Exception):
    """Raised when an activity log stream cannot be opened in time."""


class LogLineBuffer:
    """Splits a byte stream into complete lines and decodes them.

    Anything after the last newline is kept as the residual and completed
    by later chunks.
    """

    def __init__(self) -> None:
        self.residual = b""

    def feed(self, data: bytes) -> list[LogItem]:
        """Append data and return the log items of all complete lines."""
        self.residual += data
        last_newline = self.residual.rfind(b"\n")
        if last_newline == -1:
            return []
        content = self.residual[: last_newline + 1]
        self.residual = self.residual[last_newline + 1 :]
        return LogItem.multiple_from_json_stream(
            content.decode("utf-8", errors="replace")
        )

    def flush(self) -> list[LogItem]:
        """Decode whatever is left once the stream has ended."""
        content, self.residual = self.residual, b""
        if not content.strip():
            return []
        return LogItem.multiple_from_json_stream(
            content.decode("utf-8", errors="replace")
        )


class LogStream:
    """A non-blocking view over an incrementally delivered activity log."""

    def __init__(
        self,
        chunks: Iterable[bytes],
        close: Callable[[], None] | None = None,
    ) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._pending: list[object] = []
        self._buffer = LogLineBuffer()
        self._ended = False
        self._closed = False
        self._close = close
        self._thread = threading.Thread(
            target=self._pump,
            args=(chunks,),
            name="activity-log-reader",
            daemon=True,
        )
        self._thread.start()

    @classmethod
    def from_response(cls, response: httpx.Response) -> LogStream:
        """Wrap a streamed HTTP response."""
        return cls(response.iter_bytes(), close=response.close)

    def _pump(self, chunks: Iterable[bytes]) -> None:
        try:
            for chunk in chunks:
                if chunk:
                    self._queue.put(chunk)
        except (httpx.HTTPError, httpx.StreamError) as e:
            if self._closed:
                logger.debug("Log stream closed while reading: %s", e)
            else:
                logger.warning("Activity log stream interrupted: %s", e)
        finally:
            self._queue.put(_EOF)

    @property
    def eof(self) -> bool:
        """True once the remote log has ended and everything has been read."""
        return self._ended

    @property
    def residual(self) -> bytes:
        return self._buffer.residual

    def poll_readable(self, max_wait: float = DEFAULT_POLL_WAIT) -> bool:
        """Wait up to ``max_wait`` seconds for data; False on timeout."""
        if self._pending:
            return True
        try:
            chunk = self._queue.get(timeout=max_wait)
        except queue.Empty:
            return False
        self._pending.append(chunk)
        return True

    def read_available(self) -> list[LogItem]:
        """Read all buffered data and return the complete log items in it.

        An empty list only means no complete line has arrived yet.
        """
        data = []
        while True:
            if self._pending:
                chunk = self._pending.pop(0)
            else:
                try:
                    chunk = self._queue.get_nowait()
                except queue.Empty:
                    break
            if chunk is _EOF:
                self._ended = True
                break
            data.append(chunk)

        items = self._buffer.feed(b"".join(data))  # type: ignore[arg-type]
        if self._ended:
            items.extend(self._buffer.flush())
        return items

    def close(self) -> None:
        self._closed = True
        if self._close is not None:
            self._close()

    def __enter__(self) -> LogStream:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class LogStreamReader:
    """Opens activity log streams, retrying until the log is available.

    Parameters
    ----------
    client:
        API client providing ``open_log``.
    timeout:
        Seconds after which opening gives up with ``StreamUnavailable``.
    attempt_timeout:
        Timeout for each individual attempt.
    retry_interval:
        Seconds to sleep between attempts.
    clock, sleep:
        Time sources, replaceable in tests.
    """

    def __init__(
        self,
        client: PlatformClient,
        timeout: float = STREAM_OPEN_TIMEOUT,
        attempt_timeout: float = STREAM_ATTEMPT_TIMEOUT,
        retry_interval: float = STREAM_RETRY_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.timeout = timeout
        self.attempt_timeout = attempt_timeout
        self.retry_interval = retry_interval
        self._clock = clock
        self._sleep = sleep

    def open(
        self, activity: Activity, progress: ActivityProgress | None = None
    ) -> LogStream:
        """Open the log stream of an activity.

        The progress indicator is advanced around each retry delay so the
        display stays alive while the platform prepares the log.

        Raises:
            StreamUnavailable: If no stream could be opened within ``timeout``
        """
        start = self._clock()
        attempt = 0
        while True:
            attempt += 1
            try:
                response = self.client.open_log(activity, timeout=self.attempt_timeout)
            except httpx.HTTPError as e:
                elapsed = self._clock() - start
                if elapsed > self.timeout:
                    raise StreamUnavailable(
                        f"Failed to open activity log stream for {activity.id} "
                        f"after {attempt} attempts ({elapsed:.0f}s)"
                    ) from e
                logger.debug(
                    "Log stream for %s not available (attempt %d, %.1fs): %s",
                    activity.id,
                    attempt,
                    elapsed,
                    e,
                )
                if progress is not None:
                    progress.advance()
                self._sleep(self.retry_interval)
                if progress is not None:
                    progress.advance()
                continue

            logger.debug("Opened log stream for %s (attempt %d)", activity.id, attempt)
            return LogStream.from_response(response)


__all__ = [
    "LogLineBuffer",
    "LogStream",
    "LogStreamReader",
    "StreamUnavailable",
]
