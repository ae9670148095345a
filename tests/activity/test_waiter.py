"""Tests for activity/waiter.py - single and batch waits."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, call, patch

import pytest

from activity_watch.activity.log_stream import StreamUnavailable
from activity_watch.activity.waiter import (
    ActivityWaiter,
    DisplayState,
    summarize_states,
)
from activity_watch.models import (
    ActivityResult,
    ActivityState,
    LogItem,
    UnrecognizedCode,
)

COMPLETE = ActivityState.COMPLETE
PENDING = ActivityState.PENDING
SUCCESS = ActivityResult.SUCCESS
FAILURE = ActivityResult.FAILURE


@pytest.fixture
def make_waiter(client, console, log_console, stream_reader):
    """Waiter wired to mocks, with a frozen clock and a recorded sleep."""

    def _make(chunks=None, reader=None):
        waiter = ActivityWaiter(
            client,
            console=console,
            log_console=log_console,
            stream_reader=reader or stream_reader(chunks),
            date_format="%H:%M:%S",
            use_rich=False,
            sleep=MagicMock(),
            clock=lambda: 0.0,
        )
        return waiter

    return _make


class TestDisplayState:
    def test_shows_actual_without_override(self):
        display = DisplayState(PENDING)
        assert display.shown is PENDING

    def test_override_until_refresh(self):
        display = DisplayState(PENDING)
        display.override = ActivityState.IN_PROGRESS
        assert display.shown is ActivityState.IN_PROGRESS
        assert display.actual is PENDING

        display.refreshed(PENDING)
        assert display.override is None
        assert display.shown is PENDING


class TestSummarizeStates:
    def test_counts_in_first_seen_order(self, make_activity):
        activities = [
            make_activity("a", PENDING),
            make_activity("b", COMPLETE),
            make_activity("c", PENDING),
            make_activity("d", UnrecognizedCode("staged")),
        ]
        assert summarize_states(activities) == "2 pending, 1 complete, 1 staged"


class TestWaitAndLog:
    """Tests for the single-activity waiter."""

    def test_success_streams_log(
        self, make_waiter, make_activity, client, console, log_console, log_line, output_of
    ):
        activity = make_activity("a1", COMPLETE, SUCCESS)
        waiter = make_waiter([log_line("Building\n"), log_line("Deployed\n")])

        assert waiter.wait_and_log(activity) is True

        assert output_of(log_console) == "Building\nDeployed\n"
        text = output_of(console)
        assert "Waiting for the activity a1 (Alice pushed to main):" in text
        assert "Activity a1 succeeded" in text
        client.refresh.assert_not_called()

    def test_cancelled(self, make_waiter, make_activity, console, output_of):
        activity = make_activity("a1", ActivityState.CANCELLED, FAILURE)
        assert make_waiter().wait_and_log(activity) is False
        assert "The activity a1 was cancelled" in output_of(console)

    def test_failed(self, make_waiter, make_activity, console, output_of):
        activity = make_activity("a1", COMPLETE, FAILURE)
        assert make_waiter().wait_and_log(activity) is False
        text = output_of(console)
        assert "Activity a1 failed" in text
        assert "cancelled" not in text

    def test_unknown_result(self, make_waiter, make_activity, console, output_of):
        activity = make_activity("a1", COMPLETE, UnrecognizedCode("partial"))
        assert make_waiter().wait_and_log(activity) is False
        assert "finished with an unknown result" in output_of(console)

    def test_exactly_one_outcome_line(self, make_waiter, make_activity, console, output_of):
        activity = make_activity("a1", COMPLETE, SUCCESS)
        make_waiter().wait_and_log(activity, context=False)
        assert output_of(console).strip().splitlines() == ["Activity a1 succeeded"]

    def test_refreshes_until_terminal(
        self, make_waiter, make_activity, client, log_console, log_line, output_of
    ):
        pending = make_activity("a1", PENDING)
        done = make_activity("a1", COMPLETE, SUCCESS)
        client.refresh.return_value = done
        waiter = make_waiter([log_line("step\n")])

        assert waiter.wait_and_log(pending) is True

        client.refresh.assert_called_once_with(pending)
        assert output_of(log_console) == "step\n"

    def test_refreshes_on_poll_interval(self, client, console, log_console, make_activity):
        """The activity is refreshed every poll interval while the log is open."""
        stream = MagicMock()
        stream.__enter__.return_value = stream
        stream.eof = False
        stream.poll_readable.return_value = False
        reader = MagicMock()
        reader.open.return_value = stream

        times = iter([0.0, 1.0, 3.5, 3.5, 4.0])
        pending = make_activity("a1", PENDING)
        client.refresh.return_value = make_activity("a1", COMPLETE, SUCCESS)

        def refresh(activity):
            stream.eof = True
            return make_activity("a1", COMPLETE, SUCCESS)

        client.refresh.side_effect = refresh
        waiter = ActivityWaiter(
            client,
            console=console,
            log_console=log_console,
            stream_reader=reader,
            use_rich=False,
            clock=lambda: next(times),
        )

        assert waiter.wait_and_log(pending, poll_interval=3) is True
        client.refresh.assert_called_once()
        assert stream.poll_readable.call_count == 2

    def test_timestamps(self, make_waiter, make_activity, log_console, log_line, output_of):
        activity = make_activity("a1", COMPLETE, SUCCESS)
        waiter = make_waiter([log_line("Building\n", "2024-05-01T12:00:03Z")])

        waiter.wait_and_log(activity, timestamps=True)
        assert output_of(log_console) == "[12:00:03] Building\n"

    def test_pending_shown_in_progress_once_log_arrives(
        self, make_waiter, make_activity, client, log_line
    ):
        pending = make_activity("a1", PENDING)
        client.refresh.return_value = make_activity("a1", COMPLETE, SUCCESS)
        waiter = make_waiter([log_line("step\n")])

        shown = []
        with patch("activity_watch.activity.waiter.ActivityProgress") as progress_cls:
            progress = progress_cls.return_value
            progress.suspend.return_value.__enter__.return_value = None
            progress.advance.side_effect = lambda **fields: shown.append(fields.get("state"))
            waiter.wait_and_log(pending)

        assert "in progress" in shown
        # After the refresh the override is gone and the real state is shown
        assert shown[-1] == "complete"
        progress.finish.assert_called_once()

    def test_stream_unavailable_propagates(self, make_waiter, make_activity):
        reader = MagicMock()
        reader.open.side_effect = StreamUnavailable("no log")
        waiter = make_waiter(reader=reader)

        with pytest.raises(StreamUnavailable):
            waiter.wait_and_log(make_activity("a1", PENDING))


class TestWaitMultiple:
    """Tests for the batch waiter."""

    def test_empty_returns_true_silently(self, make_waiter, client, console, output_of):
        waiter = make_waiter()
        assert waiter.wait_multiple([]) is True
        assert output_of(console) == ""
        assert client.mock_calls == []
        waiter._sleep.assert_not_called()

    def test_single_activity_delegates(self, make_waiter, make_activity, client):
        activity = make_activity("a1", COMPLETE, SUCCESS)
        waiter = make_waiter()
        with patch.object(waiter, "wait_and_log", return_value=True) as wait_and_log:
            assert waiter.wait_multiple([activity]) is True
        wait_and_log.assert_called_once_with(activity)
        client.list_activities.assert_not_called()

    def test_single_activity_streams_inline(
        self, make_waiter, make_activity, client, log_console, log_line, output_of
    ):
        activity = make_activity("a1", COMPLETE, SUCCESS)
        waiter = make_waiter([log_line("inline\n")])
        assert waiter.wait_multiple([activity]) is True
        assert output_of(log_console) == "inline\n"
        client.read_log.assert_not_called()

    def test_listed_replace_unlisted_refresh(self, make_waiter, make_activity, client):
        early = datetime(2024, 5, 1, 11, 0, tzinfo=timezone.utc)
        latest = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        listed = make_activity("b1", PENDING, created_at=latest)
        unlisted_pending = make_activity("b2", PENDING, created_at=early)
        unlisted_done = make_activity("b3", COMPLETE, SUCCESS, created_at=early)

        client.list_activities.return_value = [
            make_activity("b1", COMPLETE, SUCCESS, created_at=latest),
            make_activity("other", PENDING, created_at=latest),
        ]
        client.refresh.return_value = make_activity("b2", COMPLETE, SUCCESS, created_at=early)
        waiter = make_waiter()

        assert waiter.wait_multiple([listed, unlisted_pending, unlisted_done]) is True

        client.list_activities.assert_called_once_with("proj1", starts_at=latest)
        client.refresh.assert_called_once_with(unlisted_pending)
        waiter._sleep.assert_called_once_with(1.0)

    def test_explicit_project(self, make_waiter, make_activity, client):
        activities = [make_activity("c1", COMPLETE, SUCCESS), make_activity("c2", COMPLETE, SUCCESS)]
        client.list_activities.return_value = []
        make_waiter().wait_multiple(activities, project_id="other-project")
        assert client.list_activities.call_args.args == ("other-project",)
        client.refresh.assert_not_called()

    def test_end_to_end(self, make_waiter, make_activity, client, console, output_of):
        a1 = make_activity("a1", COMPLETE, SUCCESS)
        a2 = make_activity("a2", COMPLETE, FAILURE, description="Backup of <environment>main</environment>")
        a3 = make_activity("a3", PENDING)
        a3_done = make_activity("a3", COMPLETE, SUCCESS)

        client.list_activities.side_effect = [[a3, a2, a1], [a3_done]]
        client.read_log.return_value = [
            LogItem("Creating snapshot\n"),
            LogItem("Error: disk full\n"),
        ]
        waiter = make_waiter()

        assert waiter.wait_multiple([a1, a2, a3]) is False

        assert waiter._sleep.call_count == 2
        assert client.list_activities.call_count == 2
        client.refresh.assert_not_called()
        client.read_log.assert_called_once_with(a2)

        lines = output_of(console).splitlines()
        assert lines[0] == "Waiting for 3 activities..."
        assert lines[1:] == [
            "Activity a1 succeeded: Alice pushed to main",
            "Activity a2 failed",
            "  Description: Backup of main",
            "  Log:",
            "    Creating snapshot",
            "    Error: disk full",
            "Activity a3 succeeded: Alice pushed to main",
        ]

    def test_unlisted_refreshed_each_tick_until_terminal(
        self, make_waiter, make_activity, client
    ):
        a1 = make_activity("a1", PENDING)
        a2 = make_activity("a2", COMPLETE, SUCCESS)
        client.list_activities.return_value = []
        client.refresh.side_effect = [
            make_activity("a1", ActivityState.IN_PROGRESS),
            make_activity("a1", COMPLETE, SUCCESS),
        ]
        waiter = make_waiter()

        assert waiter.wait_multiple([a1, a2]) is True
        assert client.refresh.call_count == 2
        assert client.refresh.call_args_list[0] == call(a1)
        assert waiter._sleep.call_count == 2

    def test_cancelled_and_unknown_results(
        self, make_waiter, make_activity, client, console, output_of
    ):
        cancelled = make_activity("x1", ActivityState.CANCELLED, FAILURE)
        unknown = make_activity("x2", COMPLETE, None)
        client.list_activities.return_value = [cancelled, unknown]
        client.read_log.return_value = []

        assert make_waiter().wait_multiple([cancelled, unknown]) is False
        text = output_of(console)
        assert "Activity x1 was cancelled" in text
        assert "Activity x2 finished with an unknown result" in text
        client.read_log.assert_called_once_with(cancelled)
