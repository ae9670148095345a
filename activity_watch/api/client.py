"""HTTP client for the platform activities API.

Thin transport layer used by the waiters: it fetches activity snapshots,
bulk-lists a project's recent activities and opens activity log resources.

Usage:
    with PlatformClient("https://api.platform.sh/api", token="...") as client:
        activity = client.get_activity("abcdef123", "qx7zvbsaxm4ba")
        activity = client.refresh(activity)
"""

import logging
from datetime import datetime

import httpx

from activity_watch.models import Activity, LogItem

logger = logging.getLogger(__name__)

# Connection timeout (seconds)
CONNECT_TIMEOUT = 10.0
# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 30.0


class ApiError(Exception):
    """Raised when the API answers with an error status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PlatformClient:
    """Client for the platform REST API.

    The underlying ``httpx.Client`` is created lazily and shared by all
    calls; close it with ``close()`` or by using the client as a context
    manager.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize client.

        Args:
            base_url: API base URL (defaults to settings)
            token: Bearer token (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
            transport: Optional httpx transport, used by tests
        """
        if base_url is None or token is None or timeout is None:
            from activity_watch.settings import (
                get_api_token,
                get_api_url,
                get_request_timeout,
            )

            base_url = base_url or get_api_url()
            token = token if token is not None else get_api_token()
            timeout = timeout or get_request_timeout()
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.Client(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.timeout, connect=CONNECT_TIMEOUT),
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "PlatformClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _get_json(self, url: str, params: dict | None = None):
        response = self._get_client().get(url, params=params)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ApiError(
                f"API request failed: GET {response.url} "
                f"returned {response.status_code}",
                status_code=response.status_code,
            ) from e
        return response.json()

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    def get_activity(self, activity_id: str, project_id: str) -> Activity:
        """Fetch one activity by id."""
        data = self._get_json(f"/projects/{project_id}/activities/{activity_id}")
        return Activity.from_api(data, project_id=project_id)

    def refresh(self, activity: Activity) -> Activity:
        """Fetch the latest snapshot of an activity."""
        if activity.project_id is None:
            raise ApiError(f"Activity {activity.id} has no owning project")
        logger.debug("Refreshing activity %s", activity.id)
        return self.get_activity(activity.id, activity.project_id)

    def list_activities(
        self,
        project_id: str,
        starts_at: datetime | None = None,
    ) -> list[Activity]:
        """List a project's activities, newest first.

        Args:
            project_id: Owning project
            starts_at: Only list activities created at or after this time
        """
        params: dict[str, str] = {}
        if starts_at is not None:
            params["starts_at"] = starts_at.isoformat()
        data = self._get_json(f"/projects/{project_id}/activities", params=params)
        logger.debug(
            "Listed %d activities for project %s (starts_at=%s)",
            len(data),
            project_id,
            params.get("starts_at"),
        )
        return [Activity.from_api(item, project_id=project_id) for item in data]

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------

    def _log_url(self, activity: Activity) -> str:
        if activity.log_url:
            return activity.log_url
        if activity.project_id is None:
            raise ApiError(f"Activity {activity.id} has no log link")
        return f"/projects/{activity.project_id}/activities/{activity.id}/log"

    def open_log(self, activity: Activity, timeout: float) -> httpx.Response:
        """Open the activity log as a streamed response.

        The caller owns the returned response and must close it. ``timeout``
        bounds connecting and waiting for the response headers; reading the
        body is unbounded since a pending activity may stay silent for a
        long time.

        Raises:
            httpx.HTTPError: If the stream cannot be established
        """
        client = self._get_client()
        request = client.build_request(
            "GET",
            self._log_url(activity),
            timeout=httpx.Timeout(timeout),
        )
        response = client.send(request, stream=True)
        if response.is_error:
            response.close()
            response.raise_for_status()
        # The transport reads this mapping on every body read
        response.request.extensions["timeout"]["read"] = None
        return response

    def read_log(self, activity: Activity) -> list[LogItem]:
        """Fetch the complete log of a finished activity."""
        response = self._get_client().get(self._log_url(activity))
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ApiError(
                f"Failed to read log for activity {activity.id}",
                status_code=response.status_code,
            ) from e
        return LogItem.multiple_from_json_stream(response.text)


__all__ = ["ApiError", "PlatformClient"]
