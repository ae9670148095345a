"""Platform API transport used by the activity waiters."""

from activity_watch.api.client import ApiError, PlatformClient

__all__ = ["ApiError", "PlatformClient"]
