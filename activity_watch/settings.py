"""Project settings loaded from pyproject.toml [tool.activity-watch] section.

Configuration is organized into subsections:
  [tool.activity-watch]         : date format, environment prefix
  [tool.activity-watch.api]     : API base URL, token, request timeout
  [tool.activity-watch.wait]    : poll interval for single-activity waits

All settings support environment variable overrides (ACTIVITY_WATCH_* prefix).
"""

import importlib.resources
import os
from functools import cache
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found]


@cache
def _load_pyproject_settings() -> dict:
    """Load settings from pyproject.toml [tool.activity-watch] section.

    Returns:
        Dictionary of settings from pyproject.toml, empty dict if not found.
    """
    try:
        files = importlib.resources.files("activity_watch")
        pyproject_path = files.joinpath("..", "pyproject.toml")

        if not pyproject_path.is_file():  # type: ignore[union-attr]
            # Walk up to find pyproject.toml (for development)
            current = Path(__file__).resolve().parent
            while current != current.parent:
                candidate = current / "pyproject.toml"
                if candidate.exists():
                    pyproject_path = candidate
                    break
                current = current.parent
            else:
                return {}

        content = pyproject_path.read_text()  # type: ignore[union-attr]
        data = tomllib.loads(content)
        return data.get("tool", {}).get("activity-watch", {})
    except (OSError, tomllib.TOMLDecodeError):
        return {}


def _get_section(section: str) -> dict:
    """Get a subsection from [tool.activity-watch.{section}]."""
    return _load_pyproject_settings().get(section, {})


# ─── API settings ──────────────────────────────────────────────────────────

DEFAULT_API_URL = "https://api.platform.sh/api"
DEFAULT_TIMEOUT = 30.0


def get_api_url() -> str:
    """Get the platform API base URL.

    Priority: ACTIVITY_WATCH_API_URL env → [tool.activity-watch.api].url → default.
    """
    if env := os.getenv("ACTIVITY_WATCH_API_URL"):
        return env
    return _get_section("api").get("url", DEFAULT_API_URL)


def get_api_token() -> str | None:
    """Get the bearer token for API requests (env only or pyproject)."""
    if env := os.getenv("ACTIVITY_WATCH_API_TOKEN"):
        return env
    return _get_section("api").get("token")


def get_request_timeout() -> float:
    """Get the default request timeout in seconds."""
    if env := os.getenv("ACTIVITY_WATCH_TIMEOUT"):
        return float(env)
    return float(_get_section("api").get("timeout", DEFAULT_TIMEOUT))


# ─── Wait settings ─────────────────────────────────────────────────────────

DEFAULT_POLL_INTERVAL = 3.0
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_ENV_PREFIX = "PLATFORM_"


def get_poll_interval() -> float:
    """Seconds between activity refreshes while streaming a log."""
    if env := os.getenv("ACTIVITY_WATCH_POLL_INTERVAL"):
        return float(env)
    return float(_get_section("wait").get("poll-interval", DEFAULT_POLL_INTERVAL))


def get_date_format() -> str:
    """strftime pattern used for log timestamps.

    Priority: ACTIVITY_WATCH_DATE_FORMAT env → [tool.activity-watch].date-format
    → default.
    """
    if env := os.getenv("ACTIVITY_WATCH_DATE_FORMAT"):
        return env
    return _load_pyproject_settings().get("date-format", DEFAULT_DATE_FORMAT)


def get_env_prefix() -> str:
    """Prefix of the environment variables set inside platform containers."""
    if env := os.getenv("ACTIVITY_WATCH_ENV_PREFIX"):
        return env
    return _load_pyproject_settings().get("env-prefix", DEFAULT_ENV_PREFIX)


__all__ = [
    "get_api_token",
    "get_api_url",
    "get_date_format",
    "get_env_prefix",
    "get_poll_interval",
    "get_request_timeout",
]
