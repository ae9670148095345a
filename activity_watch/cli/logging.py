"""CLI logging configuration with file output.

Provides a shared ``configure_cli_logging`` function that sets up file
logging (and, when verbose, console logging) for CLI commands. Log files
are split by command under ``~/.local/share/activity-watch/logs/``.

Usage from any CLI command::

    from activity_watch.cli.logging import configure_cli_logging

    configure_cli_logging("wait", verbose=verbose)

Follow a running wait with::

    tail -f ~/.local/share/activity-watch/logs/wait.log
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Standard log directory follows XDG convention
LOG_DIR = Path.home() / ".local" / "share" / "activity-watch" / "logs"

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def get_log_dir() -> Path:
    """Return the CLI log directory, creating it if needed."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    return LOG_DIR


def get_log_file(command: str) -> Path:
    """Return the log file path for a given CLI command."""
    return get_log_dir() / f"{command}.log"


def configure_cli_logging(
    command: str,
    *,
    verbose: bool = False,
    console_level: int | None = None,
    file_level: int = logging.DEBUG,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 3,
) -> Path:
    """Configure logging for a CLI command with file output.

    Sets up:
    - File handler: DEBUG-level rotating log at
      ``~/.local/share/activity-watch/logs/<command>.log``
    - Console handler on stderr, only when ``verbose`` or ``console_level``
      is given, so log records do not break the progress line otherwise

    Args:
        command: CLI command name (e.g., "wait", "log")
        verbose: If True, log INFO and above to stderr
        console_level: Override console level (takes precedence over verbose)
        file_level: File log level (default: DEBUG)
        max_bytes: Max size per log file before rotation
        backup_count: Number of rotated backups to keep

    Returns:
        Path to the log file
    """
    log_file = get_log_file(command)

    package_logger = logging.getLogger("activity_watch")

    # Remove handlers from previous calls to avoid duplicates
    for handler in package_logger.handlers[:]:
        if isinstance(handler, logging.StreamHandler):
            package_logger.removeHandler(handler)
            handler.close()

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    package_logger.addHandler(file_handler)

    if console_level is None and verbose:
        console_level = logging.INFO
    if console_level is not None:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(console_level)
        console_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        package_logger.addHandler(console_handler)

    # NOTSET (0) means "inherit from parent" which defaults to WARNING,
    # so set the level explicitly for the file handler to receive events.
    lowest = min(file_level, console_level if console_level is not None else file_level)
    if package_logger.level == logging.NOTSET or package_logger.level > lowest:
        package_logger.setLevel(lowest)

    return log_file
