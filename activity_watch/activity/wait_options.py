"""The ``--wait``/``--no-wait`` options shared by commands that start activities."""

from __future__ import annotations

import logging
import os
import sys

import click
from rich.console import Console

logger = logging.getLogger(__name__)


def detect_running_in_hook(env_prefix: str | None = None) -> bool:
    """Detect a non-interactive platform hook environment.

    Hooks run under ``dash`` with the platform's project variable set and
    no terminal on stdin.
    """
    if env_prefix is None:
        from activity_watch.settings import get_env_prefix

        env_prefix = get_env_prefix()
    if not os.environ.get(f"{env_prefix}PROJECT"):
        return False
    if os.path.basename(os.environ.get("SHELL", "")) != "dash":
        return False
    try:
        return not sys.stdin.isatty()
    except (AttributeError, ValueError):
        return True


def wait_options(func):
    """Add the ``--wait`` and ``--no-wait`` options to a click command."""
    description = "Wait for the operation to complete"
    if not detect_running_in_hook():
        description += " (default)"
    func = click.option("--wait", is_flag=True, default=False, help=description)(func)
    func = click.option(
        "--no-wait",
        "-W",
        is_flag=True,
        default=False,
        help="Do not wait for the operation to complete",
    )(func)
    return func


def should_wait(
    wait: bool = False,
    no_wait: bool = False,
    console: Console | None = None,
    env_prefix: str | None = None,
) -> bool:
    """Decide whether a command should wait for its activities.

    Explicit flags win. Otherwise waiting is the default, except inside a
    hook where the command assumes ``--no-wait`` and says so.
    """
    if no_wait:
        return False
    if wait:
        return True
    if detect_running_in_hook(env_prefix):
        console = console or Console(stderr=True)
        console.print(
            "\n[yellow]Warning:[/yellow] hook environment detected: assuming "
            "[yellow]--no-wait[/yellow] by default."
            "\nTo avoid ambiguity, please specify either --no-wait or --wait.\n"
        )
        logger.info("Hook environment detected, not waiting")
        return False
    return True


__all__ = [
    "detect_running_in_hook",
    "should_wait",
    "wait_options",
]
