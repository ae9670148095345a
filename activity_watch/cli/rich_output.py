"""Automatic rich output detection for CLI commands.

Centralizes the decision of whether to draw interactive Rich displays
(the redrawable progress line) or stay quiet. Plain text output is always
printed; only the progress line depends on this check.

Detection priority:
1. ``ACTIVITY_WATCH_RICH`` env var: explicit override (``0``/``false``/``no``
   to disable, ``1``/``true``/``yes`` to force enable)
2. ``NO_COLOR`` env var: standard convention, disables rich
3. ``CI`` env var: GitHub Actions / CI, disables rich
4. ``stream.isatty()``: false in pipes, redirects, cron, disables rich
"""

from __future__ import annotations

import os
import sys
from typing import IO


def should_use_rich(stream: IO[str] | None = None) -> bool:
    """Determine whether to use Rich interactive output.

    Args:
        stream: Output stream the display would be drawn on (default stderr)

    Returns True when the terminal supports interactive Rich displays.
    Returns False for CI, pipes, redirected output, non-TTY, or when
    explicitly disabled.
    """
    override = os.environ.get("ACTIVITY_WATCH_RICH", "").strip().lower()
    if override in ("0", "false", "no"):
        return False
    if override in ("1", "true", "yes"):
        return True

    # NO_COLOR convention (https://no-color.org/)
    if os.environ.get("NO_COLOR") is not None:
        return False

    if os.environ.get("CI"):
        return False

    stream = stream if stream is not None else sys.stderr
    try:
        if not stream.isatty():
            return False
    except (AttributeError, ValueError):
        # Closed or file-like objects without a terminal
        return False

    return True
