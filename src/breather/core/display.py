"""Human-readable formatting of session times."""

from __future__ import annotations

import math


def format_clock(seconds: float) -> str:
    """Format *seconds* as ``M:SS``, or ``H:MM:SS`` from one hour up.

    Partial seconds round up so a countdown shows ``0:01`` until it is done.
    """
    total = max(0, math.ceil(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_minutes(minutes: int) -> str:
    """Label a picker duration: ``10 minutes``, ``1h 30m``."""
    if minutes >= 60:
        hours, mins = divmod(minutes, 60)
        return f"{hours}h {mins}m" if mins else f"{hours}h"
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


def format_duration(seconds: float) -> str:
    """Summarize a meditated duration: ``1h 5m``, ``3m 4s``, ``12s``."""
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    if minutes >= 60:
        hours, mins = divmod(minutes, 60)
        return f"{hours}h {mins}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
