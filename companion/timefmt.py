"""Countdown arithmetic and formatting."""

import datetime
import math


def seconds_until(target_dt: datetime.datetime, now: datetime.datetime) -> int:
    """Whole seconds from now until target_dt, floored (negative if past)."""
    return math.floor((target_dt - now).total_seconds())


def format_countdown(seconds: int) -> str:
    """Format seconds into an HH:MM:SS countdown string.

    Hours are not wrapped at 24. Negative input renders as 00:00:00.
    """
    if seconds < 0:
        return "00:00:00"
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"
