"""
POS Core Time — Temporal Helpers
==================================
Deadline arithmetic behind the QR payment wait.
Pure functions over explicit datetimes. None of them read a clock.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional


def deadline_after(start: datetime, ttl_seconds: float) -> Optional[datetime]:
    """
    Deadline `ttl_seconds` after `start`.

    A non-positive TTL means "no deadline" and returns None.
    """
    if ttl_seconds is None or ttl_seconds <= 0:
        return None
    return start + timedelta(seconds=ttl_seconds)


def is_past(deadline: Optional[datetime], now: datetime) -> bool:
    """True once `now` is strictly after `deadline`. No deadline never passes."""
    if deadline is None:
        return False
    return now > deadline


def seconds_until(deadline: Optional[datetime], now: datetime) -> Optional[float]:
    """
    Seconds remaining before `deadline`, or None if there is no deadline.

    Returns 0.0 once the deadline has passed.
    """
    if deadline is None:
        return None
    return max(0.0, (deadline - now).total_seconds())
