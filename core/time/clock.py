"""
POS Core Time — Clock
=======================
Checkout never calls datetime.now() directly. Order numbers, bill
numbers, receipt timestamps and the QR payment deadline all read the
injected Clock, so a till can be replayed second by second in tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


def require_aware(dt: datetime, what: str) -> datetime:
    if dt.tzinfo is None:
        raise ValueError(f"{what} requires timezone-aware datetime.")
    return dt


# ══════════════════════════════════════════════════════════════
# CLOCK PROTOCOL
# ══════════════════════════════════════════════════════════════

class Clock(Protocol):
    def now_utc(self) -> datetime:
        ...  # pragma: no cover


class SystemClock:
    """Wall clock of the till."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Manually driven clock for tests.

        clock = FixedClock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        clock.advance(301)   # QR wait is now past a 300s deadline
    """

    def __init__(self, start: datetime) -> None:
        self._now = require_aware(start, "FixedClock")

    def now_utc(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        self._now = self._now + timedelta(seconds=seconds)
        return self._now


# ══════════════════════════════════════════════════════════════
# DOCUMENT NUMBERS
# ══════════════════════════════════════════════════════════════

def epoch_millis(dt: datetime) -> int:
    """Millisecond stamp behind ORD-, BILL- and INV- numbers."""
    require_aware(dt, "epoch_millis")
    return int(dt.timestamp() * 1000)


# ══════════════════════════════════════════════════════════════
# PROCESS-WIDE FALLBACK
# ══════════════════════════════════════════════════════════════
# Collaborators built without an explicit clock pick this one up
# at construction time.

_fallback: Clock = SystemClock()


def set_default_clock(clock: Clock) -> Clock:
    """Swap the fallback clock. Returns the previous one so tests can restore it."""
    global _fallback
    previous, _fallback = _fallback, clock
    return previous


def get_default_clock() -> Clock:
    return _fallback
