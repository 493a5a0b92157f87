"""
POS Core Time — Public API
============================
Injectable clock plus the deadline arithmetic behind the QR countdown.
"""

from core.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
    epoch_millis,
    get_default_clock,
    require_aware,
    set_default_clock,
)
from core.time.temporal import deadline_after, is_past, seconds_until

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "epoch_millis",
    "get_default_clock",
    "require_aware",
    "set_default_clock",
    "deadline_after",
    "is_past",
    "seconds_until",
]
