"""
Tests for core.time — till clock and QR deadline arithmetic.
"""

import pytest
from datetime import datetime, timezone, timedelta

from core.time.clock import (
    FixedClock,
    SystemClock,
    epoch_millis,
    get_default_clock,
    require_aware,
    set_default_clock,
)
from core.time.temporal import deadline_after, is_past, seconds_until


T0 = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


# ── Clocks ───────────────────────────────────────────────────

def test_system_clock_is_utc():
    assert SystemClock().now_utc().tzinfo == timezone.utc


class TestFixedClock:
    def test_stands_still_until_advanced(self):
        clock = FixedClock(T0)
        assert clock.now_utc() == T0
        assert clock.now_utc() == T0

    def test_advance_returns_new_time(self):
        clock = FixedClock(T0)
        assert clock.advance(301) == T0 + timedelta(seconds=301)
        assert clock.now_utc() == T0 + timedelta(seconds=301)

    def test_naive_start_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            FixedClock(datetime(2025, 1, 1))


def test_set_default_clock_returns_previous():
    fixed = FixedClock(T0)
    previous = set_default_clock(fixed)
    try:
        assert get_default_clock() is fixed
    finally:
        assert set_default_clock(previous) is fixed
    assert get_default_clock() is previous


# ── Document numbers ─────────────────────────────────────────

class TestEpochMillis:
    def test_one_second_after_epoch(self):
        assert epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000

    def test_later_sale_gets_larger_number(self):
        assert epoch_millis(T0 + timedelta(milliseconds=1)) == epoch_millis(T0) + 1

    def test_naive_rejected(self):
        with pytest.raises(ValueError):
            epoch_millis(datetime(2025, 1, 1))


def test_require_aware_passes_through():
    assert require_aware(T0, "x") is T0


# ── QR deadline ──────────────────────────────────────────────

class TestDeadlines:
    def test_deadline_after(self):
        assert deadline_after(T0, 300) == T0 + timedelta(seconds=300)

    def test_zero_ttl_means_no_deadline(self):
        assert deadline_after(T0, 0) is None
        assert deadline_after(T0, -5) is None

    def test_is_past_is_strict(self):
        deadline = T0 + timedelta(seconds=10)
        assert not is_past(deadline, T0)
        assert not is_past(deadline, deadline)
        assert is_past(deadline, deadline + timedelta(microseconds=1))

    def test_no_deadline_never_passes(self):
        assert not is_past(None, T0 + timedelta(days=365))

    def test_seconds_until(self):
        deadline = T0 + timedelta(seconds=90)
        assert seconds_until(deadline, T0) == 90.0
        assert seconds_until(deadline, T0 + timedelta(seconds=200)) == 0.0
        assert seconds_until(None, T0) is None
