"""
POS Display — Sink Port
=========================
One injected port per orchestrator instead of a channel opened per action.

Publishing is fire-and-forget:
- a failing sink or subscriber is logged and ignored
- publishing NEVER raises into checkout logic
- no acknowledgment is awaited
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, List, Protocol

from core.display.events import DisplayEvent, DisplayEventType

logger = logging.getLogger("pos.display")


class DisplaySink(Protocol):
    def publish(self, event: DisplayEvent) -> None:
        ...


class NullDisplaySink:
    """Sink for terminals without a customer display."""

    def publish(self, event: DisplayEvent) -> None:
        return None


class RecordingDisplaySink:
    """Keeps every published event in memory (tests, local runs)."""

    def __init__(self):
        self.events: List[DisplayEvent] = []

    def publish(self, event: DisplayEvent) -> None:
        self.events.append(event)

    def event_types(self) -> List[DisplayEventType]:
        return [e.event_type for e in self.events]

    def clear(self) -> None:
        self.events.clear()


class FanoutDisplaySink:
    """
    Delivers each event to every registered subscriber callback
    (e.g. one per connected customer-display socket).

    A subscriber that raises is logged and skipped; the remaining
    subscribers still receive the event.
    """

    def __init__(self):
        self._subscribers: List[Callable[[DisplayEvent], None]] = []
        self._lock = Lock()

    def subscribe(self, callback: Callable[[DisplayEvent], None]) -> None:
        if not callable(callback):
            raise ValueError(f"Display subscriber must be callable, got {type(callback)}.")
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[DisplayEvent], None]) -> bool:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)
                return True
            return False

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: DisplayEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)

        failed = 0
        for callback in subscribers:
            try:
                callback(event)
            except Exception as exc:
                failed += 1
                logger.warning(
                    f"Display subscriber {getattr(callback, '__qualname__', callback)} "
                    f"failed for {event.event_type.value}: {exc}",
                    exc_info=True,
                )
        logger.debug(
            f"Display event {event.event_type.value} fanned out to "
            f"{len(subscribers) - failed}/{len(subscribers)} subscribers"
        )


def publish_safely(sink: DisplaySink, event: DisplayEvent) -> bool:
    """
    Publish without letting a display failure reach the caller.

    Returns False if the sink raised.
    """
    try:
        sink.publish(event)
        return True
    except Exception as exc:
        logger.warning(
            f"Display sink failed for {event.event_type.value}: {exc}",
            exc_info=True,
        )
        return False
