"""
POS Display — Public API
==========================
Customer-facing display port and event types.
"""

from core.display.events import DisplayEvent, DisplayEventType
from core.display.sink import (
    DisplaySink,
    FanoutDisplaySink,
    NullDisplaySink,
    RecordingDisplaySink,
    publish_safely,
)

__all__ = [
    "DisplayEvent",
    "DisplayEventType",
    "DisplaySink",
    "FanoutDisplaySink",
    "NullDisplaySink",
    "RecordingDisplaySink",
    "publish_safely",
]
