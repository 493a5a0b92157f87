"""
POS Display — Event Types
===========================
Typed events for the secondary, customer-facing display.
The display only renders; it never acknowledges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class DisplayEventType(Enum):
    CART_UPDATE = "cart_update"
    QR_PAYMENT = "qr_payment"
    QR_PAYMENT_CANCELLED = "qr_payment_cancelled"
    RESTORE_CART_DISPLAY = "restore_cart_display"
    PAYMENT_SUCCESS = "payment_success"
    POPUP_CLOSE = "popup_close"


@dataclass(frozen=True)
class DisplayEvent:
    event_type: DisplayEventType
    payload: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.event_type, DisplayEventType):
            raise ValueError("event_type must be a DisplayEventType.")

    def to_message(self) -> dict:
        """Wire shape pushed to display clients: {"type": ..., **payload}."""
        message = {"type": self.event_type.value}
        message.update(self.payload)
        return message
