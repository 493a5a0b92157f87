"""
POS Checkout Engine
=====================
Cart snapshot → receipt preview → payment → optional e-invoice →
final receipt → cart reset, as an explicit state machine.
"""

from engines.checkout.errors import (
    CheckoutError,
    EmptyCartError,
    InsufficientCashError,
    InvalidTotalError,
    InvalidTransitionError,
)
from engines.checkout.services import CheckoutOrchestrator
from engines.checkout.states import (
    PAYMENT_CASH,
    PAYMENT_EINVOICE,
    PAYMENT_QR,
    CashPayment,
    CheckoutNotice,
    CheckoutSession,
    CheckoutState,
    EInvoicePayment,
    FinalReceipt,
    OtherPayment,
    QRPayment,
    QRTicket,
    ReceiptDraft,
)

__all__ = [
    "PAYMENT_CASH",
    "PAYMENT_EINVOICE",
    "PAYMENT_QR",
    "CashPayment",
    "CheckoutError",
    "CheckoutNotice",
    "CheckoutOrchestrator",
    "CheckoutSession",
    "CheckoutState",
    "EInvoicePayment",
    "EmptyCartError",
    "FinalReceipt",
    "InsufficientCashError",
    "InvalidTotalError",
    "InvalidTransitionError",
    "OtherPayment",
    "QRPayment",
    "QRTicket",
    "ReceiptDraft",
]
