"""
POS Checkout Engine — Session State
=====================================
Everything a checkout knows lives in one frozen CheckoutSession.
Transitions produce a new session; nothing here mutates.

States:
    IDLE                      no checkout in progress
    PREVIEWING_RECEIPT        draft receipt shown for confirmation
    SELECTING_PAYMENT_METHOD  cashier picks cash / QR / e-invoice / other
    AWAITING_CASH             cash amount entry
    AWAITING_QR               QR on screen, waiting for confirmation
    ISSUING_EINVOICE          e-invoice form (issue now or later)
    SHOWING_FINAL_RECEIPT     sale complete, receipt on screen
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from engines.cart import CartLine, CartSnapshot
from integration.adapters import IntegrationError
from integration.outbound.einvoice import EInvoiceFields


class CheckoutState(Enum):
    IDLE = "idle"
    PREVIEWING_RECEIPT = "previewing_receipt"
    SELECTING_PAYMENT_METHOD = "selecting_payment_method"
    AWAITING_CASH = "awaiting_cash"
    AWAITING_QR = "awaiting_qr"
    ISSUING_EINVOICE = "issuing_einvoice"
    SHOWING_FINAL_RECEIPT = "showing_final_receipt"


PAYMENT_CASH = "cash"
PAYMENT_QR = "qrCode"
PAYMENT_EINVOICE = "einvoice"

RECEIPT_STATUS_PREVIEW = "preview"


# ══════════════════════════════════════════════════════════════
# RECEIPT DRAFT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ReceiptDraft:
    """Preview built from the snapshot when checkout begins."""
    id: str
    order_number: str
    lines: Tuple[CartLine, ...]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    created_at: datetime
    customer_name: str = ""
    status: str = RECEIPT_STATUS_PREVIEW

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "total": str(self.total),
            "status": self.status,
            "created_at": self.created_at.isoformat(),
        }


# ══════════════════════════════════════════════════════════════
# PAYMENT SELECTION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CashPayment:
    amount_received: Optional[Decimal] = None
    change: Optional[Decimal] = None

    @property
    def method(self) -> str:
        return PAYMENT_CASH


@dataclass(frozen=True)
class QRPayment:
    transaction_uuid: str

    @property
    def method(self) -> str:
        return PAYMENT_QR


@dataclass(frozen=True)
class EInvoicePayment:
    fields: Optional[EInvoiceFields] = None

    @property
    def method(self) -> str:
        return PAYMENT_EINVOICE


@dataclass(frozen=True)
class OtherPayment:
    method_id: str

    def __post_init__(self):
        if not self.method_id:
            raise ValueError("method_id must be non-empty.")

    @property
    def method(self) -> str:
        return self.method_id


PaymentSelection = Union[CashPayment, QRPayment, EInvoicePayment, OtherPayment]


# ══════════════════════════════════════════════════════════════
# QR TICKET
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class QRTicket:
    """The QR currently on screen and when it stops being honoured."""
    transaction_uuid: str
    qr_content: str
    amount: Decimal
    issued_at: datetime
    deadline: Optional[datetime] = None
    degraded: bool = False
    bill_no: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "transaction_uuid": self.transaction_uuid,
            "qr_content": self.qr_content,
            "amount": str(self.amount),
            "issued_at": self.issued_at.isoformat(),
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "degraded": self.degraded,
            "bill_no": self.bill_no,
        }


# ══════════════════════════════════════════════════════════════
# NOTICE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CheckoutNotice:
    """
    User-facing message attached to the session.

    Fields:
        code:      Machine-readable code (e.g. 'GATEWAY_REJECTED').
        message:   Text shown to the cashier.
        field:     Form field the message belongs to, if any.
        retryable: Whether "try again" makes sense.
    """

    code: str
    message: str
    field: Optional[str] = None
    retryable: bool = False

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")
        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

    @classmethod
    def from_error(cls, error: IntegrationError) -> "CheckoutNotice":
        return cls(
            code=error.code,
            message=error.message,
            field=getattr(error, "field", None),
            retryable=error.retryable,
        )

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "field": self.field,
            "retryable": self.retryable,
        }


# ══════════════════════════════════════════════════════════════
# FINAL RECEIPT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FinalReceipt:
    order_number: str
    payment_method: str
    lines: Tuple[CartLine, ...]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    order_status: str
    einvoice_status: int
    issued_at: datetime
    amount_received: Optional[Decimal] = None
    change: Optional[Decimal] = None
    order_id: Optional[int] = None
    invoice_id: Optional[int] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[str] = None
    invoice_symbol: Optional[str] = None
    einvoice_total: Optional[Decimal] = None
    transaction_uuid: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_number": self.order_number,
            "payment_method": self.payment_method,
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "total": str(self.total),
            "order_status": self.order_status,
            "einvoice_status": self.einvoice_status,
            "issued_at": self.issued_at.isoformat(),
            "amount_received": None if self.amount_received is None else str(self.amount_received),
            "change": None if self.change is None else str(self.change),
            "order_id": self.order_id,
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice_number,
            "invoice_date": self.invoice_date,
            "invoice_symbol": self.invoice_symbol,
            "einvoice_total": None if self.einvoice_total is None else str(self.einvoice_total),
            "transaction_uuid": self.transaction_uuid,
        }


# ══════════════════════════════════════════════════════════════
# SESSION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CheckoutSession:
    state: CheckoutState = CheckoutState.IDLE
    snapshot: Optional[CartSnapshot] = None
    draft: Optional[ReceiptDraft] = None
    selection: Optional[PaymentSelection] = None
    issue_einvoice: bool = False
    payment_confirmed: bool = False
    qr: Optional[QRTicket] = None
    receipt: Optional[FinalReceipt] = None
    notice: Optional[CheckoutNotice] = None

    @property
    def total(self) -> Optional[Decimal]:
        return self.draft.total if self.draft is not None else None

    @property
    def is_active(self) -> bool:
        return self.state is not CheckoutState.IDLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "draft": self.draft.to_dict() if self.draft else None,
            "payment_method": self.selection.method if self.selection else None,
            "issue_einvoice": self.issue_einvoice,
            "payment_confirmed": self.payment_confirmed,
            "qr": self.qr.to_dict() if self.qr else None,
            "receipt": self.receipt.to_dict() if self.receipt else None,
            "notice": self.notice.to_dict() if self.notice else None,
        }
