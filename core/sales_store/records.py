"""
POS Sales Store — Records
===========================
Framework-free data carried in and out of the sales store.
Engines and integration clients depend on these, never on Django models.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple


ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_PAID = "paid"
VALID_ORDER_STATUSES = frozenset({ORDER_STATUS_PENDING, ORDER_STATUS_PAID})

INVOICE_STATUS_DRAFT = "draft"
INVOICE_STATUS_PUBLISHED = "published"
VALID_INVOICE_STATUSES = frozenset({INVOICE_STATUS_DRAFT, INVOICE_STATUS_PUBLISHED})

EINVOICE_NOT_PUBLISHED = 0
EINVOICE_PUBLISHED = 1
EINVOICE_FAILED = 2
VALID_EINVOICE_STATUSES = frozenset({EINVOICE_NOT_PUBLISHED, EINVOICE_PUBLISHED, EINVOICE_FAILED})


# ══════════════════════════════════════════════════════════════
# WRITE DATA
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SaleLineData:
    """One line of an order or invoice."""
    product_ref: str
    product_name: str
    unit_price: Decimal
    quantity: int
    total: Decimal
    tax_rate: Decimal = Decimal("0")
    sku: str = ""

    def __post_init__(self):
        if not self.product_name:
            raise ValueError("product_name must be non-empty.")
        if not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValueError("quantity must be an integer >= 1.")

    def to_dict(self) -> dict:
        return {
            "product_ref": self.product_ref,
            "product_name": self.product_name,
            "sku": self.sku,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "tax_rate": str(self.tax_rate),
            "total": str(self.total),
        }


@dataclass(frozen=True)
class OrderData:
    order_number: str
    status: str
    payment_method: str
    einvoice_status: int
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    customer_name: str = ""
    amount_received: Optional[Decimal] = None
    change: Optional[Decimal] = None
    table_id: Optional[int] = None

    def __post_init__(self):
        if not self.order_number:
            raise ValueError("order_number must be non-empty.")
        if self.status not in VALID_ORDER_STATUSES:
            raise ValueError(f"Invalid order status: {self.status}")
        if not self.payment_method:
            raise ValueError("payment_method must be non-empty.")
        if self.einvoice_status not in VALID_EINVOICE_STATUSES:
            raise ValueError(f"Invalid einvoice_status: {self.einvoice_status}")


@dataclass(frozen=True)
class InvoiceData:
    trade_number: str
    status: str
    einvoice_status: int
    customer_name: str
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    payment_method: str
    invoice_date: datetime
    customer_tax_code: str = ""
    customer_address: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    invoice_number: Optional[str] = None
    template_number: str = ""
    symbol: Optional[str] = None
    notes: str = ""

    def __post_init__(self):
        if not self.trade_number:
            raise ValueError("trade_number must be non-empty.")
        if self.status not in VALID_INVOICE_STATUSES:
            raise ValueError(f"Invalid invoice status: {self.status}")
        if self.einvoice_status not in VALID_EINVOICE_STATUSES:
            raise ValueError(f"Invalid einvoice_status: {self.einvoice_status}")


# ══════════════════════════════════════════════════════════════
# STORED RECORDS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class OrderRecord:
    id: int
    order_number: str
    status: str
    payment_method: str
    einvoice_status: int
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    customer_name: str
    amount_received: Optional[Decimal]
    change: Optional[Decimal]
    table_id: Optional[int]
    lines: Tuple[SaleLineData, ...]
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "status": self.status,
            "payment_method": self.payment_method,
            "einvoice_status": self.einvoice_status,
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "total": str(self.total),
            "customer_name": self.customer_name,
            "amount_received": None if self.amount_received is None else str(self.amount_received),
            "change": None if self.change is None else str(self.change),
            "table_id": self.table_id,
            "items": [line.to_dict() for line in self.lines],
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class InvoiceRecord:
    id: int
    trade_number: str
    status: str
    einvoice_status: int
    invoice_number: Optional[str]
    template_number: str
    symbol: Optional[str]
    customer_name: str
    customer_tax_code: str
    customer_address: str
    customer_phone: str
    customer_email: str
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    payment_method: str
    invoice_date: datetime
    notes: str
    lines: Tuple[SaleLineData, ...]
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "trade_number": self.trade_number,
            "status": self.status,
            "einvoice_status": self.einvoice_status,
            "invoice_number": self.invoice_number,
            "template_number": self.template_number,
            "symbol": self.symbol,
            "customer_name": self.customer_name,
            "customer_tax_code": self.customer_tax_code,
            "customer_address": self.customer_address,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "total": str(self.total),
            "payment_method": self.payment_method,
            "invoice_date": self.invoice_date.isoformat(),
            "notes": self.notes,
            "items": [line.to_dict() for line in self.lines],
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class ConnectionInfo:
    """Credentials for one e-invoice software provider."""
    software_name: str
    login_url: str
    tax_code: str
    login_id: str
    password: str
    is_active: bool = True
