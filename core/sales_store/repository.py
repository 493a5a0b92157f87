"""
POS Sales Store — Repository
==============================
Create-only persistence for orders and invoices.

Two implementations share one shape:
    DjangoSalesRepository    relational tables, one DB alias per tenant
    InMemorySalesRepository  process-local lists for tests and dev wiring

An order and its lines are written atomically, as are an invoice and its
lines. An order and its invoice are two separate writes: a failed invoice
write leaves the order in place.
"""

from __future__ import annotations

import itertools
from threading import Lock
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from core.sales_store.records import (
    InvoiceData,
    InvoiceRecord,
    OrderData,
    OrderRecord,
    SaleLineData,
)
from core.time import Clock, get_default_clock


class SalesRepository(Protocol):
    def save_order(self, order: OrderData, lines: Sequence[SaleLineData]) -> OrderRecord:
        ...

    def save_invoice(self, invoice: InvoiceData, lines: Sequence[SaleLineData]) -> InvoiceRecord:
        ...


def _require_lines(lines: Sequence[SaleLineData]) -> Tuple[SaleLineData, ...]:
    lines = tuple(lines)
    if not lines:
        raise ValueError("At least one line is required.")
    return lines


# ══════════════════════════════════════════════════════════════
# DJANGO (relational)
# ══════════════════════════════════════════════════════════════

def _line_from_row(row: Any) -> SaleLineData:
    return SaleLineData(
        product_ref=row.product_ref,
        product_name=row.product_name,
        sku=row.sku,
        unit_price=row.unit_price,
        quantity=row.quantity,
        tax_rate=row.tax_rate,
        total=row.total,
    )


def serialize_order(row: Any) -> OrderRecord:
    return OrderRecord(
        id=row.id,
        order_number=row.order_number,
        status=row.status,
        payment_method=row.payment_method,
        einvoice_status=row.einvoice_status,
        subtotal=row.subtotal,
        tax=row.tax,
        total=row.total,
        customer_name=row.customer_name,
        amount_received=row.amount_received,
        change=row.change,
        table_id=row.table_id,
        lines=tuple(_line_from_row(item) for item in row.items.all()),
        created_at=row.created_at,
    )


def serialize_invoice(row: Any) -> InvoiceRecord:
    return InvoiceRecord(
        id=row.id,
        trade_number=row.trade_number,
        status=row.status,
        einvoice_status=row.einvoice_status,
        invoice_number=row.invoice_number,
        template_number=row.template_number,
        symbol=row.symbol,
        customer_name=row.customer_name,
        customer_tax_code=row.customer_tax_code,
        customer_address=row.customer_address,
        customer_phone=row.customer_phone,
        customer_email=row.customer_email,
        subtotal=row.subtotal,
        tax=row.tax,
        total=row.total,
        payment_method=row.payment_method,
        invoice_date=row.invoice_date,
        notes=row.notes,
        lines=tuple(_line_from_row(item) for item in row.items.all()),
        created_at=row.created_at,
    )


def _line_kwargs(line: SaleLineData) -> dict:
    return {
        "product_ref": str(line.product_ref),
        "product_name": line.product_name,
        "sku": line.sku or "",
        "unit_price": line.unit_price,
        "quantity": line.quantity,
        "tax_rate": line.tax_rate,
        "total": line.total,
    }


class DjangoSalesRepository:
    """Writes to the database alias chosen by the tenant resolver."""

    def __init__(self, using: str = "default"):
        self._using = using

    @property
    def using(self) -> str:
        return self._using

    def save_order(self, order: OrderData, lines: Sequence[SaleLineData]) -> OrderRecord:
        from django.db import transaction

        from core.sales_store.models import Order, OrderItem

        lines = _require_lines(lines)
        with transaction.atomic(using=self._using):
            row = Order.objects.using(self._using).create(
                order_number=order.order_number,
                status=order.status,
                payment_method=order.payment_method,
                einvoice_status=order.einvoice_status,
                customer_name=order.customer_name,
                table_id=order.table_id,
                subtotal=order.subtotal,
                tax=order.tax,
                total=order.total,
                amount_received=order.amount_received,
                change=order.change,
            )
            OrderItem.objects.using(self._using).bulk_create(
                [OrderItem(order=row, **_line_kwargs(line)) for line in lines]
            )
        return serialize_order(row)

    def save_invoice(self, invoice: InvoiceData, lines: Sequence[SaleLineData]) -> InvoiceRecord:
        from django.db import transaction

        from core.sales_store.models import Invoice, InvoiceItem

        lines = _require_lines(lines)
        with transaction.atomic(using=self._using):
            row = Invoice.objects.using(self._using).create(
                trade_number=invoice.trade_number,
                invoice_number=invoice.invoice_number,
                template_number=invoice.template_number,
                symbol=invoice.symbol,
                customer_name=invoice.customer_name,
                customer_tax_code=invoice.customer_tax_code,
                customer_address=invoice.customer_address,
                customer_phone=invoice.customer_phone,
                customer_email=invoice.customer_email,
                subtotal=invoice.subtotal,
                tax=invoice.tax,
                total=invoice.total,
                payment_method=invoice.payment_method,
                invoice_date=invoice.invoice_date,
                status=invoice.status,
                einvoice_status=invoice.einvoice_status,
                notes=invoice.notes,
            )
            InvoiceItem.objects.using(self._using).bulk_create(
                [InvoiceItem(invoice=row, **_line_kwargs(line)) for line in lines]
            )
        return serialize_invoice(row)

    def get_order_by_number(self, order_number: str) -> Optional[OrderRecord]:
        from core.sales_store.models import Order

        row = (
            Order.objects.using(self._using)
            .filter(order_number=order_number)
            .order_by("-created_at", "-id")
            .first()
        )
        return serialize_order(row) if row is not None else None


# ══════════════════════════════════════════════════════════════
# IN-MEMORY
# ══════════════════════════════════════════════════════════════

class InMemorySalesRepository:
    """Process-local store with the same write semantics."""

    def __init__(self, clock: Optional[Clock] = None):
        self._orders: List[OrderRecord] = []
        self._invoices: List[InvoiceRecord] = []
        self._order_ids = itertools.count(1)
        self._invoice_ids = itertools.count(1)
        self._clock = clock or get_default_clock()
        self._lock = Lock()

    @property
    def orders(self) -> List[OrderRecord]:
        with self._lock:
            return list(self._orders)

    @property
    def invoices(self) -> List[InvoiceRecord]:
        with self._lock:
            return list(self._invoices)

    def save_order(self, order: OrderData, lines: Sequence[SaleLineData]) -> OrderRecord:
        lines = _require_lines(lines)
        with self._lock:
            record = OrderRecord(
                id=next(self._order_ids),
                order_number=order.order_number,
                status=order.status,
                payment_method=order.payment_method,
                einvoice_status=order.einvoice_status,
                subtotal=order.subtotal,
                tax=order.tax,
                total=order.total,
                customer_name=order.customer_name,
                amount_received=order.amount_received,
                change=order.change,
                table_id=order.table_id,
                lines=lines,
                created_at=self._clock.now_utc(),
            )
            self._orders.append(record)
        return record

    def save_invoice(self, invoice: InvoiceData, lines: Sequence[SaleLineData]) -> InvoiceRecord:
        lines = _require_lines(lines)
        with self._lock:
            record = InvoiceRecord(
                id=next(self._invoice_ids),
                trade_number=invoice.trade_number,
                status=invoice.status,
                einvoice_status=invoice.einvoice_status,
                invoice_number=invoice.invoice_number,
                template_number=invoice.template_number,
                symbol=invoice.symbol,
                customer_name=invoice.customer_name,
                customer_tax_code=invoice.customer_tax_code,
                customer_address=invoice.customer_address,
                customer_phone=invoice.customer_phone,
                customer_email=invoice.customer_email,
                subtotal=invoice.subtotal,
                tax=invoice.tax,
                total=invoice.total,
                payment_method=invoice.payment_method,
                invoice_date=invoice.invoice_date,
                notes=invoice.notes,
                lines=lines,
                created_at=self._clock.now_utc(),
            )
            self._invoices.append(record)
        return record

    def get_order_by_number(self, order_number: str) -> Optional[OrderRecord]:
        with self._lock:
            for record in reversed(self._orders):
                if record.order_number == order_number:
                    return record
        return None
