from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.sales_store.connections import DbConnectionInfoProvider, InMemoryConnectionInfoProvider
from core.sales_store.models import EInvoiceConnection, Invoice, Order
from core.sales_store.records import (
    ConnectionInfo,
    InvoiceData,
    OrderData,
    SaleLineData,
)
from core.sales_store.repository import DjangoSalesRepository, InMemorySalesRepository
from core.sales_store.tenancy import DefaultTenantResolver
from core.time import FixedClock

T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

LINES = (
    SaleLineData(
        product_ref="1",
        product_name="Coffee",
        sku="CF-01",
        unit_price=Decimal("10000"),
        quantity=2,
        tax_rate=Decimal("10"),
        total=Decimal("20000"),
    ),
)


def _order(**overrides) -> OrderData:
    values = dict(
        order_number="ORD-1717243200000",
        status="paid",
        payment_method="cash",
        einvoice_status=0,
        subtotal=Decimal("20000"),
        tax=Decimal("2000"),
        total=Decimal("22000"),
        amount_received=Decimal("25000"),
        change=Decimal("3000"),
    )
    values.update(overrides)
    return OrderData(**values)


def _invoice(**overrides) -> InvoiceData:
    values = dict(
        trade_number="ORD-1717243200000",
        status="draft",
        einvoice_status=0,
        customer_name="Cong ty A",
        subtotal=Decimal("20000"),
        tax=Decimal("2000"),
        total=Decimal("22000"),
        payment_method="cash",
        invoice_date=T0,
        template_number="1C25TAA",
    )
    values.update(overrides)
    return InvoiceData(**values)


# ── Records ──────────────────────────────────────────────────

class TestRecordValidation:
    def test_rejects_unknown_order_status(self):
        with pytest.raises(ValueError):
            _order(status="refunded")

    def test_rejects_unknown_einvoice_status(self):
        with pytest.raises(ValueError):
            _invoice(einvoice_status=7)

    def test_rejects_zero_quantity_line(self):
        with pytest.raises(ValueError):
            SaleLineData(
                product_ref="1", product_name="Tea",
                unit_price=Decimal("1"), quantity=0, total=Decimal("0"),
            )


# ── In-memory repository ─────────────────────────────────────

class TestInMemoryRepository:
    def test_assigns_ids_and_keeps_lines(self):
        repo = InMemorySalesRepository(clock=FixedClock(T0))
        first = repo.save_order(_order(), LINES)
        second = repo.save_order(_order(order_number="ORD-2"), LINES)
        assert (first.id, second.id) == (1, 2)
        assert first.lines == LINES
        assert first.created_at == T0

    def test_order_and_invoice_are_independent(self):
        repo = InMemorySalesRepository()
        repo.save_invoice(_invoice(), LINES)
        assert repo.orders == []
        assert len(repo.invoices) == 1

    def test_requires_lines(self):
        with pytest.raises(ValueError):
            InMemorySalesRepository().save_order(_order(), ())

    def test_lookup_by_number(self):
        repo = InMemorySalesRepository()
        saved = repo.save_order(_order(), LINES)
        assert repo.get_order_by_number(saved.order_number) == saved
        assert repo.get_order_by_number("ORD-missing") is None


# ── Django repository ────────────────────────────────────────

@pytest.mark.django_db(transaction=True)
class TestDjangoRepository:
    def test_save_order_writes_order_and_items(self):
        record = DjangoSalesRepository().save_order(_order(), LINES)

        row = Order.objects.get(pk=record.id)
        assert row.status == "paid"
        assert row.payment_method == "cash"
        assert row.amount_received == Decimal("25000")
        assert row.items.count() == 1
        assert record.lines[0].product_name == "Coffee"
        assert record.lines[0].sku == "CF-01"

    def test_save_invoice_writes_invoice_and_items(self):
        record = DjangoSalesRepository().save_invoice(
            _invoice(status="published", einvoice_status=1, invoice_number="0000123", symbol="C25TAA"),
            LINES,
        )

        row = Invoice.objects.get(pk=record.id)
        assert row.status == "published"
        assert row.einvoice_status == 1
        assert row.invoice_number == "0000123"
        assert row.items.count() == 1
        assert record.to_dict()["items"][0]["quantity"] == 2

    def test_get_order_by_number(self):
        repo = DjangoSalesRepository()
        saved = repo.save_order(_order(order_number="ORD-42"), LINES)
        found = repo.get_order_by_number("ORD-42")
        assert found is not None
        assert found.id == saved.id
        assert repo.get_order_by_number("ORD-43") is None

    def test_failed_line_write_rolls_back_order(self):
        before = Order.objects.count()
        with pytest.raises(AttributeError):
            DjangoSalesRepository().save_order(_order(), (LINES[0], "not-a-line"))
        assert Order.objects.count() == before


@pytest.mark.django_db(transaction=True)
class TestDbConnectionInfoProvider:
    def test_returns_active_connection(self):
        EInvoiceConnection.objects.create(
            software_name="EasyInvoice",
            login_url="https://easy.example",
            tax_code="0101234567",
            login_id="user",
            password="pw",
        )
        info = DbConnectionInfoProvider().get_active_connection("EasyInvoice")
        assert info == ConnectionInfo(
            software_name="EasyInvoice",
            login_url="https://easy.example",
            tax_code="0101234567",
            login_id="user",
            password="pw",
            is_active=True,
        )

    def test_ignores_inactive_connection(self):
        EInvoiceConnection.objects.create(
            software_name="VnInvoice",
            login_url="https://vn.example",
            tax_code="0101234567",
            login_id="user",
            password="pw",
            is_active=False,
        )
        assert DbConnectionInfoProvider().get_active_connection("VnInvoice") is None

    def test_blank_name_returns_none(self):
        assert DbConnectionInfoProvider().get_active_connection("  ") is None


class TestInMemoryConnectionInfoProvider:
    def test_inactive_is_hidden(self):
        provider = InMemoryConnectionInfoProvider([
            ConnectionInfo("MInvoice", "https://m.example", "01", "u", "p", is_active=False),
        ])
        assert provider.get_active_connection("MInvoice") is None


class TestTenancy:
    def test_default_resolver(self):
        assert DefaultTenantResolver().resolve(object()) == "default"
        assert DefaultTenantResolver("tenant_b").resolve(None) == "tenant_b"

    def test_rejects_empty_alias(self):
        with pytest.raises(ValueError):
            DefaultTenantResolver("")
