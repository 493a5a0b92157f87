"""
Tests — Cart Engine
=====================
Line merging, quantity rules, per-line tax flooring, grand-total
rounding, snapshot isolation and display broadcasts.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.display import DisplayEventType, RecordingDisplaySink
from engines.cart import Cart, CartLine, CartSnapshot, Product, compute_totals

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

COFFEE = Product(
    product_ref=1,
    name="Coffee",
    unit_price=Decimal("10000"),
    tax_rate=Decimal("10"),
    after_tax_unit_price=Decimal("11000"),
    sku="CF-01",
)
WATER = Product(product_ref=2, name="Water", unit_price=Decimal("5000"))


class ExplodingSink:
    def publish(self, event):
        raise ConnectionError("display offline")


# ── Lines ─────────────────────────────────────────────────────

class TestCartLine:
    def test_tax_is_after_tax_difference_times_quantity(self):
        line = CartLine.from_product(COFFEE, 2)
        assert line.line_subtotal == Decimal("20000")
        assert line.line_tax == Decimal("2000")
        assert line.line_total == Decimal("22000")

    def test_tax_floored_per_line(self):
        line = CartLine(
            product_ref="x", name="Cake", unit_price=Decimal("1000"),
            after_tax_unit_price=Decimal("1080.7"), quantity=3,
        )
        # 80.7 * 3 = 242.1 -> 242
        assert line.line_tax == Decimal("242")

    def test_after_tax_below_unit_price_adds_no_tax(self):
        line = CartLine(
            product_ref="x", name="Promo", unit_price=Decimal("1000"),
            after_tax_unit_price=Decimal("900"), quantity=2,
        )
        assert line.line_tax == Decimal("0")

    def test_missing_after_tax_price_adds_no_tax(self):
        assert CartLine.from_product(WATER, 4).line_tax == Decimal("0")

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    def test_rejects_bad_quantity(self, quantity):
        with pytest.raises(ValueError):
            CartLine.from_product(WATER, quantity)

    def test_rejects_negative_price(self):
        with pytest.raises(ValueError):
            Product(product_ref=3, name="Refund", unit_price=Decimal("-1"))

    def test_float_prices_go_through_str(self):
        product = Product(product_ref=4, name="Tea", unit_price=0.1)
        assert product.unit_price == Decimal("0.1")

    def test_missing_tax_rate_stays_unset(self):
        assert CartLine.from_product(WATER, 1).tax_rate is None
        assert CartLine.from_product(WATER, 1).to_dict()["tax_rate"] is None


# ── Totals ────────────────────────────────────────────────────

class TestTotals:
    def test_example_cart(self):
        totals = compute_totals([CartLine.from_product(COFFEE, 2)])
        assert (totals.subtotal, totals.tax, totals.total) == (
            Decimal("20000"), Decimal("2000"), Decimal("22000"),
        )

    def test_grand_total_rounds_half_up(self):
        line = CartLine(product_ref="x", name="Gum", unit_price=Decimal("0.5"), quantity=1)
        assert compute_totals([line]).total == Decimal("1")

    def test_empty_cart_totals_zero(self):
        totals = compute_totals([])
        assert totals.total == Decimal("0")


# ── Live cart ─────────────────────────────────────────────────

class TestCart:
    def test_adding_same_product_merges_line(self):
        cart = Cart()
        cart.add_line(COFFEE)
        cart.add_line(COFFEE, 2)
        assert len(cart) == 1
        assert cart.lines[0].quantity == 3

    def test_update_quantity(self):
        cart = Cart()
        cart.add_line(COFFEE)
        assert cart.update_quantity(1, 5) is True
        assert cart.lines[0].quantity == 5

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_update_quantity_below_one_is_noop(self, quantity):
        cart = Cart()
        cart.add_line(COFFEE, 2)
        assert cart.update_quantity(1, quantity) is False
        assert cart.lines[0].quantity == 2

    def test_update_unknown_line(self):
        assert Cart().update_quantity(99, 1) is False

    def test_remove_and_clear(self):
        cart = Cart()
        cart.add_line(COFFEE)
        cart.add_line(WATER)
        assert cart.remove_line(2) is True
        assert cart.remove_line(2) is False
        cart.clear()
        assert cart.is_empty

    def test_snapshot_is_isolated_from_later_edits(self):
        cart = Cart()
        cart.add_line(COFFEE, 2)
        snapshot = cart.snapshot(captured_at=NOW)

        cart.add_line(WATER)
        cart.update_quantity(1, 9)

        assert isinstance(snapshot, CartSnapshot)
        assert len(snapshot) == 1
        assert snapshot.lines[0].quantity == 2
        assert snapshot.totals().total == Decimal("22000")
        assert snapshot.to_dict()["captured_at"] == NOW.isoformat()

    def test_every_mutation_broadcasts_cart_update(self):
        sink = RecordingDisplaySink()
        cart = Cart(display_sink=sink)
        cart.add_line(COFFEE)
        cart.update_quantity(1, 2)
        cart.remove_line(1)
        cart.clear()
        assert sink.event_types() == [DisplayEventType.CART_UPDATE] * 4
        assert sink.events[1].payload["totals"]["total"] == "22000"

    def test_rejected_quantity_does_not_broadcast(self):
        sink = RecordingDisplaySink()
        cart = Cart(display_sink=sink)
        cart.add_line(COFFEE)
        sink.clear()
        cart.update_quantity(1, 0)
        assert sink.events == []

    def test_broken_display_does_not_block_mutation(self):
        cart = Cart(display_sink=ExplodingSink())
        cart.add_line(COFFEE)
        assert len(cart) == 1
