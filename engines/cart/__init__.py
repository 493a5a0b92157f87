"""
POS Cart Engine — Lines, Snapshot, Totals
===========================================
Live, mutable cart for the cashier screen plus the immutable snapshot
a checkout session works from.

Tax convention: each product stores a pre-tax unit price and, optionally,
an after-tax unit price. Line tax is their difference times quantity,
floored to whole currency units per line. The grand total is
round-half-up of subtotal + tax. Lines without an after-tax price add no tax.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple, Union

from core.display import DisplayEvent, DisplayEventType, DisplaySink, NullDisplaySink, publish_safely
from core.primitives import ZERO, floor_units, round_units, to_money

logger = logging.getLogger("pos.cart")

ProductRef = Union[int, str]


# ── Product & line ────────────────────────────────────────────

@dataclass(frozen=True)
class Product:
    """Catalog entry as the cart sees it."""
    product_ref: ProductRef
    name: str
    unit_price: Decimal
    tax_rate: Optional[Decimal] = None
    after_tax_unit_price: Optional[Decimal] = None
    sku: Optional[str] = None

    def __post_init__(self):
        if self.product_ref is None or self.product_ref == "":
            raise ValueError("product_ref must be set.")
        if not self.name:
            raise ValueError("name must be non-empty.")
        object.__setattr__(self, "unit_price", to_money(self.unit_price, "unit_price"))
        if self.tax_rate is not None:
            object.__setattr__(self, "tax_rate", to_money(self.tax_rate, "tax_rate"))
        if self.after_tax_unit_price is not None:
            object.__setattr__(
                self, "after_tax_unit_price",
                to_money(self.after_tax_unit_price, "after_tax_unit_price"),
            )
        if self.unit_price < 0:
            raise ValueError("unit_price must be >= 0.")


@dataclass(frozen=True)
class CartLine:
    product_ref: ProductRef
    name: str
    unit_price: Decimal
    quantity: int
    tax_rate: Optional[Decimal] = None
    after_tax_unit_price: Optional[Decimal] = None
    sku: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "unit_price", to_money(self.unit_price, "unit_price"))
        if self.tax_rate is not None:
            object.__setattr__(self, "tax_rate", to_money(self.tax_rate, "tax_rate"))
        if self.after_tax_unit_price is not None:
            object.__setattr__(
                self, "after_tax_unit_price",
                to_money(self.after_tax_unit_price, "after_tax_unit_price"),
            )
        if not isinstance(self.quantity, int) or isinstance(self.quantity, bool) or self.quantity < 1:
            raise ValueError("quantity must be an integer >= 1.")
        if self.unit_price < 0:
            raise ValueError("unit_price must be >= 0.")

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> "CartLine":
        return cls(
            product_ref=product.product_ref,
            name=product.name,
            unit_price=product.unit_price,
            quantity=quantity,
            tax_rate=product.tax_rate,
            after_tax_unit_price=product.after_tax_unit_price,
            sku=product.sku,
        )

    @property
    def line_id(self) -> ProductRef:
        return self.product_ref

    @property
    def line_subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def line_tax(self) -> Decimal:
        if self.after_tax_unit_price is None:
            return ZERO
        per_unit = max(ZERO, self.after_tax_unit_price - self.unit_price)
        return floor_units(per_unit * self.quantity)

    @property
    def line_total(self) -> Decimal:
        return self.line_subtotal + self.line_tax

    def with_quantity(self, quantity: int) -> "CartLine":
        return replace(self, quantity=quantity)

    def to_dict(self) -> dict:
        return {
            "product_ref": self.product_ref,
            "name": self.name,
            "sku": self.sku,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "tax_rate": None if self.tax_rate is None else str(self.tax_rate),
            "after_tax_unit_price": (
                None if self.after_tax_unit_price is None else str(self.after_tax_unit_price)
            ),
            "line_subtotal": str(self.line_subtotal),
            "line_tax": str(self.line_tax),
            "line_total": str(self.line_total),
        }


# ── Totals ────────────────────────────────────────────────────

@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "total": str(self.total),
        }


def compute_totals(lines: Iterable[CartLine]) -> CartTotals:
    subtotal = ZERO
    tax = ZERO
    for line in lines:
        subtotal += line.line_subtotal
        tax += line.line_tax
    return CartTotals(subtotal=subtotal, tax=tax, total=round_units(subtotal + tax))


# ── Snapshot ──────────────────────────────────────────────────

@dataclass(frozen=True)
class CartSnapshot:
    """Frozen copy of the cart taken when checkout begins."""
    lines: Tuple[CartLine, ...]
    captured_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "lines", tuple(self.lines))

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def __len__(self) -> int:
        return len(self.lines)

    def totals(self) -> CartTotals:
        return compute_totals(self.lines)

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "totals": self.totals().to_dict(),
            "captured_at": self.captured_at.isoformat() if self.captured_at else None,
        }


# ── Live cart ─────────────────────────────────────────────────

class Cart:
    """
    Mutable cart owned by the cashier view.

    Every mutation broadcasts a cart_update to the display sink.
    A failing display never blocks the mutation.
    """

    def __init__(self, display_sink: Optional[DisplaySink] = None):
        self._lines: List[CartLine] = []
        self._display = display_sink or NullDisplaySink()

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def _index_of(self, line_id: ProductRef) -> Optional[int]:
        for index, line in enumerate(self._lines):
            if line.line_id == line_id:
                return index
        return None

    def add_line(self, product: Product, quantity: int = 1) -> CartLine:
        """Merge into the existing line for this product, or append."""
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValueError("quantity must be an integer >= 1.")

        index = self._index_of(product.product_ref)
        if index is None:
            line = CartLine.from_product(product, quantity)
            self._lines.append(line)
        else:
            line = self._lines[index].with_quantity(self._lines[index].quantity + quantity)
            self._lines[index] = line
        self._broadcast()
        return line

    def update_quantity(self, line_id: ProductRef, quantity: int) -> bool:
        """Quantity < 1 is rejected as a no-op. Returns True if the cart changed."""
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            logger.debug(f"Ignoring quantity {quantity!r} for line {line_id}")
            return False
        index = self._index_of(line_id)
        if index is None:
            return False
        self._lines[index] = self._lines[index].with_quantity(quantity)
        self._broadcast()
        return True

    def remove_line(self, line_id: ProductRef) -> bool:
        index = self._index_of(line_id)
        if index is None:
            return False
        del self._lines[index]
        self._broadcast()
        return True

    def clear(self) -> None:
        self._lines.clear()
        self._broadcast()

    def totals(self) -> CartTotals:
        return compute_totals(self._lines)

    def snapshot(self, captured_at: Optional[datetime] = None) -> CartSnapshot:
        return CartSnapshot(lines=tuple(self._lines), captured_at=captured_at)

    def _broadcast(self) -> None:
        publish_safely(
            self._display,
            DisplayEvent(DisplayEventType.CART_UPDATE, self.snapshot().to_dict()),
        )


__all__ = [
    "Cart",
    "CartLine",
    "CartSnapshot",
    "CartTotals",
    "Product",
    "ProductRef",
    "compute_totals",
    "floor_units",
    "round_units",
    "to_money",
]
