"""
POS Money Primitive
=====================
Amounts are Decimal in whole currency units (VND has no minor unit in
practice). No floats: inputs go through str() before Decimal.

Rounding modes used across the system:
    floor_units   per-line cart tax
    round_units   cart grand total, e-invoice line and invoice totals
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")


def to_money(value: Any, field_name: str = "amount") -> Decimal:
    """Coerce int/str/Decimal to Decimal. Floats go through str()."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{field_name} must be numeric.")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{field_name} must be numeric, got {value!r}.") from exc


def floor_units(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_FLOOR)


def round_units(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_HALF_UP)
