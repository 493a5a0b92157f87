"""
POS Checkout Engine — Policies
================================
Checks the orchestrator runs before acting. Each policy returns a
CheckoutNotice when the action must not proceed, None otherwise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from core.primitives import to_money
from core.time import is_past
from engines.cart import CartSnapshot, CartTotals
from engines.checkout.states import CheckoutNotice, QRTicket

logger = logging.getLogger("pos.checkout")


@dataclass(frozen=True)
class TotalsReconciliation:
    totals: CartTotals
    cached_total: Optional[Decimal]
    drift: Decimal

    @property
    def drifted(self) -> bool:
        return self.cached_total is not None and self.drift != 0


def reconcile_totals(
    snapshot: CartSnapshot,
    cached_total: Optional[Decimal],
    tolerance: Decimal,
) -> TotalsReconciliation:
    """
    Recompute totals from the snapshot. The recomputed value always wins;
    a cached total further off than the tolerance is logged as stale.
    """
    totals = snapshot.totals()
    if cached_total is None:
        return TotalsReconciliation(totals=totals, cached_total=None, drift=Decimal("0"))

    cached_total = to_money(cached_total, "cached_total")
    drift = totals.total - cached_total
    if abs(drift) > tolerance:
        logger.warning(
            f"Stale cart total discarded: cached={cached_total} recomputed={totals.total}"
        )
    return TotalsReconciliation(totals=totals, cached_total=cached_total, drift=drift)


def cash_tender_policy(total: Decimal, amount_received: Optional[Decimal]) -> Optional[CheckoutNotice]:
    if amount_received is None:
        return CheckoutNotice(
            code="AMOUNT_REQUIRED",
            message="Enter the amount received.",
            field="amount_received",
        )
    if amount_received < total:
        return CheckoutNotice(
            code="INSUFFICIENT_CASH",
            message=f"Amount received {amount_received} is less than the total {total}.",
            field="amount_received",
        )
    return None


def qr_deadline_policy(ticket: Optional[QRTicket], now: datetime) -> Optional[CheckoutNotice]:
    """Reject a QR wait whose deadline has passed."""
    if ticket is None or ticket.deadline is None:
        return None
    if is_past(ticket.deadline, now):
        return CheckoutNotice(
            code="QR_TIMEOUT",
            message="QR payment was not confirmed in time. Choose a payment method again.",
            retryable=True,
        )
    return None


__all__ = [
    "TotalsReconciliation",
    "cash_tender_policy",
    "qr_deadline_policy",
    "reconcile_totals",
]
