"""
POS Checkout Engine — Errors
==============================
Precondition failures the caller must not ignore. Integration
failures are not raised from checkout; they become session notices.
"""

from __future__ import annotations

from decimal import Decimal


class CheckoutError(Exception):
    code = "CHECKOUT_ERROR"


class EmptyCartError(CheckoutError):
    code = "EMPTY_CART"

    def __init__(self, message: str = "Cannot check out an empty cart."):
        super().__init__(message)


class InvalidTotalError(CheckoutError):
    code = "INVALID_TOTAL"

    def __init__(self, total: Decimal):
        super().__init__(f"Checkout total must be positive, got {total}.")
        self.total = total


class InvalidTransitionError(CheckoutError):
    code = "INVALID_TRANSITION"

    def __init__(self, state, action: str):
        state_name = getattr(state, "value", state)
        super().__init__(f"Action '{action}' is not allowed in state '{state_name}'.")
        self.state = state
        self.action = action


class InsufficientCashError(CheckoutError):
    code = "INSUFFICIENT_CASH"

    def __init__(self, amount_received: Decimal, total: Decimal):
        super().__init__(f"Amount received {amount_received} is less than total {total}.")
        self.amount_received = amount_received
        self.total = total
