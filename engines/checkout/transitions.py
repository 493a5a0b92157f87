"""
POS Checkout Engine — Transitions
===================================
Pure transition function: apply(session, action) -> new session.
No I/O, no clock, no ids generated here. The orchestrator gathers
those and passes them in on the action.

Allowed actions per state:

    IDLE                      BeginCheckout
    PREVIEWING_RECEIPT        ConfirmPreview, Cancel
    SELECTING_PAYMENT_METHOD  ChooseCash, ChooseQR, ChooseOther, Cancel
    AWAITING_CASH             TenderCash, Finalize, Back, Cancel
    AWAITING_QR               ConfirmQRPayment, Finalize, Back, Cancel
    ISSUING_EINVOICE          Finalize, Back, Cancel
    SHOWING_FINAL_RECEIPT     CloseReceipt

RecordNotice and ClearNotice are accepted in every state.
Anything else raises InvalidTransitionError.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, FrozenSet, Optional, Type

from engines.cart import CartSnapshot
from engines.checkout.errors import (
    EmptyCartError,
    InsufficientCashError,
    InvalidTotalError,
    InvalidTransitionError,
)
from engines.checkout.policies import reconcile_totals
from engines.checkout.states import (
    PAYMENT_EINVOICE,
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

S = CheckoutState


# ══════════════════════════════════════════════════════════════
# ACTIONS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BeginCheckout:
    snapshot: CartSnapshot
    draft_id: str
    order_number: str
    created_at: datetime
    customer_name: str = ""
    cached_total: Optional[Decimal] = None
    tolerance: Decimal = Decimal("1")


@dataclass(frozen=True)
class ConfirmPreview:
    pass


@dataclass(frozen=True)
class ChooseCash:
    issue_einvoice: bool = False


@dataclass(frozen=True)
class TenderCash:
    """Cash accepted on the way to the e-invoice form."""
    amount_received: Decimal


@dataclass(frozen=True)
class ChooseQR:
    ticket: QRTicket
    issue_einvoice: bool = False
    notice: Optional[CheckoutNotice] = None


@dataclass(frozen=True)
class ConfirmQRPayment:
    """QR payment confirmed on the way to the e-invoice form."""
    transaction_uuid: str


@dataclass(frozen=True)
class ChooseOther:
    method_id: str


@dataclass(frozen=True)
class Finalize:
    receipt: FinalReceipt


@dataclass(frozen=True)
class Back:
    notice: Optional[CheckoutNotice] = None


@dataclass(frozen=True)
class Cancel:
    notice: Optional[CheckoutNotice] = None


@dataclass(frozen=True)
class CloseReceipt:
    pass


@dataclass(frozen=True)
class RecordNotice:
    notice: CheckoutNotice


@dataclass(frozen=True)
class ClearNotice:
    pass


ALL_STATES: FrozenSet[CheckoutState] = frozenset(CheckoutState)

ALLOWED: Dict[type, FrozenSet[CheckoutState]] = {
    BeginCheckout: frozenset({S.IDLE}),
    ConfirmPreview: frozenset({S.PREVIEWING_RECEIPT}),
    ChooseCash: frozenset({S.SELECTING_PAYMENT_METHOD}),
    ChooseQR: frozenset({S.SELECTING_PAYMENT_METHOD}),
    ChooseOther: frozenset({S.SELECTING_PAYMENT_METHOD}),
    TenderCash: frozenset({S.AWAITING_CASH}),
    ConfirmQRPayment: frozenset({S.AWAITING_QR}),
    Finalize: frozenset({S.AWAITING_CASH, S.AWAITING_QR, S.ISSUING_EINVOICE}),
    Back: frozenset({S.AWAITING_CASH, S.AWAITING_QR, S.ISSUING_EINVOICE}),
    Cancel: frozenset({
        S.PREVIEWING_RECEIPT,
        S.SELECTING_PAYMENT_METHOD,
        S.AWAITING_CASH,
        S.AWAITING_QR,
        S.ISSUING_EINVOICE,
    }),
    CloseReceipt: frozenset({S.SHOWING_FINAL_RECEIPT}),
    RecordNotice: ALL_STATES,
    ClearNotice: ALL_STATES,
}


def is_allowed(state: CheckoutState, action: object) -> bool:
    return state in ALLOWED.get(type(action), frozenset())


# ══════════════════════════════════════════════════════════════
# HANDLERS
# ══════════════════════════════════════════════════════════════

def _begin(session: CheckoutSession, action: BeginCheckout) -> CheckoutSession:
    if action.snapshot.is_empty:
        raise EmptyCartError()
    reconciliation = reconcile_totals(action.snapshot, action.cached_total, action.tolerance)
    totals = reconciliation.totals
    if totals.total <= 0:
        raise InvalidTotalError(totals.total)

    draft = ReceiptDraft(
        id=action.draft_id,
        order_number=action.order_number,
        customer_name=action.customer_name,
        lines=action.snapshot.lines,
        subtotal=totals.subtotal,
        tax=totals.tax,
        total=totals.total,
        created_at=action.created_at,
    )
    return CheckoutSession(
        state=S.PREVIEWING_RECEIPT,
        snapshot=action.snapshot,
        draft=draft,
    )


def _confirm_preview(session: CheckoutSession, action: ConfirmPreview) -> CheckoutSession:
    return replace(session, state=S.SELECTING_PAYMENT_METHOD, notice=None)


def _choose_cash(session: CheckoutSession, action: ChooseCash) -> CheckoutSession:
    return replace(
        session,
        state=S.AWAITING_CASH,
        selection=CashPayment(),
        issue_einvoice=action.issue_einvoice,
        notice=None,
    )


def _tender_cash(session: CheckoutSession, action: TenderCash) -> CheckoutSession:
    if not session.issue_einvoice:
        raise InvalidTransitionError(session.state, "TenderCash without e-invoice")
    total = session.draft.total
    if action.amount_received < total:
        raise InsufficientCashError(action.amount_received, total)
    return replace(
        session,
        state=S.ISSUING_EINVOICE,
        selection=CashPayment(
            amount_received=action.amount_received,
            change=action.amount_received - total,
        ),
        payment_confirmed=True,
        notice=None,
    )


def _choose_qr(session: CheckoutSession, action: ChooseQR) -> CheckoutSession:
    return replace(
        session,
        state=S.AWAITING_QR,
        selection=QRPayment(transaction_uuid=action.ticket.transaction_uuid),
        issue_einvoice=action.issue_einvoice,
        qr=action.ticket,
        notice=action.notice,
    )


def _confirm_qr(session: CheckoutSession, action: ConfirmQRPayment) -> CheckoutSession:
    if not session.issue_einvoice:
        raise InvalidTransitionError(session.state, "ConfirmQRPayment without e-invoice")
    if session.qr is None or session.qr.transaction_uuid != action.transaction_uuid:
        raise InvalidTransitionError(session.state, f"ConfirmQRPayment({action.transaction_uuid})")
    return replace(
        session,
        state=S.ISSUING_EINVOICE,
        payment_confirmed=True,
        qr=None,
        notice=None,
    )


def _choose_other(session: CheckoutSession, action: ChooseOther) -> CheckoutSession:
    selection = (
        EInvoicePayment()
        if action.method_id == PAYMENT_EINVOICE
        else OtherPayment(method_id=action.method_id)
    )
    return replace(
        session,
        state=S.ISSUING_EINVOICE,
        selection=selection,
        issue_einvoice=True,
        notice=None,
    )


def _finalize(session: CheckoutSession, action: Finalize) -> CheckoutSession:
    return replace(
        session,
        state=S.SHOWING_FINAL_RECEIPT,
        qr=None,
        receipt=action.receipt,
        notice=None,
    )


def _back(session: CheckoutSession, action: Back) -> CheckoutSession:
    # A confirmed payment can only be settled, never re-chosen.
    if session.payment_confirmed:
        raise InvalidTransitionError(session.state, "Back after payment confirmed")
    return replace(
        session,
        state=S.SELECTING_PAYMENT_METHOD,
        selection=None,
        issue_einvoice=False,
        qr=None,
        notice=action.notice,
    )


def _cancel(session: CheckoutSession, action: Cancel) -> CheckoutSession:
    if session.payment_confirmed:
        raise InvalidTransitionError(session.state, "Cancel after payment confirmed")
    return CheckoutSession(notice=action.notice)


def _close_receipt(session: CheckoutSession, action: CloseReceipt) -> CheckoutSession:
    return CheckoutSession()


def _record_notice(session: CheckoutSession, action: RecordNotice) -> CheckoutSession:
    return replace(session, notice=action.notice)


def _clear_notice(session: CheckoutSession, action: ClearNotice) -> CheckoutSession:
    return replace(session, notice=None)


_HANDLERS: Dict[Type, Callable[[CheckoutSession, object], CheckoutSession]] = {
    BeginCheckout: _begin,
    ConfirmPreview: _confirm_preview,
    ChooseCash: _choose_cash,
    TenderCash: _tender_cash,
    ChooseQR: _choose_qr,
    ConfirmQRPayment: _confirm_qr,
    ChooseOther: _choose_other,
    Finalize: _finalize,
    Back: _back,
    Cancel: _cancel,
    CloseReceipt: _close_receipt,
    RecordNotice: _record_notice,
    ClearNotice: _clear_notice,
}


def apply(session: CheckoutSession, action: object) -> CheckoutSession:
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise InvalidTransitionError(session.state, type(action).__name__)
    if not is_allowed(session.state, action):
        raise InvalidTransitionError(session.state, type(action).__name__)
    return handler(session, action)


__all__ = [
    "ALLOWED",
    "Back",
    "BeginCheckout",
    "Cancel",
    "ChooseCash",
    "ChooseOther",
    "ChooseQR",
    "ClearNotice",
    "CloseReceipt",
    "ConfirmPreview",
    "ConfirmQRPayment",
    "Finalize",
    "RecordNotice",
    "TenderCash",
    "apply",
    "is_allowed",
]
