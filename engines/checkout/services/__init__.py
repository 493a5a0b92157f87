"""
POS Checkout Engine — Orchestrator
=====================================
Runs one checkout at a time for one till.

The pure transition function decides what the next session is; this
service does everything around it: reading the live cart once, calling
the QR gateway and e-invoice service, registering the payment listener,
writing orders and invoices, and telling the customer display.

Failure handling:
    - precondition failures raise (EmptyCartError, InvalidTotalError,
      InvalidTransitionError)
    - integration failures become a CheckoutNotice; state is unchanged
    - persistence failures after money moved are logged and the sale
      still completes

Thread-safety: payment confirmations arrive on webhook threads. Every
public method holds one re-entrant lock.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from threading import RLock
from typing import Any, Callable, Optional, Sequence, Tuple

from core.display import DisplayEvent, DisplayEventType, DisplaySink, NullDisplaySink, publish_safely
from core.primitives import ZERO, to_money
from core.sales_store.records import (
    EINVOICE_NOT_PUBLISHED,
    EINVOICE_PUBLISHED,
    INVOICE_STATUS_DRAFT,
    INVOICE_STATUS_PUBLISHED,
    ORDER_STATUS_PAID,
    ORDER_STATUS_PENDING,
    InvoiceData,
    InvoiceRecord,
    OrderData,
    OrderRecord,
    SaleLineData,
)
from core.sales_store.repository import SalesRepository
from core.time import Clock, deadline_after, epoch_millis, get_default_clock, seconds_until
from engines.cart import Cart, CartLine
from engines.checkout.errors import InvalidTransitionError
from engines.checkout.policies import cash_tender_policy, qr_deadline_policy
from engines.checkout.states import (
    PAYMENT_CASH,
    PAYMENT_QR,
    CashPayment,
    CheckoutNotice,
    CheckoutSession,
    CheckoutState,
    FinalReceipt,
    QRPayment,
    QRTicket,
    ReceiptDraft,
)
from engines.checkout.transitions import (
    Back,
    BeginCheckout,
    Cancel,
    ChooseCash,
    ChooseOther,
    ChooseQR,
    ClearNotice,
    CloseReceipt,
    ConfirmPreview,
    ConfirmQRPayment,
    Finalize,
    RecordNotice,
    TenderCash,
    apply,
    is_allowed,
)
from integration.adapters import GatewayUnavailableError, IntegrationError
from integration.inbound import ListenerRegistration, PaymentNotification
from integration.outbound.einvoice import EInvoiceFields, EInvoiceIssuer, PublishedInvoice
from integration.outbound.qr_gateway import QRGatewayClient, build_placeholder_qr
from integration.outbound.tax_registry import TaxCodeLookupResult

logger = logging.getLogger("pos.checkout")

S = CheckoutState

DEFAULT_TOTAL_TOLERANCE = Decimal("1")
DEFAULT_QR_TIMEOUT_SECONDS = 300.0


def sale_lines(lines: Sequence[CartLine]) -> Tuple[SaleLineData, ...]:
    return tuple(
        SaleLineData(
            product_ref=str(line.product_ref),
            product_name=line.name,
            sku=line.sku or "",
            unit_price=line.unit_price,
            quantity=line.quantity,
            tax_rate=line.tax_rate if line.tax_rate is not None else ZERO,
            total=line.line_subtotal,
        )
        for line in lines
    )


class CheckoutOrchestrator:
    def __init__(
        self,
        *,
        cart: Cart,
        sales_repository: SalesRepository,
        qr_gateway: QRGatewayClient,
        einvoice_issuer: EInvoiceIssuer,
        display_sink: Optional[DisplaySink] = None,
        clock: Optional[Clock] = None,
        total_tolerance: Decimal = DEFAULT_TOTAL_TOLERANCE,
        qr_payment_timeout_seconds: float = DEFAULT_QR_TIMEOUT_SECONDS,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self._cart = cart
        self._sales = sales_repository
        self._qr = qr_gateway
        self._einvoice = einvoice_issuer
        self._display = display_sink or NullDisplaySink()
        self._clock = clock or get_default_clock()
        self._tolerance = total_tolerance
        self._qr_timeout = qr_payment_timeout_seconds
        self._id_factory = id_factory
        self._session = CheckoutSession()
        self._registration: Optional[ListenerRegistration] = None
        self._lock = RLock()

    # ── Read side ─────────────────────────────────────────────

    @property
    def session(self) -> CheckoutSession:
        with self._lock:
            return self._session

    @property
    def state(self) -> CheckoutState:
        return self.session.state

    @property
    def cart(self) -> Cart:
        return self._cart

    # ── Preview ───────────────────────────────────────────────

    def begin_checkout(
        self,
        cached_total: Optional[Decimal] = None,
        customer_name: str = "",
    ) -> ReceiptDraft:
        with self._lock:
            now = self._clock.now_utc()
            self._apply(BeginCheckout(
                snapshot=self._cart.snapshot(captured_at=now),
                draft_id=self._id_factory(),
                order_number=f"ORD-{epoch_millis(now)}",
                created_at=now,
                customer_name=customer_name,
                cached_total=cached_total,
                tolerance=self._tolerance,
            ))
            draft = self._session.draft
            logger.info(f"Checkout started order={draft.order_number} total={draft.total}")
            return draft

    def confirm_preview(self) -> CheckoutSession:
        with self._lock:
            return self._apply(ConfirmPreview())

    # ── Cash ──────────────────────────────────────────────────

    def select_cash(self, issue_einvoice: bool = False) -> CheckoutSession:
        with self._lock:
            return self._apply(ChooseCash(issue_einvoice=issue_einvoice))

    def complete_cash(self, amount_received: Any) -> Optional[FinalReceipt]:
        """
        Returns the final receipt, or None when the session moved on to
        the e-invoice form or the amount was rejected (see session.notice).
        """
        with self._lock:
            self._require(S.AWAITING_CASH, "complete_cash")
            total = self._session.draft.total
            try:
                amount = None if amount_received in (None, "") else to_money(amount_received, "amount_received")
            except ValueError as exc:
                self._apply(RecordNotice(CheckoutNotice(
                    code="INVALID_AMOUNT", message=str(exc), field="amount_received",
                )))
                return None

            rejection = cash_tender_policy(total, amount)
            if rejection is not None:
                self._apply(RecordNotice(rejection))
                return None

            if self._session.issue_einvoice:
                self._apply(TenderCash(amount_received=amount))
                return None

            return self._settle(
                payment_method=PAYMENT_CASH,
                order_status=ORDER_STATUS_PAID,
                einvoice_status=EINVOICE_NOT_PUBLISHED,
                amount_received=amount,
                change=amount - total,
            )

    # ── QR ────────────────────────────────────────────────────

    def select_qr(self, issue_einvoice: bool = False) -> QRTicket:
        with self._lock:
            self._require(S.SELECTING_PAYMENT_METHOD, "select_qr")
            draft = self._session.draft
            now = self._clock.now_utc()
            transaction_uuid = self._qr.new_transaction_uuid()

            notice = None
            try:
                request = self._qr.request_qr(draft.total, transaction_uuid)
                qr_content, bill_no, degraded = request.qr_content, request.bill_no, False
            except GatewayUnavailableError as exc:
                logger.warning(f"QR gateway unavailable, showing offline QR: {exc.message}")
                qr_content = build_placeholder_qr(draft.total, draft.order_number, now)
                bill_no, degraded = None, True
                notice = CheckoutNotice(
                    code=exc.code,
                    message="QR gateway unavailable. Confirm the payment manually once received.",
                    retryable=True,
                )

            ticket = QRTicket(
                transaction_uuid=transaction_uuid,
                qr_content=qr_content,
                amount=draft.total,
                issued_at=now,
                deadline=deadline_after(now, self._qr_timeout),
                degraded=degraded,
                bill_no=bill_no,
            )
            self._registration = self._qr.await_success(transaction_uuid, self._on_qr_payment)
            self._apply(ChooseQR(ticket=ticket, issue_einvoice=issue_einvoice, notice=notice))
            self._publish(DisplayEventType.QR_PAYMENT, {
                "transactionUuid": transaction_uuid,
                "qrContent": qr_content,
                "amount": str(draft.total),
            })
            return ticket

    def complete_qr(self) -> bool:
        """Manual confirmation. False when the webhook got there first."""
        with self._lock:
            session = self._session
            if session.state is not S.AWAITING_QR:
                if isinstance(session.selection, QRPayment) and (
                    session.payment_confirmed or session.state is S.SHOWING_FINAL_RECEIPT
                ):
                    logger.info(
                        f"Manual confirmation for transaction={session.selection.transaction_uuid} "
                        f"after payment was already confirmed; ignored"
                    )
                    return False
                raise InvalidTransitionError(session.state, "complete_qr")
            return self._qr.report_manual_payment(session.qr.transaction_uuid)

    def qr_seconds_remaining(self) -> Optional[float]:
        """Countdown for the QR screen. None when not waiting or no deadline."""
        with self._lock:
            if self._session.state is not S.AWAITING_QR:
                return None
            return seconds_until(self._session.qr.deadline, self._clock.now_utc())

    def expire_overdue_qr(self) -> bool:
        """Called periodically by the UI. True if the QR wait was abandoned."""
        with self._lock:
            if self._session.state is not S.AWAITING_QR:
                return False
            notice = qr_deadline_policy(self._session.qr, self._clock.now_utc())
            if notice is None:
                return False
            if not self._leave_qr():
                return False
            logger.info(f"QR payment timed out transaction={self._session.qr.transaction_uuid}")
            self._apply(Back(notice=notice))
            return True

    def _on_qr_payment(self, notification: PaymentNotification) -> None:
        with self._lock:
            session = self._session
            if (
                session.state is not S.AWAITING_QR
                or session.qr is None
                or session.qr.transaction_uuid != notification.transaction_uuid
            ):
                logger.warning(
                    f"Payment confirmation transaction={notification.transaction_uuid} "
                    f"arrived in state {session.state.value}; ignored"
                )
                return

            self._registration = None
            self._publish(DisplayEventType.PAYMENT_SUCCESS, {
                "transactionUuid": notification.transaction_uuid,
                "source": notification.source,
            })
            if session.issue_einvoice:
                self._apply(ConfirmQRPayment(transaction_uuid=notification.transaction_uuid))
                return
            self._settle(
                payment_method=PAYMENT_QR,
                order_status=ORDER_STATUS_PAID,
                einvoice_status=EINVOICE_NOT_PUBLISHED,
            )

    def _leave_qr(self) -> bool:
        """
        Stop listening and restore the cart display. False when a
        confirmation already took the listener and is waiting for the
        lock; the session must then stay in AWAITING_QR so it can settle.
        """
        ticket = self._session.qr
        if self._registration is not None:
            if not self._registration.release():
                logger.info(
                    f"Confirmation for transaction={self._registration.transaction_uuid} "
                    f"is in flight; staying on the QR screen"
                )
                return False
            self._registration = None
        if ticket is not None:
            self._publish(DisplayEventType.QR_PAYMENT_CANCELLED, {"transactionUuid": ticket.transaction_uuid})
        self._publish(DisplayEventType.RESTORE_CART_DISPLAY, self._cart.snapshot().to_dict())
        return True

    # ── Other methods / e-invoice ─────────────────────────────

    def select_other(self, method_id: str) -> CheckoutSession:
        with self._lock:
            return self._apply(ChooseOther(method_id=method_id))

    def issue_now(self, fields: EInvoiceFields) -> Optional[FinalReceipt]:
        """None when validation or the e-invoice service failed (see session.notice)."""
        with self._lock:
            self._require(S.ISSUING_EINVOICE, "issue_now")
            session = self._session
            try:
                published = self._einvoice.publish(fields, session.snapshot.lines)
            except IntegrationError as exc:
                logger.warning(f"E-invoice not issued [{exc.code}]: {exc.message}")
                self._apply(RecordNotice(CheckoutNotice.from_error(exc)))
                return None

            return self._settle(
                payment_method=self._payment_method(),
                order_status=ORDER_STATUS_PAID,
                einvoice_status=EINVOICE_PUBLISHED,
                invoice=self._invoice_data(
                    fields,
                    status=INVOICE_STATUS_PUBLISHED,
                    einvoice_status=EINVOICE_PUBLISHED,
                    published=published,
                ),
                published=published,
            )

    def issue_later(self, fields: Optional[EInvoiceFields] = None) -> FinalReceipt:
        with self._lock:
            self._require(S.ISSUING_EINVOICE, "issue_later")
            fields = fields or EInvoiceFields()
            order_status = ORDER_STATUS_PAID if self._session.payment_confirmed else ORDER_STATUS_PENDING
            return self._settle(
                payment_method=self._payment_method(),
                order_status=order_status,
                einvoice_status=EINVOICE_NOT_PUBLISHED,
                invoice=self._invoice_data(
                    fields,
                    status=INVOICE_STATUS_DRAFT,
                    einvoice_status=EINVOICE_NOT_PUBLISHED,
                ),
            )

    def lookup_tax_code(self, tax_code: str) -> Optional[TaxCodeLookupResult]:
        with self._lock:
            try:
                result = self._einvoice.lookup_tax_code(tax_code)
            except IntegrationError as exc:
                logger.warning(f"Tax code lookup failed [{exc.code}]: {exc.message}")
                self._apply(RecordNotice(CheckoutNotice.from_error(exc)))
                return None
            if self._session.notice is not None:
                self._apply(ClearNotice())
            return result

    # ── Leaving ───────────────────────────────────────────────

    def back(self) -> CheckoutSession:
        with self._lock:
            session = self._session
            if session.payment_confirmed or not is_allowed(session.state, Back()):
                raise InvalidTransitionError(session.state, "back")
            if session.state is S.AWAITING_QR and not self._leave_qr():
                return session
            return self._apply(Back())

    def cancel(self) -> CheckoutSession:
        """
        Modal closed. From the final receipt this is the same as close().
        A session whose payment is already confirmed is settled as
        "issue later" and shows its receipt. Anywhere else the checkout
        is abandoned and the cart left as is.
        """
        with self._lock:
            state = self._session.state
            if state is S.IDLE:
                return self._session
            if state is S.SHOWING_FINAL_RECEIPT:
                return self.close()
            if self._session.payment_confirmed:
                logger.warning(
                    f"Checkout closed after payment was confirmed; settling order "
                    f"{self._session.draft.order_number} with the e-invoice left for later"
                )
                self.issue_later()
                return self._session
            if state is S.AWAITING_QR:
                if not self._leave_qr():
                    return self._session
            else:
                self._publish(DisplayEventType.RESTORE_CART_DISPLAY, self._cart.snapshot().to_dict())
            logger.info(f"Checkout cancelled from {state.value}")
            return self._apply(Cancel())

    def close(self) -> CheckoutSession:
        """Dismiss the final receipt. The only place the live cart is emptied."""
        with self._lock:
            self._require(S.SHOWING_FINAL_RECEIPT, "close")
            self._apply(CloseReceipt())
            self._cart.clear()
            self._publish(DisplayEventType.POPUP_CLOSE, {"success": True})
            return self._session

    # ── Internals ─────────────────────────────────────────────

    def _apply(self, action: object) -> CheckoutSession:
        before = self._session.state
        self._session = apply(self._session, action)
        if self._session.state is not before:
            logger.info(f"{before.value} -> {self._session.state.value} ({type(action).__name__})")
        return self._session

    def _require(self, state: CheckoutState, action: str) -> None:
        if self._session.state is not state:
            raise InvalidTransitionError(self._session.state, action)

    def _publish(self, event_type: DisplayEventType, payload: dict) -> None:
        publish_safely(self._display, DisplayEvent(event_type, payload))

    def _payment_method(self) -> str:
        selection = self._session.selection
        return selection.method if selection is not None else PAYMENT_CASH

    def _cash_amounts(self) -> Tuple[Optional[Decimal], Optional[Decimal]]:
        selection = self._session.selection
        if isinstance(selection, CashPayment):
            return selection.amount_received, selection.change
        return None, None

    def _invoice_data(
        self,
        fields: EInvoiceFields,
        *,
        status: str,
        einvoice_status: int,
        published: Optional[PublishedInvoice] = None,
    ) -> InvoiceData:
        draft = self._session.draft
        return InvoiceData(
            trade_number=draft.order_number,
            status=status,
            einvoice_status=einvoice_status,
            customer_name=fields.customer_name or draft.customer_name,
            customer_tax_code=fields.tax_code,
            customer_address=fields.address,
            customer_phone=fields.phone,
            customer_email=fields.email,
            subtotal=draft.subtotal,
            tax=draft.tax,
            total=draft.total,
            payment_method=self._payment_method(),
            invoice_date=self._clock.now_utc(),
            invoice_number=published.invoice_number if published else None,
            template_number=fields.template,
            symbol=published.symbol if published else None,
        )

    def _save(self, kind: str, write: Callable[[], Any]) -> Any:
        try:
            return write()
        except Exception:
            logger.exception(f"Failed to persist {kind} for order {self._session.draft.order_number}")
            return None

    def _settle(
        self,
        *,
        payment_method: str,
        order_status: str,
        einvoice_status: int,
        amount_received: Optional[Decimal] = None,
        change: Optional[Decimal] = None,
        invoice: Optional[InvoiceData] = None,
        published: Optional[PublishedInvoice] = None,
    ) -> FinalReceipt:
        session = self._session
        draft = session.draft
        if amount_received is None:
            amount_received, change = self._cash_amounts()
        lines = sale_lines(session.snapshot.lines)

        order_data = OrderData(
            order_number=draft.order_number,
            status=order_status,
            payment_method=payment_method,
            einvoice_status=einvoice_status,
            subtotal=draft.subtotal,
            tax=draft.tax,
            total=draft.total,
            customer_name=draft.customer_name,
            amount_received=amount_received,
            change=change,
        )
        order: Optional[OrderRecord] = self._save("order", lambda: self._sales.save_order(order_data, lines))
        invoice_record: Optional[InvoiceRecord] = None
        if invoice is not None:
            invoice_record = self._save("invoice", lambda: self._sales.save_invoice(invoice, lines))

        receipt = FinalReceipt(
            order_number=draft.order_number,
            payment_method=payment_method,
            lines=draft.lines,
            subtotal=draft.subtotal,
            tax=draft.tax,
            total=draft.total,
            order_status=order_status,
            einvoice_status=einvoice_status,
            issued_at=self._clock.now_utc(),
            amount_received=amount_received,
            change=change,
            order_id=order.id if order is not None else None,
            invoice_id=invoice_record.id if invoice_record is not None else None,
            invoice_number=published.invoice_number if published else None,
            invoice_date=published.invoice_date if published else None,
            invoice_symbol=published.symbol if published else None,
            einvoice_total=published.submitted.total if published else None,
            transaction_uuid=(
                session.selection.transaction_uuid
                if isinstance(session.selection, QRPayment) else None
            ),
        )
        self._apply(Finalize(receipt=receipt))
        if order is None or (invoice is not None and invoice_record is None):
            self._apply(RecordNotice(CheckoutNotice(
                code="PERSISTENCE_FAILED",
                message="Sale completed but could not be saved. Record it manually.",
            )))
        logger.info(
            f"Checkout settled order={draft.order_number} method={payment_method} "
            f"status={order_status} einvoice={einvoice_status}"
        )
        return receipt


__all__ = [
    "CheckoutOrchestrator",
    "sale_lines",
]
