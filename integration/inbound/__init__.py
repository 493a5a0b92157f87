"""
POS Integration — Inbound Payment Notifications
==================================================
Payment confirmations reach checkout from two producers: the gateway
webhook and the cashier's manual "payment received" action. Both go
through one hub keyed by transaction UUID.

Hub rules:
    - At most one listener per transaction UUID.
    - Delivery removes the listener before invoking it, so the first
      confirmation wins and any later one is a no-op.
    - Unknown UUIDs are accepted and ignored.

Webhook flow (mirrors every inbound adapter): verify → validate →
translate → deliver → audit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple

from integration.adapters import Direction, compute_payload_hash, verify_hmac_signature
from integration.audit_log import IntegrationAuditLog

logger = logging.getLogger("pos.integration.inbound")

SOURCE_WEBHOOK = "webhook"
SOURCE_MANUAL = "manual"

SUCCESS_STATUSES = frozenset({"SUCCESS", "COMPLETED"})


# ══════════════════════════════════════════════════════════════
# NOTIFICATION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PaymentNotification:
    transaction_uuid: str
    source: str = SOURCE_WEBHOOK
    status: str = "SUCCESS"
    amount: Optional[Decimal] = None
    received_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.transaction_uuid:
            raise ValueError("transaction_uuid must be non-empty.")
        if self.source not in (SOURCE_WEBHOOK, SOURCE_MANUAL):
            raise ValueError(f"Unknown notification source: {self.source}")


PaymentListener = Callable[[PaymentNotification], None]


class DuplicateListenerError(Exception):
    """A listener is already registered for this transaction."""


# ══════════════════════════════════════════════════════════════
# NOTIFICATION HUB
# ══════════════════════════════════════════════════════════════

class ListenerRegistration:
    """
    Handle for one registered listener. `release()` is idempotent
    and safe after the listener has already fired.
    """

    def __init__(self, hub: "PaymentNotificationHub", transaction_uuid: str):
        self._hub = hub
        self._transaction_uuid = transaction_uuid

    @property
    def transaction_uuid(self) -> str:
        return self._transaction_uuid

    @property
    def active(self) -> bool:
        return self._hub.is_registered(self._transaction_uuid)

    def release(self) -> bool:
        return self._hub.deregister(self._transaction_uuid)

    def __enter__(self) -> "ListenerRegistration":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class PaymentNotificationHub:
    """Thread-safe listener registry. Webhooks arrive on request threads."""

    def __init__(self) -> None:
        self._listeners: Dict[str, PaymentListener] = {}
        self._lock = Lock()

    def register(self, transaction_uuid: str, listener: PaymentListener) -> ListenerRegistration:
        if not transaction_uuid:
            raise ValueError("transaction_uuid must be non-empty.")
        with self._lock:
            if transaction_uuid in self._listeners:
                raise DuplicateListenerError(
                    f"Listener already registered for transaction {transaction_uuid}."
                )
            self._listeners[transaction_uuid] = listener
        logger.debug(f"Listening for payment transaction={transaction_uuid}")
        return ListenerRegistration(self, transaction_uuid)

    def deregister(self, transaction_uuid: str) -> bool:
        with self._lock:
            removed = self._listeners.pop(transaction_uuid, None) is not None
        if removed:
            logger.debug(f"Stopped listening for payment transaction={transaction_uuid}")
        return removed

    def is_registered(self, transaction_uuid: str) -> bool:
        with self._lock:
            return transaction_uuid in self._listeners

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def deliver(self, notification: PaymentNotification) -> bool:
        """
        Hand the notification to its listener, if any.
        Returns True only for the delivery that consumed the listener.
        """
        with self._lock:
            listener = self._listeners.pop(notification.transaction_uuid, None)
        if listener is None:
            logger.info(
                f"No listener for transaction={notification.transaction_uuid} "
                f"source={notification.source}; ignored"
            )
            return False
        logger.info(
            f"Payment confirmed transaction={notification.transaction_uuid} "
            f"source={notification.source}"
        )
        listener(notification)
        return True


# ══════════════════════════════════════════════════════════════
# WEBHOOK ADAPTER
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class InboundResult:
    """Result of processing one webhook call."""

    success: bool
    delivered: bool = False
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    transaction_uuid: Optional[str] = None


class PaymentWebhookAdapter:
    """Validates and translates the gateway's success callback body."""

    system_id = "payment_webhook"
    system_type = "payment_gateway"

    def validate(self, payload: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
        if not isinstance(payload, dict):
            return False, "Payload must be a JSON object."
        transaction_uuid = payload.get("transactionUuid")
        if not isinstance(transaction_uuid, str) or not transaction_uuid.strip():
            return False, "transactionUuid is required."
        status = payload.get("status")
        if not isinstance(status, str) or not status.strip():
            return False, "status is required."
        amount = payload.get("amount")
        if amount is not None:
            try:
                Decimal(str(amount))
            except (InvalidOperation, ValueError):
                return False, "amount must be numeric."
        return True, None

    def is_success(self, payload: Dict[str, Any]) -> bool:
        return str(payload.get("status", "")).strip().upper() in SUCCESS_STATUSES

    def translate(self, payload: Dict[str, Any], received_at: datetime) -> PaymentNotification:
        amount = payload.get("amount")
        return PaymentNotification(
            transaction_uuid=payload["transactionUuid"].strip(),
            source=SOURCE_WEBHOOK,
            status=str(payload["status"]).strip().upper(),
            amount=None if amount is None else Decimal(str(amount)),
            received_at=received_at,
        )


class PaymentWebhookProcessor:
    """
    Runs one webhook call end-to-end against the hub.
    All outcomes are audit-logged.
    """

    def __init__(
        self,
        hub: PaymentNotificationHub,
        audit_log: IntegrationAuditLog,
        *,
        adapter: Optional[PaymentWebhookAdapter] = None,
        secret: str = "",
        tenant_id: str = "default",
    ) -> None:
        self._hub = hub
        self._audit = audit_log
        self._adapter = adapter or PaymentWebhookAdapter()
        self._secret = secret
        self._tenant_id = tenant_id

    def process(
        self,
        payload: Dict[str, Any],
        received_at: datetime,
        *,
        raw_body: bytes = b"",
        signature: str = "",
    ) -> InboundResult:
        payload_hash = compute_payload_hash(payload if isinstance(payload, dict) else {"raw": str(payload)})
        transaction_uuid = payload.get("transactionUuid") if isinstance(payload, dict) else None

        if self._secret and not verify_hmac_signature(raw_body, signature, self._secret):
            return self._reject(
                "INVALID_SIGNATURE", "Webhook signature mismatch.",
                payload_hash, received_at, transaction_uuid,
            )

        is_valid, error_msg = self._adapter.validate(payload)
        if not is_valid:
            return self._reject(
                "VALIDATION_FAILED", error_msg or "Invalid payload.",
                payload_hash, received_at, transaction_uuid,
            )

        if not self._adapter.is_success(payload):
            return self._reject(
                "PAYMENT_NOT_SUCCESSFUL", f"Payment status {payload.get('status')!r} is not a success.",
                payload_hash, received_at, transaction_uuid,
            )

        notification = self._adapter.translate(payload, received_at)
        delivered = self._hub.deliver(notification)

        self._audit.record_success(
            tenant_id=self._tenant_id,
            external_system_id=self._adapter.system_id,
            direction=Direction.INBOUND,
            operation="payment_success",
            payload_hash=payload_hash,
            occurred_at=received_at,
            correlation_id=notification.transaction_uuid,
        )
        return InboundResult(
            success=True,
            delivered=delivered,
            transaction_uuid=notification.transaction_uuid,
        )

    def _reject(
        self,
        error_code: str,
        error_message: str,
        payload_hash: str,
        received_at: datetime,
        transaction_uuid: Optional[str],
    ) -> InboundResult:
        self._audit.record_failure(
            tenant_id=self._tenant_id,
            external_system_id=self._adapter.system_id,
            direction=Direction.INBOUND,
            operation="payment_success",
            payload_hash=payload_hash,
            occurred_at=received_at,
            error_code=error_code,
            error_message=error_message,
            correlation_id=transaction_uuid if isinstance(transaction_uuid, str) else None,
        )
        logger.warning(f"Webhook rejected [{error_code}]: {error_message}")
        return InboundResult(
            success=False,
            error_code=error_code,
            error_message=error_message,
            transaction_uuid=transaction_uuid if isinstance(transaction_uuid, str) else None,
        )


__all__ = [
    "DuplicateListenerError",
    "InboundResult",
    "ListenerRegistration",
    "PaymentListener",
    "PaymentNotification",
    "PaymentNotificationHub",
    "PaymentWebhookAdapter",
    "PaymentWebhookProcessor",
    "SOURCE_MANUAL",
    "SOURCE_WEBHOOK",
    "SUCCESS_STATUSES",
]
