"""
POS Integration — QR Payment Gateway Client
=============================================
Requests a dynamic payment QR for an amount. Payment confirmation
arrives separately, through the notification hub (webhook or manual).

Request:  POST <gateway>?bankCode=..&clientID=..
          {transactionUuid, depositAmt, posUniqueId, accntNo,
           posfranchiseeName, posCompanyName, posBillNo}
Response: {qrData: <base64 or raw QR content>}
"""

from __future__ import annotations

import base64
import binascii
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from core.config import QRMerchantRefs
from core.primitives import round_units, to_money
from core.time import Clock, epoch_millis, get_default_clock
from integration.adapters import GatewayUnavailableError
from integration.inbound import (
    SOURCE_MANUAL,
    ListenerRegistration,
    PaymentNotification,
    PaymentNotificationHub,
)
from integration.outbound import JsonHttpClient

logger = logging.getLogger("pos.integration.qr")

SYSTEM_ID = "qr_gateway"


@dataclass(frozen=True)
class QRPaymentRequest:
    """What the gateway handed back for one payment attempt."""
    transaction_uuid: str
    qr_payload: str
    bill_no: str
    amount: Decimal

    @property
    def qr_content(self) -> str:
        return decode_qr_payload(self.qr_payload)


def decode_qr_payload(payload: str) -> str:
    """
    Gateways send the QR string base64-encoded, some send it raw.
    Anything that does not decode to printable text is taken as raw.
    """
    if not payload:
        return payload
    try:
        decoded = base64.b64decode(payload, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        logger.debug("qrData is not base64; using it as is")
        return payload
    if not decoded or not decoded.replace("\n", "").isprintable():
        logger.debug("qrData decodes to non-printable bytes; using it as is")
        return payload
    return decoded


def build_placeholder_qr(amount: Decimal, order_number: str, at: datetime) -> str:
    """Offline QR content shown when the gateway cannot be reached."""
    return (
        "Payment via QR\n"
        f"Amount: {round_units(amount)}\n"
        f"Order: {order_number}\n"
        f"Time: {at.isoformat()}"
    )


def new_transaction_uuid() -> str:
    return str(uuid.uuid4())


class QRGatewayClient:
    def __init__(
        self,
        http: JsonHttpClient,
        merchant: QRMerchantRefs,
        notifications: PaymentNotificationHub,
        *,
        clock: Optional[Clock] = None,
        uuid_factory: Callable[[], str] = new_transaction_uuid,
    ) -> None:
        self._http = http
        self._merchant = merchant
        self._notifications = notifications
        self._clock = clock or get_default_clock()
        self._uuid_factory = uuid_factory

    def new_transaction_uuid(self) -> str:
        return self._uuid_factory()

    def request_qr(self, amount: Decimal, transaction_uuid: Optional[str] = None) -> QRPaymentRequest:
        """
        Raises GatewayUnavailableError on transport failure, non-2xx,
        or a response without qrData.
        """
        amount = to_money(amount, "amount")
        if amount <= 0:
            raise ValueError("amount must be > 0.")
        transaction_uuid = transaction_uuid or self._uuid_factory()
        bill_no = f"BILL-{epoch_millis(self._clock.now_utc())}"

        payload = {
            "transactionUuid": transaction_uuid,
            "depositAmt": int(round_units(amount)),
            "posUniqueId": self._merchant.pos_unique_id,
            "accntNo": self._merchant.account_no,
            "posfranchiseeName": self._merchant.franchisee_name,
            "posCompanyName": self._merchant.company_name,
            "posBillNo": bill_no,
        }
        params = {
            "bankCode": self._merchant.bank_code,
            "clientID": self._merchant.client_id,
        }

        result = self._http.post_json(
            payload,
            operation="create_qr",
            params=params,
            correlation_id=transaction_uuid,
            error_cls=GatewayUnavailableError,
        )
        if not result.ok:
            raise self._http.fail(
                GatewayUnavailableError(
                    f"QR gateway answered HTTP {result.status_code}: "
                    f"{result.error_message('no details')}",
                    system_id=SYSTEM_ID,
                ),
                "create_qr", payload, correlation_id=transaction_uuid,
            )

        qr_data = result.body.get("qrData") if isinstance(result.body, dict) else None
        if not isinstance(qr_data, str) or not qr_data:
            raise self._http.fail(
                GatewayUnavailableError("QR gateway returned no qrData.", system_id=SYSTEM_ID),
                "create_qr", payload, correlation_id=transaction_uuid,
            )

        self._http.record_outcome("create_qr", payload, correlation_id=transaction_uuid)
        logger.info(f"QR issued transaction={transaction_uuid} bill={bill_no} amount={amount}")
        return QRPaymentRequest(
            transaction_uuid=transaction_uuid,
            qr_payload=qr_data,
            bill_no=bill_no,
            amount=amount,
        )

    def await_success(
        self,
        transaction_uuid: str,
        on_success: Callable[[PaymentNotification], None],
    ) -> ListenerRegistration:
        """
        Register the single success listener for a transaction.
        The caller must release the returned registration on every exit path.
        """
        return self._notifications.register(transaction_uuid, on_success)

    def report_manual_payment(self, transaction_uuid: str) -> bool:
        """Cashier saw the payment on the customer's phone. Competes with the webhook."""
        return self._notifications.deliver(
            PaymentNotification(
                transaction_uuid=transaction_uuid,
                source=SOURCE_MANUAL,
                received_at=self._clock.now_utc(),
            )
        )


__all__ = [
    "QRGatewayClient",
    "QRPaymentRequest",
    "SYSTEM_ID",
    "build_placeholder_qr",
    "decode_qr_payload",
    "new_transaction_uuid",
]
