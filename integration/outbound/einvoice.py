"""
POS Integration — E-Invoice Issuer
====================================
Publishes a tax-authority e-invoice for a cart snapshot through the
configured provider, and proxies taxpayer lookups for the invoice form.

Publish flow:
    1. validate fields and lines (no network on failure)
    2. resolve active connection info for the provider
    3. build the publish request
    4. POST, interpret {success, message, data}

Amounts in the request are computed independently of the cart's own
totals: per-line tax is subtotal x taxRate / 100 (taxRate 10 when the
line has none), rounded half-up per line and again on the invoice
totals. The cart floors its per-line tax instead, so the two may differ.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Union

from core.primitives import ZERO, round_units
from core.sales_store.connections import ConnectionInfoProvider
from core.sales_store.records import ConnectionInfo
from core.time import Clock, epoch_millis, get_default_clock
from integration.adapters import ConnectionInfoMissingError, GatewayRejectedError, ValidationError
from integration.outbound import JsonHttpClient
from integration.outbound.tax_registry import TaxCodeLookupResult, TaxRegistryClient

logger = logging.getLogger("pos.integration.einvoice")

SYSTEM_ID = "einvoice"

EINVOICE_PROVIDERS: Dict[str, int] = {
    "EasyInvoice": 1,
    "VnInvoice": 2,
    "FptInvoice": 3,
    "MifiInvoice": 4,
    "EHoaDon": 5,
    "BkavInvoice": 6,
    "MInvoice": 7,
    "SInvoice": 8,
    "WinInvoice": 9,
}
DEFAULT_PROVIDER_ID = 1

DEFAULT_TAX_RATE = Decimal("10")
UNIT_NAME = "Cái"
PAYMENT_TYPE_CASH = "TM"
CURRENCY = "VND"


def provider_id_for(provider: str) -> int:
    return EINVOICE_PROVIDERS.get(provider, DEFAULT_PROVIDER_ID)


# ══════════════════════════════════════════════════════════════
# INPUTS
# ══════════════════════════════════════════════════════════════

class InvoiceLineSource(Protocol):
    """Anything line-shaped: cart lines satisfy this."""
    product_ref: Union[int, str]
    name: str
    unit_price: Decimal
    quantity: int
    tax_rate: Optional[Decimal]
    sku: Optional[str]


@dataclass(frozen=True)
class EInvoiceFields:
    """What the cashier fills in on the e-invoice form."""
    provider: str = ""
    template: str = ""
    customer_name: str = ""
    tax_code: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "template": self.template,
            "customer_name": self.customer_name,
            "tax_code": self.tax_code,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
        }


def validate_publish_inputs(fields: EInvoiceFields, lines: Sequence[InvoiceLineSource]) -> None:
    """Raises ValidationError naming the first offending field."""
    if not (fields.provider or "").strip():
        raise ValidationError("E-invoice provider is required.", field="provider", system_id=SYSTEM_ID)
    if not (fields.template or "").strip():
        raise ValidationError("Invoice template is required.", field="template", system_id=SYSTEM_ID)
    if not (fields.customer_name or "").strip():
        raise ValidationError("Customer name is required.", field="customer_name", system_id=SYSTEM_ID)
    if not lines:
        raise ValidationError("Cannot issue an e-invoice for an empty cart.", field="lines", system_id=SYSTEM_ID)
    invalid = [line.name or "?" for line in lines if line.unit_price <= 0 or line.quantity <= 0]
    if invalid:
        raise ValidationError(
            f"Lines without a positive price and quantity: {', '.join(invalid)}",
            field="lines",
            system_id=SYSTEM_ID,
        )


# ══════════════════════════════════════════════════════════════
# REQUEST BUILDING
# ══════════════════════════════════════════════════════════════

def item_code(line: InvoiceLineSource, index: int) -> str:
    if line.sku:
        return line.sku
    ref = line.product_ref if line.product_ref not in (None, "") else index + 1
    return f"SP{str(ref).zfill(3)}"


def _number(value: Decimal) -> Union[int, float]:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def build_line_payload(line: InvoiceLineSource, index: int) -> Dict[str, Any]:
    rate = line.tax_rate if line.tax_rate is not None else DEFAULT_TAX_RATE
    subtotal = line.unit_price * line.quantity
    tax = subtotal * rate / Decimal("100")
    return {
        "itmCd": item_code(line, index),
        "itmName": line.name,
        "itmKnd": 1,
        "unitNm": UNIT_NAME,
        "qty": line.quantity,
        "unprc": _number(line.unit_price),
        "amt": int(round_units(subtotal)),
        "discRate": 0,
        "discAmt": 0,
        "vatRt": str(_number(rate)),
        "vatAmt": int(round_units(tax)),
        "totalAmt": int(round_units(subtotal + tax)),
    }


@dataclass(frozen=True)
class InvoiceAmounts:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def compute_invoice_amounts(lines: Sequence[InvoiceLineSource]) -> InvoiceAmounts:
    subtotal = ZERO
    tax = ZERO
    for line in lines:
        rate = line.tax_rate if line.tax_rate is not None else DEFAULT_TAX_RATE
        line_subtotal = line.unit_price * line.quantity
        subtotal += line_subtotal
        tax += line_subtotal * rate / Decimal("100")
    return InvoiceAmounts(
        subtotal=round_units(subtotal),
        tax=round_units(tax),
        total=round_units(subtotal + tax),
    )


def build_publish_request(
    fields: EInvoiceFields,
    connection: ConnectionInfo,
    lines: Sequence[InvoiceLineSource],
    *,
    transaction_id: str,
    inv_ref: str,
    created_at: datetime,
) -> Dict[str, Any]:
    amounts = compute_invoice_amounts(lines)
    return {
        "login": {
            "providerId": provider_id_for(fields.provider),
            "url": connection.login_url,
            "ma_dvcs": connection.tax_code,
            "username": connection.login_id,
            "password": connection.password,
            "tenantId": "",
        },
        "transactionID": transaction_id,
        "invRef": inv_ref,
        "invSubTotal": int(amounts.subtotal),
        "invVatRate": int(DEFAULT_TAX_RATE),
        "invVatAmount": int(amounts.tax),
        "invDiscAmount": 0,
        "invTotalAmount": int(amounts.total),
        "paidTp": PAYMENT_TYPE_CASH,
        "note": "",
        "hdNo": "",
        "createdDate": created_at.isoformat(),
        "clsfNo": "1",
        "spcfNo": fields.template.strip(),
        "templateCode": "",
        "buyerNotGetInvoice": 0,
        "exchCd": CURRENCY,
        "exchRt": 1,
        "bankAccount": "",
        "bankName": "",
        "customer": {
            "custCd": fields.tax_code,
            "custNm": fields.customer_name.strip(),
            "custCompany": fields.customer_name.strip(),
            "taxCode": fields.tax_code,
            "custCity": "",
            "custDistrictName": "",
            "custAddrs": fields.address,
            "custPhone": fields.phone,
            "custBankAccount": "",
            "custBankName": "",
            "email": fields.email,
            "emailCC": "",
        },
        "products": [build_line_payload(line, index) for index, line in enumerate(lines)],
    }


# ══════════════════════════════════════════════════════════════
# ISSUER
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PublishedInvoice:
    """Identity of the issued invoice plus the amounts that were submitted."""
    invoice_number: Optional[str]
    invoice_date: Optional[str]
    symbol: Optional[str]
    template_code: Optional[str]
    transaction_id: str
    inv_ref: str
    submitted: InvoiceAmounts

    def to_dict(self) -> dict:
        return {
            "invoice_number": self.invoice_number,
            "invoice_date": self.invoice_date,
            "symbol": self.symbol,
            "template_code": self.template_code,
            "transaction_id": self.transaction_id,
            "inv_ref": self.inv_ref,
            "submitted_subtotal": str(self.submitted.subtotal),
            "submitted_tax": str(self.submitted.tax),
            "submitted_total": str(self.submitted.total),
        }


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


class EInvoiceIssuer:
    def __init__(
        self,
        http: JsonHttpClient,
        connections: ConnectionInfoProvider,
        tax_registry: Optional[TaxRegistryClient] = None,
        *,
        clock: Optional[Clock] = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self._http = http
        self._connections = connections
        self._tax_registry = tax_registry
        self._clock = clock or get_default_clock()
        self._id_factory = id_factory

    def publish(self, fields: EInvoiceFields, lines: Sequence[InvoiceLineSource]) -> PublishedInvoice:
        lines = list(lines)
        validate_publish_inputs(fields, lines)

        connection = self._connections.get_active_connection(fields.provider)
        if connection is None:
            raise ConnectionInfoMissingError(
                f"No active connection configured for {fields.provider}.",
                system_id=SYSTEM_ID,
            )

        now = self._clock.now_utc()
        transaction_id = self._id_factory()
        inv_ref = f"INV-{epoch_millis(now)}"
        request = build_publish_request(
            fields, connection, lines,
            transaction_id=transaction_id,
            inv_ref=inv_ref,
            created_at=now,
        )

        result = self._http.post_json(request, operation="publish_invoice", correlation_id=transaction_id)
        if not result.ok:
            raise self._http.fail(
                GatewayRejectedError(
                    result.error_message(f"E-invoice service answered HTTP {result.status_code}."),
                    system_id=SYSTEM_ID,
                    status_code=result.status_code,
                ),
                "publish_invoice", request, correlation_id=transaction_id,
            )

        body = result.body if isinstance(result.body, dict) else {}
        if not body.get("success"):
            raise self._http.fail(
                GatewayRejectedError(
                    str(body.get("message") or "E-invoice service rejected the invoice."),
                    system_id=SYSTEM_ID,
                    status_code=result.status_code,
                ),
                "publish_invoice", request, correlation_id=transaction_id,
            )

        self._http.record_outcome("publish_invoice", request, correlation_id=transaction_id)
        data = body.get("data") if isinstance(body.get("data"), dict) else {}
        published = PublishedInvoice(
            invoice_number=_optional_str(data.get("invoiceNo")),
            invoice_date=_optional_str(data.get("invDate")),
            symbol=_optional_str(data.get("symbol")),
            template_code=_optional_str(data.get("templateCode")),
            transaction_id=transaction_id,
            inv_ref=inv_ref,
            submitted=compute_invoice_amounts(lines),
        )
        logger.info(
            f"E-invoice published provider={fields.provider} "
            f"invoice={published.invoice_number} ref={inv_ref}"
        )
        return published

    def lookup_tax_code(self, tax_code: str) -> TaxCodeLookupResult:
        if self._tax_registry is None:
            raise ConnectionInfoMissingError("Tax registry is not configured.", system_id=SYSTEM_ID)
        return self._tax_registry.lookup_tax_code(tax_code)


__all__ = [
    "DEFAULT_TAX_RATE",
    "EINVOICE_PROVIDERS",
    "EInvoiceFields",
    "EInvoiceIssuer",
    "InvoiceAmounts",
    "InvoiceLineSource",
    "PublishedInvoice",
    "SYSTEM_ID",
    "build_line_payload",
    "build_publish_request",
    "compute_invoice_amounts",
    "item_code",
    "provider_id_for",
    "validate_publish_inputs",
]
