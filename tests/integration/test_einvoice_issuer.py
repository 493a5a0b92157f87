"""
Tests — E-Invoice Issuer
============================
Input validation, publish-request amounts, provider mapping and
interpretation of the service's {success, message, data} answer.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.sales_store.connections import InMemoryConnectionInfoProvider
from core.sales_store.records import ConnectionInfo
from core.time import FixedClock, epoch_millis
from engines.cart import CartLine
from integration.adapters import ConnectionInfoMissingError, GatewayRejectedError, ValidationError
from integration.audit_log import IntegrationAuditLog
from integration.outbound import JsonHttpClient
from integration.outbound.einvoice import (
    EInvoiceFields,
    EInvoiceIssuer,
    build_line_payload,
    compute_invoice_amounts,
    item_code,
    provider_id_for,
    validate_publish_inputs,
)


# ── Test Doubles ─────────────────────────────────────────────

T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

FIELDS = EInvoiceFields(
    provider="VnInvoice",
    template="1C25TAA",
    customer_name=" Cong ty A ",
    tax_code="0101234567",
    address="1 Trang Tien",
    phone="0901234567",
    email="ketoan@example.vn",
)
CONNECTION = ConnectionInfo("VnInvoice", "https://vn.example", "0109999999", "user", "pw")

COFFEE = CartLine(
    product_ref=1, name="Coffee", unit_price=Decimal("10000"), quantity=2,
    tax_rate=Decimal("8"), sku="CF-01",
)
CAKE = CartLine(product_ref=12, name="Cake", unit_price=Decimal("15005"), quantity=1)


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def post(self, url, json=None, params=None, headers=None, timeout=None):
        self.calls.append(json)
        return self.response


def _issuer(response, connections=(CONNECTION,)):
    session = FakeSession(response)
    audit = IntegrationAuditLog()
    clock = FixedClock(T0)
    http = JsonHttpClient(
        system_id="einvoice",
        url="http://einvoice.test/publish",
        timeout_seconds=5,
        audit_log=audit,
        session=session,
        clock=clock,
    )
    issuer = EInvoiceIssuer(
        http,
        InMemoryConnectionInfoProvider(connections),
        clock=clock,
        id_factory=lambda: "einv-1",
    )
    return issuer, session, audit


# ══════════════════════════════════════════════════════════════
# VALIDATION
# ══════════════════════════════════════════════════════════════


class TestValidation:
    @pytest.mark.parametrize("field", ["provider", "template", "customer_name"])
    def test_required_fields(self, field):
        fields = EInvoiceFields(**{**FIELDS.to_dict(), field: ""})
        with pytest.raises(ValidationError) as exc:
            validate_publish_inputs(fields, [COFFEE])
        assert exc.value.field == field

    def test_empty_lines(self):
        with pytest.raises(ValidationError) as exc:
            validate_publish_inputs(FIELDS, [])
        assert exc.value.field == "lines"

    def test_zero_priced_line(self):
        free = CartLine(product_ref=3, name="Sample", unit_price=Decimal("0"), quantity=1)
        with pytest.raises(ValidationError, match="Sample"):
            validate_publish_inputs(FIELDS, [COFFEE, free])

    def test_invalid_input_makes_no_call(self):
        issuer, session, audit = _issuer(FakeResponse(200, {"success": True}))
        with pytest.raises(ValidationError):
            issuer.publish(EInvoiceFields(provider="VnInvoice"), [COFFEE])
        assert session.calls == []
        assert audit.entries == []


# ══════════════════════════════════════════════════════════════
# REQUEST BUILDING
# ══════════════════════════════════════════════════════════════


class TestRequestBuilding:
    def test_provider_ids(self):
        assert provider_id_for("EasyInvoice") == 1
        assert provider_id_for("WinInvoice") == 9
        assert provider_id_for("Unknown") == 1

    def test_item_code(self):
        assert item_code(COFFEE, 0) == "CF-01"
        assert item_code(CAKE, 1) == "SP012"

    def test_line_payload_uses_own_rate(self):
        payload = build_line_payload(COFFEE, 0)
        assert payload["amt"] == 20000
        assert payload["vatRt"] == "8"
        assert payload["vatAmt"] == 1600
        assert payload["totalAmt"] == 21600
        assert payload["unitNm"] == "Cái"

    def test_line_without_rate_defaults_to_ten_percent(self):
        payload = build_line_payload(CAKE, 1)
        # 15005 * 10% = 1500.5 -> 1501
        assert payload["vatRt"] == "10"
        assert payload["vatAmt"] == 1501
        assert payload["totalAmt"] == 16506

    def test_invoice_amounts_round_once_on_totals(self):
        amounts = compute_invoice_amounts([COFFEE, CAKE])
        assert amounts.subtotal == Decimal("35005")
        assert amounts.tax == Decimal("3101")
        assert amounts.total == Decimal("38106")


# ══════════════════════════════════════════════════════════════
# PUBLISH
# ══════════════════════════════════════════════════════════════


class TestPublish:
    def test_success(self):
        issuer, session, audit = _issuer(FakeResponse(200, {
            "success": True,
            "data": {"invoiceNo": 123, "invDate": "2025-06-01", "symbol": "C25TAA", "templateCode": "1"},
        }))
        published = issuer.publish(FIELDS, [COFFEE])

        request = session.calls[0]
        assert request["login"] == {
            "providerId": 2,
            "url": "https://vn.example",
            "ma_dvcs": "0109999999",
            "username": "user",
            "password": "pw",
            "tenantId": "",
        }
        assert request["transactionID"] == "einv-1"
        assert request["invRef"] == f"INV-{epoch_millis(T0)}"
        assert request["spcfNo"] == "1C25TAA"
        assert request["customer"]["custNm"] == "Cong ty A"
        assert request["customer"]["email"] == "ketoan@example.vn"
        assert request["invTotalAmount"] == 21600
        assert len(request["products"]) == 1

        assert published.invoice_number == "123"
        assert published.symbol == "C25TAA"
        assert published.submitted.total == Decimal("21600")
        assert audit.entries[-1].status == "SUCCESS"

    def test_missing_connection(self):
        issuer, session, _ = _issuer(FakeResponse(200, {"success": True}), connections=())
        with pytest.raises(ConnectionInfoMissingError):
            issuer.publish(FIELDS, [COFFEE])
        assert session.calls == []

    def test_inactive_connection_counts_as_missing(self):
        inactive = ConnectionInfo("VnInvoice", "https://vn.example", "01", "u", "p", is_active=False)
        issuer, _, _ = _issuer(FakeResponse(200, {"success": True}), connections=(inactive,))
        with pytest.raises(ConnectionInfoMissingError):
            issuer.publish(FIELDS, [COFFEE])

    def test_business_failure_message_verbatim(self):
        issuer, _, audit = _issuer(FakeResponse(200, {"success": False, "message": "Sai mật khẩu"}))
        with pytest.raises(GatewayRejectedError) as exc:
            issuer.publish(FIELDS, [COFFEE])
        assert exc.value.message == "Sai mật khẩu"
        assert audit.query_failures("default")[0].error_code == "GATEWAY_REJECTED"

    def test_http_failure(self):
        issuer, _, _ = _issuer(FakeResponse(502, None, text="Bad Gateway"))
        with pytest.raises(GatewayRejectedError) as exc:
            issuer.publish(FIELDS, [COFFEE])
        assert exc.value.status_code == 502
        assert exc.value.message == "Bad Gateway"

    def test_lookup_without_registry(self):
        issuer, _, _ = _issuer(FakeResponse(200, []))
        with pytest.raises(ConnectionInfoMissingError):
            issuer.lookup_tax_code("0101234567")
