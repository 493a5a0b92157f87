"""
Tests — Tax Registry Lookup
"""

from __future__ import annotations

import pytest

from integration.adapters import GatewayRejectedError, NetworkError, ValidationError
from integration.outbound import JsonHttpClient
from integration.outbound.tax_registry import TaxRegistryClient


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


def _registry(response):
    session = FakeSession(response)
    http = JsonHttpClient(
        system_id="tax_registry",
        url="http://tax.test/lookup",
        timeout_seconds=5,
        session=session,
    )
    return TaxRegistryClient(http), session


ACTIVE = {
    "tenCty": "CONG TY TNHH A",
    "diaChi": "1 Trang Tien, Ha Noi",
    "tthai": "00",
    "trangThaiHoatDong": "NNT đang hoạt động",
}


class TestTaxRegistry:
    def test_active_taxpayer(self):
        registry, session = _registry(FakeResponse(200, [ACTIVE]))
        result = registry.lookup_tax_code(" 0101234567 ")

        assert session.calls[0] == {"taxCodes": ["0101234567"]}
        assert result.found is True
        assert result.usable is True
        assert result.company_name == "CONG TY TNHH A"
        assert result.status_text == "NNT đang hoạt động"

    def test_inactive_taxpayer_still_returned(self):
        registry, _ = _registry(FakeResponse(200, [{**ACTIVE, "tthai": "03", "trangThaiHoatDong": None}]))
        result = registry.lookup_tax_code("0101234567")
        assert result.found is True
        assert result.usable is False
        assert result.status_text == "03"
        assert result.to_dict()["usable"] is False

    def test_not_found(self):
        registry, _ = _registry(FakeResponse(200, []))
        result = registry.lookup_tax_code("0000000000")
        assert result.found is False
        assert result.usable is False

    def test_blank_code_rejected_locally(self):
        registry, session = _registry(FakeResponse(200, []))
        with pytest.raises(ValidationError) as exc:
            registry.lookup_tax_code("   ")
        assert exc.value.field == "tax_code"
        assert session.calls == []

    def test_http_failure(self):
        registry, _ = _registry(FakeResponse(404, {"message": "Not found"}))
        with pytest.raises(GatewayRejectedError, match="Not found"):
            registry.lookup_tax_code("0101234567")

    def test_unexpected_body(self):
        registry, _ = _registry(FakeResponse(200, {"tenCty": "not a list"}))
        with pytest.raises(NetworkError):
            registry.lookup_tax_code("0101234567")
