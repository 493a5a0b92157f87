"""
Tests — Outbound JSON Transport
===================================
Timeouts, transport failures, body decoding and audit logging
shared by every outbound client.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
import requests

from core.time import FixedClock
from integration.adapters import GatewayUnavailableError, NetworkError
from integration.audit_log import IntegrationAuditLog
from integration.outbound import HttpResult, JsonHttpClient


# ── Test Doubles ─────────────────────────────────────────────

T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
URL = "http://remote.test/api"


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

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _client(response, **overrides):
    audit = IntegrationAuditLog()
    options = dict(
        system_id="remote",
        url=URL,
        timeout_seconds=7,
        audit_log=audit,
        session=FakeSession(response),
        clock=FixedClock(T0),
    )
    options.update(overrides)
    return JsonHttpClient(**options), audit


# ══════════════════════════════════════════════════════════════
# HTTP RESULT
# ══════════════════════════════════════════════════════════════


class TestHttpResult:
    @pytest.mark.parametrize("status, ok", [(200, True), (201, True), (299, True), (301, False), (500, False)])
    def test_ok(self, status, ok):
        assert HttpResult(status_code=status, body=None).ok is ok

    def test_error_message_prefers_body(self):
        result = HttpResult(500, {"message": " Token expired "}, text="raw")
        assert result.error_message("fallback") == "Token expired"

    def test_error_message_falls_back_to_text(self):
        assert HttpResult(502, None, text="Bad Gateway").error_message("fallback") == "Bad Gateway"

    def test_error_message_default(self):
        assert HttpResult(500, {"message": ""}).error_message("fallback") == "fallback"


# ══════════════════════════════════════════════════════════════
# CLIENT
# ══════════════════════════════════════════════════════════════


class TestJsonHttpClient:
    def test_posts_json_with_timeout(self):
        client, _ = _client(FakeResponse(200, {"ok": True}))
        result = client.post_json({"a": 1}, operation="op", params={"q": "1"})

        url, kwargs = client._session.calls[0]
        assert url == URL
        assert kwargs["json"] == {"a": 1}
        assert kwargs["params"] == {"q": "1"}
        assert kwargs["timeout"] == 7
        assert result.ok and result.body == {"ok": True}

    def test_non_json_body_is_none(self):
        client, _ = _client(FakeResponse(200, None, text="<html>"))
        result = client.post_json({}, operation="op")
        assert result.body is None
        assert result.text == "<html>"

    def test_transport_failure_raises_and_audits(self):
        client, audit = _client(requests.ConnectionError("refused"))
        with pytest.raises(NetworkError):
            client.post_json({"a": 1}, operation="op", correlation_id="c-1")
        failure = audit.query_failures("default")[0]
        assert failure.operation == "op"
        assert failure.error_code == "NETWORK_ERROR"
        assert failure.correlation_id == "c-1"
        assert failure.occurred_at == T0

    def test_caller_chooses_error_class(self):
        client, _ = _client(requests.Timeout("slow"))
        with pytest.raises(GatewayUnavailableError):
            client.post_json({}, operation="op", error_cls=GatewayUnavailableError)

    def test_unconfigured_url_never_calls_out(self):
        client, audit = _client(FakeResponse(200, {}), url="")
        with pytest.raises(NetworkError, match="not configured"):
            client.post_json({}, operation="op")
        assert client._session.calls == []
        assert len(audit.entries) == 1

    def test_record_outcome_success(self):
        client, audit = _client(FakeResponse(200, {}), tenant_id="tenant_b")
        client.record_outcome("op", {"a": 1}, correlation_id="c-2")
        entry = audit.query_by_tenant("tenant_b")[0]
        assert entry.status == "SUCCESS"
        assert entry.external_system_id == "remote"

    def test_no_audit_log_is_fine(self):
        client, _ = _client(FakeResponse(200, {}), audit_log=None)
        client.record_outcome("op", {})

    @pytest.mark.parametrize("options", [{"system_id": ""}, {"timeout_seconds": 0}])
    def test_rejects_bad_construction(self, options):
        with pytest.raises(ValueError):
            _client(FakeResponse(), **options)
