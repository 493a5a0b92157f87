"""
Tests — Integration Adapter Utilities
=========================================
Error taxonomy, payload hashing, webhook signature verification.
"""

from __future__ import annotations

import hashlib
import hmac

from integration.adapters import (
    ConnectionInfoMissingError,
    GatewayRejectedError,
    GatewayUnavailableError,
    IntegrationError,
    NetworkError,
    ValidationError,
    compute_payload_hash,
    verify_hmac_signature,
)


# ══════════════════════════════════════════════════════════════
# ERROR HIERARCHY
# ══════════════════════════════════════════════════════════════


class TestErrorHierarchy:
    def test_all_errors_are_integration_errors(self):
        for cls in (ValidationError, ConnectionInfoMissingError, GatewayRejectedError, NetworkError):
            assert issubclass(cls, IntegrationError)
        assert issubclass(GatewayUnavailableError, NetworkError)

    def test_validation_error_carries_field(self):
        e = ValidationError("Customer name is required.", field="customer_name", system_id="einvoice")
        assert e.retryable is False
        assert e.field == "customer_name"
        assert e.system_id == "einvoice"
        assert e.code == "VALIDATION_ERROR"

    def test_connection_missing_not_retryable(self):
        assert ConnectionInfoMissingError("no creds").retryable is False

    def test_gateway_rejection_is_retryable(self):
        e = GatewayRejectedError("Token expired", status_code=401)
        assert e.retryable is True
        assert e.status_code == 401
        assert str(e) == "Token expired"

    def test_gateway_unavailable_has_own_code(self):
        e = GatewayUnavailableError("down", system_id="qr_gateway")
        assert e.retryable is True
        assert e.code == "GATEWAY_UNAVAILABLE"


# ══════════════════════════════════════════════════════════════
# PAYLOAD HASH
# ══════════════════════════════════════════════════════════════


class TestPayloadHash:
    def test_deterministic(self):
        payload = {"depositAmt": 22000, "posBillNo": "BILL-1"}
        assert compute_payload_hash(payload) == compute_payload_hash(payload)
        assert len(compute_payload_hash(payload)) == 64  # SHA-256 hex

    def test_differs_for_different_data(self):
        assert compute_payload_hash({"a": 1}) != compute_payload_hash({"a": 2})

    def test_key_order_independent(self):
        assert compute_payload_hash({"b": 2, "a": 1}) == compute_payload_hash({"a": 1, "b": 2})


# ══════════════════════════════════════════════════════════════
# HMAC SIGNATURE VERIFICATION
# ══════════════════════════════════════════════════════════════


class TestHmacSignature:
    def test_valid_sha256_signature(self):
        secret = "test-secret"
        payload = b'{"transactionUuid": "tx-1", "status": "SUCCESS"}'
        sig = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
        assert verify_hmac_signature(payload, sig, secret, "sha256") is True

    def test_invalid_signature_rejected(self):
        payload = b'{"transactionUuid": "tx-1"}'
        assert verify_hmac_signature(payload, "bad-sig", "secret", "sha256") is False

    def test_missing_signature_rejected(self):
        assert verify_hmac_signature(b"x", "", "secret") is False

    def test_sha1_algorithm(self):
        secret = "s1-secret"
        payload = b"test-body"
        sig = hmac.new(secret.encode(), payload, hashlib.sha1).hexdigest()
        assert verify_hmac_signature(payload, sig, secret, "sha1") is True

    def test_unknown_algorithm_rejected(self):
        assert verify_hmac_signature(b"x", "sig", "sec", "md5") is False

    def test_prefixed_header_form_accepted(self):
        secret = "pos-webhook"
        payload = b'{"transactionUuid":"t-1","status":"SUCCESS"}'
        sig = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
        assert verify_hmac_signature(payload, f"sha256={sig}", secret) is True
        assert verify_hmac_signature(payload, f"sha256={sig.upper()}", secret) is True
