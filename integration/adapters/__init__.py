"""
POS Integration — Adapter Utilities
=======================================
Shared infrastructure for the QR gateway, tax registry, e-invoice
and payment-webhook adapters.

Error taxonomy:
    ValidationError            input problem, caught before any network call
    ConnectionInfoMissingError no active credentials for the chosen issuer
    GatewayRejectedError       remote business-rule rejection (retryable)
    NetworkError               transport failure (retryable)
    GatewayUnavailableError    QR gateway down or unusable (retryable)

Only `retryable` errors are offered to the user as "try again";
the others need a configuration or input change.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from enum import Enum
from typing import Any, Dict, Optional


# ══════════════════════════════════════════════════════════════
# ERROR HIERARCHY
# ══════════════════════════════════════════════════════════════

class IntegrationError(Exception):
    """Base error for all integration failures."""

    code = "INTEGRATION_ERROR"

    def __init__(self, message: str, system_id: str = "", retryable: bool = False):
        super().__init__(message)
        self.message = message
        self.system_id = system_id
        self.retryable = retryable


class ValidationError(IntegrationError):
    """Required input missing or malformed. Never reaches the network."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, system_id: str = ""):
        super().__init__(message, system_id=system_id, retryable=False)
        self.field = field


class ConnectionInfoMissingError(IntegrationError):
    """No active gateway credentials configured for the chosen issuer."""

    code = "CONNECTION_INFO_MISSING"

    def __init__(self, message: str, system_id: str = ""):
        super().__init__(message, system_id=system_id, retryable=False)


class GatewayRejectedError(IntegrationError):
    """Remote service answered with a failure status. Message is shown verbatim."""

    code = "GATEWAY_REJECTED"

    def __init__(self, message: str, system_id: str = "", status_code: Optional[int] = None):
        super().__init__(message, system_id=system_id, retryable=True)
        self.status_code = status_code


class NetworkError(IntegrationError):
    """Transport-level failure (timeout, refused connection, bad JSON)."""

    code = "NETWORK_ERROR"

    def __init__(self, message: str, system_id: str = ""):
        super().__init__(message, system_id=system_id, retryable=True)


class GatewayUnavailableError(NetworkError):
    """QR gateway unreachable, non-2xx, or returned no QR data."""

    code = "GATEWAY_UNAVAILABLE"


# ══════════════════════════════════════════════════════════════
# DIRECTION ENUM
# ══════════════════════════════════════════════════════════════

class Direction(Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


# ══════════════════════════════════════════════════════════════
# PAYLOAD HASH (audit correlation)
# ══════════════════════════════════════════════════════════════

def compute_payload_hash(payload: Dict[str, Any]) -> str:
    """Deterministic hash of a payload for the audit trail."""
    normalized = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


# ══════════════════════════════════════════════════════════════
# WEBHOOK SIGNATURE VERIFICATION
# ══════════════════════════════════════════════════════════════

_DIGESTS = {
    "sha256": hashlib.sha256,
    "sha1": hashlib.sha1,
}


def verify_hmac_signature(
    payload_bytes: bytes,
    signature: str,
    secret: str,
    algorithm: str = "sha256",
) -> bool:
    """
    Check the X-Signature header of a payment webhook.

    Accepts a bare hex digest or the `<algorithm>=<hex>` form.
    Unknown algorithms and empty signatures never verify.
    """
    digest = _DIGESTS.get(algorithm)
    if digest is None or not signature:
        return False
    prefix = f"{algorithm}="
    if signature.startswith(prefix):
        signature = signature[len(prefix):]

    expected = hmac.new(secret.encode("utf-8"), payload_bytes, digest).hexdigest()
    return hmac.compare_digest(expected, signature.strip().lower())
