"""
POS Integration — Outbound HTTP Transport
============================================
Shared JSON-over-HTTP plumbing for the QR gateway, tax registry
and e-invoice clients.

Every call carries an explicit timeout. Transport failures surface as
NetworkError (or a subclass the caller names); interpreting the
status and body is left to the specific client. Every outcome is
audit-logged against the tenant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

import requests

from core.time import Clock, get_default_clock
from integration.adapters import Direction, IntegrationError, NetworkError, compute_payload_hash
from integration.audit_log import IntegrationAuditLog

logger = logging.getLogger("pos.integration")

DEFAULT_TENANT = "default"


# ══════════════════════════════════════════════════════════════
# HTTP RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class HttpResult:
    """Status and decoded body of one outbound call."""

    status_code: int
    body: Any
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def error_message(self, default: str) -> str:
        """Best human-readable message the remote side offered."""
        if isinstance(self.body, dict):
            for key in ("message", "details", "error"):
                value = self.body.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
        if self.text and self.text.strip():
            return self.text.strip()[:500]
        return default


# ══════════════════════════════════════════════════════════════
# JSON HTTP CLIENT
# ══════════════════════════════════════════════════════════════

class JsonHttpClient:
    """
    POSTs JSON to one external system.

    `session` is anything with requests.Session's `post` signature,
    so tests can hand in a fake.
    """

    def __init__(
        self,
        *,
        system_id: str,
        url: str,
        timeout_seconds: float,
        audit_log: Optional[IntegrationAuditLog] = None,
        session: Any = None,
        tenant_id: str = DEFAULT_TENANT,
        clock: Optional[Clock] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        if not system_id:
            raise ValueError("system_id must be non-empty.")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0.")
        self._system_id = system_id
        self._url = url
        self._timeout = timeout_seconds
        self._audit = audit_log
        self._session = session if session is not None else requests.Session()
        self._tenant_id = tenant_id
        self._clock = clock or get_default_clock()
        self._headers = dict(headers or {})

    @property
    def system_id(self) -> str:
        return self._system_id

    @property
    def url(self) -> str:
        return self._url

    def post_json(
        self,
        payload: Dict[str, Any],
        *,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
        error_cls: Type[NetworkError] = NetworkError,
    ) -> HttpResult:
        if not self._url:
            error = error_cls(f"{self._system_id} endpoint is not configured.", system_id=self._system_id)
            self.record_outcome(operation, payload, error=error, correlation_id=correlation_id)
            raise error

        logger.debug(f"POST {self._system_id}.{operation} correlation={correlation_id}")
        try:
            response = self._session.post(
                self._url,
                json=payload,
                params=params,
                headers=self._headers or None,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            error = error_cls(f"{self._system_id} unreachable: {exc}", system_id=self._system_id)
            self.record_outcome(operation, payload, error=error, correlation_id=correlation_id)
            logger.warning(f"{self._system_id}.{operation} transport failure: {exc}")
            raise error from exc

        try:
            body = response.json()
        except ValueError:
            body = None
        return HttpResult(status_code=response.status_code, body=body, text=response.text or "")

    def record_outcome(
        self,
        operation: str,
        payload: Dict[str, Any],
        *,
        error: Optional[IntegrationError] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        if self._audit is None:
            return
        payload_hash = compute_payload_hash(payload)
        occurred_at = self._clock.now_utc()
        if error is None:
            self._audit.record_success(
                tenant_id=self._tenant_id,
                external_system_id=self._system_id,
                direction=Direction.OUTBOUND,
                operation=operation,
                payload_hash=payload_hash,
                occurred_at=occurred_at,
                correlation_id=correlation_id,
            )
        else:
            self._audit.record_failure(
                tenant_id=self._tenant_id,
                external_system_id=self._system_id,
                direction=Direction.OUTBOUND,
                operation=operation,
                payload_hash=payload_hash,
                occurred_at=occurred_at,
                error_code=error.code,
                error_message=error.message,
                correlation_id=correlation_id,
            )

    def fail(
        self,
        error: IntegrationError,
        operation: str,
        payload: Dict[str, Any],
        *,
        correlation_id: Optional[str] = None,
    ) -> IntegrationError:
        """Audit and log a failure the caller is about to raise."""
        self.record_outcome(operation, payload, error=error, correlation_id=correlation_id)
        logger.warning(f"{self._system_id}.{operation} failed [{error.code}]: {error.message}")
        return error


__all__ = [
    "DEFAULT_TENANT",
    "HttpResult",
    "JsonHttpClient",
]
