"""
POS HTTP API - Response Envelope
================================
Stable {ok, data} / {ok, error} bodies, and the mapping from
integration errors to HTTP status codes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from integration.adapters import (
    ConnectionInfoMissingError,
    GatewayRejectedError,
    IntegrationError,
    NetworkError,
    ValidationError,
)


@dataclass(frozen=True)
class HttpApiErrorBody:
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class HttpApiResponse:
    ok: bool
    data: Any = None
    error: Optional[HttpApiErrorBody] = None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "data": self.data}
        if self.error is None:
            raise ValueError("error must be set when ok is False.")
        return {"ok": False, "error": self.error.to_dict()}


def error_response(
    *,
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    return HttpApiResponse(
        ok=False,
        error=HttpApiErrorBody(
            code=code,
            message=message,
            details=details or {},
        ),
    ).to_dict()


def success_response(data: Any) -> dict[str, Any]:
    return HttpApiResponse(ok=True, data=data).to_dict()


def status_for_integration_error(error: IntegrationError) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, ConnectionInfoMissingError):
        return 424
    if isinstance(error, GatewayRejectedError):
        return 502
    if isinstance(error, NetworkError):
        return 503
    return 500


def integration_error_response(error: IntegrationError) -> dict[str, Any]:
    details: dict[str, Any] = {"retryable": error.retryable}
    field_name = getattr(error, "field", None)
    if field_name:
        details["field"] = field_name
    return error_response(code=error.code, message=error.message, details=details)
