"""
POS Integration — Audit Log
===============================
Append-only trail of every call to and from an external system
(QR gateway, tax registry, e-invoice service, payment webhook).
No updates, no deletes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Dict, List, Optional

from integration.adapters import Direction

STATUS_SUCCESS = "SUCCESS"
STATUS_FAILED = "FAILED"


# ══════════════════════════════════════════════════════════════
# AUDIT ENTRY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class IntegrationAuditEntry:
    """Immutable record of one integration interaction."""

    audit_id: uuid.UUID
    tenant_id: str
    external_system_id: str
    direction: Direction
    operation: str
    payload_hash: str
    status: str  # SUCCESS | FAILED
    occurred_at: datetime
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    correlation_id: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "audit_id": str(self.audit_id),
            "tenant_id": self.tenant_id,
            "external_system_id": self.external_system_id,
            "direction": self.direction.value,
            "operation": self.operation,
            "payload_hash": self.payload_hash,
            "status": self.status,
            "occurred_at": self.occurred_at.isoformat(),
            "error_code": self.error_code,
            "error_message": self.error_message,
            "correlation_id": self.correlation_id,
        }


# ══════════════════════════════════════════════════════════════
# AUDIT LOG (append-only store)
# ══════════════════════════════════════════════════════════════

class IntegrationAuditLog:
    """
    Append-only audit log for integration calls.

    In-memory implementation; thread-safe because the payment webhook
    records from request threads while checkout records from the UI thread.
    """

    def __init__(self) -> None:
        self._entries: List[IntegrationAuditEntry] = []
        self._lock = Lock()

    def append(self, entry: IntegrationAuditEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def record_success(
        self,
        *,
        tenant_id: str,
        external_system_id: str,
        direction: Direction,
        operation: str,
        payload_hash: str,
        occurred_at: datetime,
        correlation_id: Optional[str] = None,
    ) -> IntegrationAuditEntry:
        entry = IntegrationAuditEntry(
            audit_id=uuid.uuid4(),
            tenant_id=tenant_id,
            external_system_id=external_system_id,
            direction=direction,
            operation=operation,
            payload_hash=payload_hash,
            status=STATUS_SUCCESS,
            occurred_at=occurred_at,
            correlation_id=correlation_id,
        )
        self.append(entry)
        return entry

    def record_failure(
        self,
        *,
        tenant_id: str,
        external_system_id: str,
        direction: Direction,
        operation: str,
        payload_hash: str,
        occurred_at: datetime,
        error_code: str,
        error_message: str,
        correlation_id: Optional[str] = None,
    ) -> IntegrationAuditEntry:
        entry = IntegrationAuditEntry(
            audit_id=uuid.uuid4(),
            tenant_id=tenant_id,
            external_system_id=external_system_id,
            direction=direction,
            operation=operation,
            payload_hash=payload_hash,
            status=STATUS_FAILED,
            occurred_at=occurred_at,
            error_code=error_code,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.append(entry)
        return entry

    def query_by_tenant(self, tenant_id: str) -> List[IntegrationAuditEntry]:
        with self._lock:
            return [e for e in self._entries if e.tenant_id == tenant_id]

    def query_by_system(self, tenant_id: str, system_id: str) -> List[IntegrationAuditEntry]:
        with self._lock:
            return [
                e for e in self._entries
                if e.tenant_id == tenant_id and e.external_system_id == system_id
            ]

    def query_failures(self, tenant_id: str) -> List[IntegrationAuditEntry]:
        with self._lock:
            return [
                e for e in self._entries
                if e.tenant_id == tenant_id and e.status == STATUS_FAILED
            ]

    @property
    def entries(self) -> List[IntegrationAuditEntry]:
        """Read-only copy of all entries."""
        with self._lock:
            return list(self._entries)
