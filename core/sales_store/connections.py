"""
POS Sales Store — E-Invoice Connection Info
=============================================
Resolves the active credentials for an e-invoice software provider.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Protocol

from core.sales_store.records import ConnectionInfo


class ConnectionInfoProvider(Protocol):
    def get_active_connection(self, software_name: str) -> Optional[ConnectionInfo]:
        ...


class DbConnectionInfoProvider:
    """Most recently created active row wins when several match."""

    def __init__(self, using: str = "default"):
        self._using = using

    def get_active_connection(self, software_name: str) -> Optional[ConnectionInfo]:
        if not isinstance(software_name, str) or not software_name.strip():
            return None

        from core.sales_store.models import EInvoiceConnection

        row = (
            EInvoiceConnection.objects.using(self._using)
            .filter(software_name=software_name.strip(), is_active=True)
            .order_by("-created_at", "-id")
            .first()
        )
        if row is None:
            return None
        return ConnectionInfo(
            software_name=row.software_name,
            login_url=row.login_url,
            tax_code=row.tax_code,
            login_id=row.login_id,
            password=row.password,
            is_active=row.is_active,
        )


class InMemoryConnectionInfoProvider:
    def __init__(self, connections: Iterable[ConnectionInfo] = ()):
        self._connections: Dict[str, ConnectionInfo] = {}
        for connection in connections:
            self.add(connection)

    def add(self, connection: ConnectionInfo) -> None:
        self._connections[connection.software_name] = connection

    def get_active_connection(self, software_name: str) -> Optional[ConnectionInfo]:
        connection = self._connections.get(software_name)
        if connection is None or not connection.is_active:
            return None
        return connection
