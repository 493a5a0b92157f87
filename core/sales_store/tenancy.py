"""
POS Sales Store — Tenant Routing
==================================
Maps an inbound request to the database alias its records live in.
How a deployment picks the alias is its own business; the checkout
flow only ever sees the resulting repository.
"""

from __future__ import annotations

from typing import Any, Protocol

DEFAULT_DB_ALIAS = "default"


class TenantResolver(Protocol):
    def resolve(self, request: Any) -> str:
        ...


class DefaultTenantResolver:
    """Single-tenant deployments: everything goes to one alias."""

    def __init__(self, alias: str = DEFAULT_DB_ALIAS):
        if not alias:
            raise ValueError("alias must be non-empty.")
        self._alias = alias

    def resolve(self, request: Any) -> str:
        return self._alias
