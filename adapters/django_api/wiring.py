"""
POS Django Adapter Wiring
=========================
Builds the process-wide integration objects from settings, once.

The webhook view and the till's checkout orchestrator must share the
same PaymentNotificationHub, or webhook confirmations never reach the
listener the orchestrator registered.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Optional

from core.config import PosConfig
from core.display import DisplaySink
from core.sales_store.connections import DbConnectionInfoProvider
from core.sales_store.repository import DjangoSalesRepository
from core.sales_store.tenancy import DefaultTenantResolver, TenantResolver
from engines.cart import Cart
from engines.checkout import CheckoutOrchestrator
from integration.audit_log import IntegrationAuditLog
from integration.inbound import PaymentNotificationHub, PaymentWebhookProcessor
from integration.outbound import JsonHttpClient
from integration.outbound.einvoice import SYSTEM_ID as EINVOICE_SYSTEM_ID
from integration.outbound.einvoice import EInvoiceIssuer
from integration.outbound.qr_gateway import SYSTEM_ID as QR_SYSTEM_ID
from integration.outbound.qr_gateway import QRGatewayClient
from integration.outbound.tax_registry import SYSTEM_ID as TAX_SYSTEM_ID
from integration.outbound.tax_registry import TaxRegistryClient

_DEPENDENCIES_LOCK = threading.Lock()
_DEPENDENCIES: "PosDependencies | None" = None


@dataclass
class PosDependencies:
    config: PosConfig
    audit_log: IntegrationAuditLog
    notifications: PaymentNotificationHub
    webhook_processor: PaymentWebhookProcessor
    tax_registry: TaxRegistryClient
    tenant_resolver: TenantResolver
    http_session: Any = None

    def database_alias(self, request: Any = None) -> str:
        return self.tenant_resolver.resolve(request)

    def sales_repository(self, request: Any = None) -> DjangoSalesRepository:
        return DjangoSalesRepository(using=self.database_alias(request))

    def _http(self, system_id: str, url: str) -> JsonHttpClient:
        return JsonHttpClient(
            system_id=system_id,
            url=url,
            timeout_seconds=self.config.http_timeout_seconds,
            audit_log=self.audit_log,
            session=self.http_session,
        )

    def build_orchestrator(
        self,
        cart: Optional[Cart] = None,
        display_sink: Optional[DisplaySink] = None,
        request: Any = None,
    ) -> CheckoutOrchestrator:
        """Storage and e-invoice credentials both come from the tenant of `request`."""
        using = self.database_alias(request)
        qr_gateway = QRGatewayClient(
            self._http(QR_SYSTEM_ID, self.config.qr_gateway_url),
            self.config.qr_merchant,
            self.notifications,
        )
        einvoice = EInvoiceIssuer(
            self._http(EINVOICE_SYSTEM_ID, self.config.einvoice_api_url),
            DbConnectionInfoProvider(using=using),
            self.tax_registry,
        )
        return CheckoutOrchestrator(
            cart=cart if cart is not None else Cart(display_sink=display_sink),
            sales_repository=DjangoSalesRepository(using=using),
            qr_gateway=qr_gateway,
            einvoice_issuer=einvoice,
            display_sink=display_sink,
            total_tolerance=self.config.total_tolerance,
            qr_payment_timeout_seconds=self.config.qr_payment_timeout_seconds,
        )


def _build(config: Optional[PosConfig] = None, http_session: Any = None) -> PosDependencies:
    config = config or PosConfig.from_settings()
    audit_log = IntegrationAuditLog()
    notifications = PaymentNotificationHub()
    tax_http = JsonHttpClient(
        system_id=TAX_SYSTEM_ID,
        url=config.tax_registry_url,
        timeout_seconds=config.http_timeout_seconds,
        audit_log=audit_log,
        session=http_session,
    )
    return PosDependencies(
        config=config,
        audit_log=audit_log,
        notifications=notifications,
        webhook_processor=PaymentWebhookProcessor(
            notifications,
            audit_log,
            secret=config.webhook_secret,
        ),
        tax_registry=TaxRegistryClient(tax_http),
        tenant_resolver=DefaultTenantResolver(),
        http_session=http_session,
    )


def build_dependencies() -> PosDependencies:
    global _DEPENDENCIES
    with _DEPENDENCIES_LOCK:
        if _DEPENDENCIES is None:
            _DEPENDENCIES = _build()
        return _DEPENDENCIES


def set_dependencies(dependencies: Optional[PosDependencies]) -> None:
    """Replace (or with None, reset) the process-wide dependencies."""
    global _DEPENDENCIES
    with _DEPENDENCIES_LOCK:
        _DEPENDENCIES = dependencies


def make_dependencies(config: Optional[PosConfig] = None, http_session: Any = None) -> PosDependencies:
    return _build(config, http_session)
