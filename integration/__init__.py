"""
POS Integration Layer — Public API
======================================
Every conversation with a system outside the till.

Outbound: QR payment gateway, tax registry, e-invoice service
Inbound:  payment-success webhook → notification hub → checkout

All calls are audit-logged. Failures surface as IntegrationError
subclasses; callers decide how to show them.
"""

from integration.adapters import (
    ConnectionInfoMissingError,
    Direction,
    GatewayRejectedError,
    GatewayUnavailableError,
    IntegrationError,
    NetworkError,
    ValidationError,
    verify_hmac_signature,
)
from integration.audit_log import IntegrationAuditEntry, IntegrationAuditLog
from integration.inbound import (
    InboundResult,
    ListenerRegistration,
    PaymentNotification,
    PaymentNotificationHub,
    PaymentWebhookAdapter,
    PaymentWebhookProcessor,
)
from integration.outbound import HttpResult, JsonHttpClient
from integration.outbound.einvoice import EInvoiceFields, EInvoiceIssuer, PublishedInvoice
from integration.outbound.qr_gateway import QRGatewayClient, QRPaymentRequest
from integration.outbound.tax_registry import TaxCodeLookupResult, TaxRegistryClient

__all__ = [
    # Errors
    "IntegrationError",
    "ValidationError",
    "ConnectionInfoMissingError",
    "GatewayRejectedError",
    "NetworkError",
    "GatewayUnavailableError",
    # Adapters
    "Direction",
    "verify_hmac_signature",
    # Audit
    "IntegrationAuditEntry",
    "IntegrationAuditLog",
    # Inbound
    "InboundResult",
    "ListenerRegistration",
    "PaymentNotification",
    "PaymentNotificationHub",
    "PaymentWebhookAdapter",
    "PaymentWebhookProcessor",
    # Outbound
    "HttpResult",
    "JsonHttpClient",
    "EInvoiceFields",
    "EInvoiceIssuer",
    "PublishedInvoice",
    "QRGatewayClient",
    "QRPaymentRequest",
    "TaxCodeLookupResult",
    "TaxRegistryClient",
]
