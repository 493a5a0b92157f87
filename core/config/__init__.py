"""
POS Core Config — Checkout & Integration Settings
===================================================
Settings come from Django settings (which read the environment).
Engines and clients receive a PosConfig explicitly; nothing inside
engine logic reads django.conf.settings directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional


@dataclass(frozen=True)
class QRMerchantRefs:
    """Merchant identifiers sent with every create-QR request."""

    bank_code: str
    client_id: str
    pos_unique_id: str
    account_no: str
    franchisee_name: str
    company_name: str


@dataclass(frozen=True)
class PosConfig:
    """Resolved POS configuration."""

    qr_gateway_url: str
    qr_merchant: QRMerchantRefs
    tax_registry_url: str
    einvoice_api_url: str
    http_timeout_seconds: float = 10.0
    qr_payment_timeout_seconds: float = 300.0
    total_tolerance: Decimal = Decimal("1")
    webhook_secret: str = ""

    def __post_init__(self):
        if self.http_timeout_seconds <= 0:
            raise ValueError("http_timeout_seconds must be > 0.")
        if self.qr_payment_timeout_seconds < 0:
            raise ValueError("qr_payment_timeout_seconds must be >= 0.")
        if self.total_tolerance < 0:
            raise ValueError("total_tolerance must be >= 0.")

    @classmethod
    def from_settings(cls, settings: Optional[Any] = None) -> "PosConfig":
        if settings is None:
            from django.conf import settings as django_settings
            settings = django_settings

        return cls(
            qr_gateway_url=settings.POS_QR_GATEWAY_URL,
            qr_merchant=QRMerchantRefs(
                bank_code=settings.POS_QR_BANK_CODE,
                client_id=settings.POS_QR_CLIENT_ID,
                pos_unique_id=settings.POS_QR_POS_UNIQUE_ID,
                account_no=settings.POS_QR_ACCOUNT_NO,
                franchisee_name=settings.POS_QR_FRANCHISEE_NAME,
                company_name=settings.POS_QR_COMPANY_NAME,
            ),
            tax_registry_url=settings.POS_TAX_REGISTRY_URL,
            einvoice_api_url=settings.POS_EINVOICE_API_URL,
            http_timeout_seconds=float(settings.POS_HTTP_TIMEOUT_SECONDS),
            qr_payment_timeout_seconds=float(settings.POS_QR_PAYMENT_TIMEOUT_SECONDS),
            total_tolerance=Decimal(str(settings.POS_TOTAL_TOLERANCE)),
            webhook_secret=settings.POS_WEBHOOK_SECRET,
        )


__all__ = [
    "PosConfig",
    "QRMerchantRefs",
]
