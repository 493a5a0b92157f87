"""
POS – Django Settings
======================
Django is the framework container: ORM persistence for orders and
invoices, the HTTP adapter, and logging configuration.
Checkout logic lives in engines/ and never imports these settings directly;
it receives core.config.PosConfig instead.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("POS_SECRET_KEY", "pos-dev-key-replace-before-deployment")

DEBUG = os.environ.get("POS_DEBUG", "1") == "1"

ALLOWED_HOSTS = [
    host.strip()
    for host in os.environ.get("POS_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")
    if host.strip()
]

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "core.sales_store",
]

# ── Middleware ────────────────────────────────────────────────
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

# ── URL & WSGI ────────────────────────────────────────────────
ROOT_URLCONF = "config.urls"

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Tenant databases are added as extra aliases
# and selected per request by core.sales_store.tenancy.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("POS_DATABASE_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Logging ───────────────────────────────────────────────────
POS_LOG_LEVEL = os.environ.get("POS_LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "pos": {
            "handlers": ["console"],
            "level": POS_LOG_LEVEL,
            "propagate": False,
        },
    },
}

# ── QR Payment Gateway ────────────────────────────────────────
POS_QR_GATEWAY_URL = os.environ.get("POS_QR_GATEWAY_URL", "http://localhost:9001/api/CreateQRPos")
POS_QR_BANK_CODE = os.environ.get("POS_QR_BANK_CODE", "")
POS_QR_CLIENT_ID = os.environ.get("POS_QR_CLIENT_ID", "")
POS_QR_POS_UNIQUE_ID = os.environ.get("POS_QR_POS_UNIQUE_ID", "")
POS_QR_ACCOUNT_NO = os.environ.get("POS_QR_ACCOUNT_NO", "")
POS_QR_FRANCHISEE_NAME = os.environ.get("POS_QR_FRANCHISEE_NAME", "")
POS_QR_COMPANY_NAME = os.environ.get("POS_QR_COMPANY_NAME", "")
# Seconds a checkout waits in AwaitingQR before auto-cancelling; 0 disables.
POS_QR_PAYMENT_TIMEOUT_SECONDS = float(os.environ.get("POS_QR_PAYMENT_TIMEOUT_SECONDS", "300"))
# Shared secret for the payment-success webhook signature; empty disables the check.
POS_WEBHOOK_SECRET = os.environ.get("POS_WEBHOOK_SECRET", "")

# ── Tax Registry & E-Invoice ──────────────────────────────────
POS_TAX_REGISTRY_URL = os.environ.get("POS_TAX_REGISTRY_URL", "http://localhost:9002/api/tax-code/lookup")
POS_EINVOICE_API_URL = os.environ.get("POS_EINVOICE_API_URL", "http://localhost:9003/api/invoice/publish")

# ── Checkout ──────────────────────────────────────────────────
POS_HTTP_TIMEOUT_SECONDS = float(os.environ.get("POS_HTTP_TIMEOUT_SECONDS", "10"))
POS_TOTAL_TOLERANCE = os.environ.get("POS_TOTAL_TOLERANCE", "1")
