"""
POS Sales Store - App Configuration
===================================
Orders, invoices and e-invoice connection credentials.
"""

from django.apps import AppConfig


class SalesStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.sales_store"
    label = "sales_store"
    verbose_name = "POS Sales Store"
