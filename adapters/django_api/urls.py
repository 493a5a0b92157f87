"""
POS Django adapter URL routing.
"""

from django.urls import path

from adapters.django_api import views


urlpatterns = [
    path("orders", views.orders_create_view),
    path("invoices", views.invoices_create_view),
    path("webhook/payment-success", views.payment_webhook_view),
    path("tax-code/lookup", views.tax_code_lookup_view),
]
