"""
POS Sales Store - Persistent Orders and Invoices
================================================
Rows written by checkout. Created once, never updated by the checkout flow.
"""

from __future__ import annotations

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"


class InvoiceStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PUBLISHED = "published", "Published"


class EInvoiceStatus(models.IntegerChoices):
    NOT_PUBLISHED = 0, "Not published"
    PUBLISHED = 1, "Published"
    FAILED = 2, "Failed"


class Order(models.Model):
    order_number = models.CharField(max_length=64, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    payment_method = models.CharField(max_length=50)
    einvoice_status = models.SmallIntegerField(
        choices=EInvoiceStatus.choices,
        default=EInvoiceStatus.NOT_PUBLISHED,
    )
    customer_name = models.CharField(max_length=255, blank=True, default="")
    table_id = models.IntegerField(null=True, blank=True)
    subtotal = models.DecimalField(max_digits=14, decimal_places=2)
    tax = models.DecimalField(max_digits=14, decimal_places=2)
    total = models.DecimalField(max_digits=14, decimal_places=2)
    amount_received = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    change = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "pos_orders"
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product_ref = models.CharField(max_length=64)
    product_name = models.CharField(max_length=255)
    sku = models.CharField(max_length=64, blank=True, default="")
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    quantity = models.PositiveIntegerField()
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        db_table = "pos_order_items"
        ordering = ["id"]


class Invoice(models.Model):
    trade_number = models.CharField(max_length=64, db_index=True)
    invoice_number = models.CharField(max_length=64, null=True, blank=True)
    template_number = models.CharField(max_length=64, blank=True, default="")
    symbol = models.CharField(max_length=64, null=True, blank=True)
    customer_name = models.CharField(max_length=255, blank=True, default="")
    customer_tax_code = models.CharField(max_length=50, blank=True, default="")
    customer_address = models.CharField(max_length=500, blank=True, default="")
    customer_phone = models.CharField(max_length=50, blank=True, default="")
    customer_email = models.CharField(max_length=255, blank=True, default="")
    subtotal = models.DecimalField(max_digits=14, decimal_places=2)
    tax = models.DecimalField(max_digits=14, decimal_places=2)
    total = models.DecimalField(max_digits=14, decimal_places=2)
    payment_method = models.CharField(max_length=50)
    invoice_date = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=InvoiceStatus.choices,
        default=InvoiceStatus.DRAFT,
    )
    einvoice_status = models.SmallIntegerField(
        choices=EInvoiceStatus.choices,
        default=EInvoiceStatus.NOT_PUBLISHED,
    )
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "pos_invoices"
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.trade_number} ({self.status})"


class InvoiceItem(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")
    product_ref = models.CharField(max_length=64)
    product_name = models.CharField(max_length=255)
    sku = models.CharField(max_length=64, blank=True, default="")
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    quantity = models.PositiveIntegerField()
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        db_table = "pos_invoice_items"
        ordering = ["id"]


class EInvoiceConnection(models.Model):
    software_name = models.CharField(max_length=100, db_index=True)
    login_url = models.CharField(max_length=500)
    tax_code = models.CharField(max_length=50)
    login_id = models.CharField(max_length=255)
    password = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "pos_einvoice_connections"
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.software_name} ({'active' if self.is_active else 'inactive'})"
