import django.db.models.deletion
from django.db import migrations, models


def _line_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("product_ref", models.CharField(max_length=64)),
        ("product_name", models.CharField(max_length=255)),
        ("sku", models.CharField(blank=True, default="", max_length=64)),
        ("unit_price", models.DecimalField(decimal_places=2, max_digits=14)),
        ("quantity", models.PositiveIntegerField()),
        ("tax_rate", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
        ("total", models.DecimalField(decimal_places=2, max_digits=14)),
    ]


EINVOICE_STATUS_CHOICES = [(0, "Not published"), (1, "Published"), (2, "Failed")]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(db_index=True, max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("paid", "Paid")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("payment_method", models.CharField(max_length=50)),
                ("einvoice_status", models.SmallIntegerField(choices=EINVOICE_STATUS_CHOICES, default=0)),
                ("customer_name", models.CharField(blank=True, default="", max_length=255)),
                ("table_id", models.IntegerField(blank=True, null=True)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=14)),
                ("tax", models.DecimalField(decimal_places=2, max_digits=14)),
                ("total", models.DecimalField(decimal_places=2, max_digits=14)),
                ("amount_received", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("change", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "pos_orders",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=_line_fields() + [
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="sales_store.order",
                    ),
                ),
            ],
            options={
                "db_table": "pos_order_items",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("trade_number", models.CharField(db_index=True, max_length=64)),
                ("invoice_number", models.CharField(blank=True, max_length=64, null=True)),
                ("template_number", models.CharField(blank=True, default="", max_length=64)),
                ("symbol", models.CharField(blank=True, max_length=64, null=True)),
                ("customer_name", models.CharField(blank=True, default="", max_length=255)),
                ("customer_tax_code", models.CharField(blank=True, default="", max_length=50)),
                ("customer_address", models.CharField(blank=True, default="", max_length=500)),
                ("customer_phone", models.CharField(blank=True, default="", max_length=50)),
                ("customer_email", models.CharField(blank=True, default="", max_length=255)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=14)),
                ("tax", models.DecimalField(decimal_places=2, max_digits=14)),
                ("total", models.DecimalField(decimal_places=2, max_digits=14)),
                ("payment_method", models.CharField(max_length=50)),
                ("invoice_date", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[("draft", "Draft"), ("published", "Published")],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("einvoice_status", models.SmallIntegerField(choices=EINVOICE_STATUS_CHOICES, default=0)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "pos_invoices",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="InvoiceItem",
            fields=_line_fields() + [
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="sales_store.invoice",
                    ),
                ),
            ],
            options={
                "db_table": "pos_invoice_items",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="EInvoiceConnection",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("software_name", models.CharField(db_index=True, max_length=100)),
                ("login_url", models.CharField(max_length=500)),
                ("tax_code", models.CharField(max_length=50)),
                ("login_id", models.CharField(max_length=255)),
                ("password", models.CharField(max_length=255)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "pos_einvoice_connections",
                "ordering": ["created_at", "id"],
            },
        ),
    ]
