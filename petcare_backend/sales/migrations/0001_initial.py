"""
======================================================
PATH: sales/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Sale, SaleProductLine, SaleServiceLine, SaleStatusChange
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


STATUS_CHOICES = [
    ("Pendiente", "Pending"),
    ("Efectiva", "Effective"),
    ("Cancelada", "Cancelled"),
    ("Devuelta", "Returned"),
    ("Parcialmente Devuelta", "Partially returned"),
]


def _money(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=12, **kwargs)


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("customers", "0001_initial"),
        ("products", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Sale",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "invoice_no",
                    models.CharField(
                        blank=True,
                        help_text="System-generated invoice / receipt number",
                        max_length=64,
                        unique=True,
                    ),
                ),
                ("sale_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("subtotal_amount", _money(default=Decimal("0.00"))),
                ("tax_amount", _money(default=Decimal("0.00"))),
                ("total_amount", _money(default=Decimal("0.00"))),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("efectivo", "Cash"),
                            ("qr", "QR"),
                            ("transferencia", "Bank transfer"),
                        ],
                        default="efectivo",
                        max_length=20,
                    ),
                ),
                ("amount_tendered", _money(default=Decimal("0.00"))),
                ("change_amount", _money(default=Decimal("0.00"))),
                ("payment_reference", models.CharField(blank=True, max_length=64)),
                ("qr_code", models.CharField(blank=True, max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES, default="Efectiva", max_length=32
                    ),
                ),
                (
                    "sale_type",
                    models.CharField(
                        choices=[
                            ("Venta", "Sale"),
                            ("Devolucion", "Return"),
                            ("Cambio", "Exchange"),
                        ],
                        default="Venta",
                        max_length=16,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                (
                    "receipt_attachment",
                    models.CharField(
                        blank=True,
                        help_text="URL / storage key of an uploaded payment receipt",
                        max_length=500,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to="customers.customer",
                    ),
                ),
                (
                    "origin_sale",
                    models.ForeignKey(
                        blank=True,
                        help_text="Original sale this return/exchange compensates",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="derived_sales",
                        to="sales.sale",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        help_text="Operator who registered the sale",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sales",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-sale_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["sale_date"], name="sale_date_idx"),
                    models.Index(fields=["status"], name="sale_status_idx"),
                    models.Index(fields=["sale_type"], name="sale_type_idx"),
                    models.Index(fields=["invoice_no"], name="sale_invoice_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleProductLine",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "line_kind",
                    models.CharField(
                        choices=[
                            ("SALE", "Sold"),
                            ("RETURN", "Returned"),
                            ("EXCHANGE", "Exchanged out"),
                        ],
                        default="SALE",
                        max_length=10,
                    ),
                ),
                ("position", models.PositiveIntegerField(default=0)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", _money()),
                ("subtotal", _money()),
                ("unit_tax", _money(default=Decimal("0.00"))),
                ("total_with_tax", _money()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sale_lines",
                        to="products.product",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="product_lines",
                        to="sales.sale",
                    ),
                ),
            ],
            options={
                "ordering": ["position", "created_at"],
                "indexes": [
                    models.Index(fields=["sale", "position"], name="product_line_sale_idx"),
                    models.Index(fields=["product"], name="product_line_product_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleServiceLine",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("temp_pet_name", models.CharField(blank=True, max_length=100)),
                ("temp_pet_species", models.CharField(blank=True, max_length=60)),
                ("position", models.PositiveIntegerField(default=0)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", _money()),
                ("subtotal", _money()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "pet",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="service_lines",
                        to="customers.pet",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="service_lines",
                        to="sales.sale",
                    ),
                ),
                (
                    "service",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sale_lines",
                        to="catalog.service",
                    ),
                ),
            ],
            options={
                "ordering": ["position", "created_at"],
                "indexes": [
                    models.Index(fields=["sale", "position"], name="service_line_sale_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleStatusChange",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("from_status", models.CharField(choices=STATUS_CHOICES, max_length=32)),
                ("to_status", models.CharField(choices=STATUS_CHOICES, max_length=32)),
                ("stock_reversed", models.BooleanField(default=False)),
                ("skip_stock_return", models.BooleanField(default=False)),
                ("reason", models.TextField(blank=True)),
                ("changed_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "changed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sale_status_changes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_changes",
                        to="sales.sale",
                    ),
                ),
            ],
            options={
                "ordering": ["changed_at"],
            },
        ),
    ]
