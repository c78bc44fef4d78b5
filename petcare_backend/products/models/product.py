# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from .category import Category


class Product(models.Model):
    """
    Represents a sellable product.

    STOCK MODEL (IMPORTANT):
    - `stock` is the on-hand quantity, never negative (PositiveIntegerField
      gives a DB-level CHECK >= 0)
    - `stock` is written ONLY by products.services.stock_ledger.StockLedger
    - Saving a persisted product with a changed `stock` raises

    TAX:
    - tax_applicable + tax_rate (percentage) drive the per-unit tax
      computed by the sale pricing calculator.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
    )

    sku = models.CharField(max_length=128, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)

    # Current/default selling price
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)

    tax_applicable = models.BooleanField(default=False)
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Percentage, e.g. 19.00",
    )

    stock = models.PositiveIntegerField(default=0)
    low_stock_threshold = models.PositiveIntegerField(default=5)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["sku"], name="product_sku_idx"),
            models.Index(fields=["name"], name="product_name_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        if self.unit_price is None or Decimal(self.unit_price) <= 0:
            raise ValidationError("Unit price must be greater than zero")

        if self.tax_rate is None or Decimal(self.tax_rate) < 0:
            raise ValidationError("tax_rate cannot be negative")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            persisted = (
                Product.objects.filter(pk=self.pk)
                .values_list("stock", flat=True)
                .first()
            )
            if persisted is not None and persisted != self.stock:
                raise ValidationError(
                    "Product.stock is ledger-managed; use StockLedger.adjust()"
                )
        super().save(*args, **kwargs)

    @property
    def is_low_stock(self) -> bool:
        return int(self.stock) <= int(self.low_stock_threshold)
