# sales/models/sale_line.py

"""
SALE LINES (IMMUTABLE SNAPSHOTS)

SaleProductLine / SaleServiceLine are created with their sale header and
never edited afterwards. Updating a sale deletes its lines and inserts new
ones (wholesale replacement).
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from .sale import Sale


class SaleProductLine(models.Model):
    """
    INVARIANTS:
    - subtotal == unit_price * quantity
    - total_with_tax == subtotal + unit_tax * quantity
    """

    class Kind(models.TextChoices):
        SALE = "SALE", "Sold"
        RETURN = "RETURN", "Returned"
        EXCHANGE = "EXCHANGE", "Exchanged out"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="product_lines",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="sale_lines",
    )

    line_kind = models.CharField(max_length=10, choices=Kind.choices, default=Kind.SALE)
    position = models.PositiveIntegerField(default=0)

    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    unit_tax = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    total_with_tax = models.DecimalField(max_digits=12, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["position", "created_at"]
        indexes = [
            models.Index(fields=["sale", "position"], name="product_line_sale_idx"),
            models.Index(fields=["product"], name="product_line_product_idx"),
        ]

    @property
    def tax_total(self) -> Decimal:
        return Decimal(self.unit_tax) * int(self.quantity)

    def clean(self):
        if int(self.quantity or 0) <= 0:
            raise ValidationError("quantity must be greater than zero")

        if Decimal(self.unit_price) * int(self.quantity) != Decimal(self.subtotal):
            raise ValidationError("subtotal must equal unit_price * quantity")

        if Decimal(self.subtotal) + self.tax_total != Decimal(self.total_with_tax):
            raise ValidationError("total_with_tax must equal subtotal + unit_tax * quantity")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Sale lines are immutable; replace them instead")

        self.clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.product} x {self.quantity}"


class SaleServiceLine(models.Model):
    """
    INVARIANTS:
    - subtotal == unit_price * quantity (services are never taxed)
    - pet is always set; the temporary descriptor (temp_pet_name /
      temp_pet_species) is only allowed on the reserved generic pet
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="service_lines",
    )
    service = models.ForeignKey(
        "catalog.Service",
        on_delete=models.PROTECT,
        related_name="sale_lines",
    )
    pet = models.ForeignKey(
        "customers.Pet",
        on_delete=models.PROTECT,
        related_name="service_lines",
    )

    temp_pet_name = models.CharField(max_length=100, blank=True)
    temp_pet_species = models.CharField(max_length=60, blank=True)

    position = models.PositiveIntegerField(default=0)

    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["position", "created_at"]
        indexes = [
            models.Index(fields=["sale", "position"], name="service_line_sale_idx"),
        ]

    @property
    def has_temporary_pet(self) -> bool:
        return bool(self.temp_pet_name or self.temp_pet_species)

    def clean(self):
        if int(self.quantity or 0) <= 0:
            raise ValidationError("quantity must be greater than zero")

        if Decimal(self.unit_price) * int(self.quantity) != Decimal(self.subtotal):
            raise ValidationError("subtotal must equal unit_price * quantity")

        if self.has_temporary_pet and not self.pet.is_generic:
            raise ValidationError(
                "A temporary pet descriptor is only allowed for walk-in service lines"
            )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Sale lines are immutable; replace them instead")

        self.clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.service} for {self.pet}"
