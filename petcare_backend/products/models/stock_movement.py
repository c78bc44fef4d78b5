# products/models/stock_movement.py

"""
CANONICAL INVENTORY LEDGER

Immutable inventory ledger entry, one per StockLedger adjustment.

GUARANTEES:
- Append-only (no updates, no deletes)
- Movement direction validated against reason
- Sale-driven movements must reference a sale
- stock_before / stock_after let audits replay the product's stock
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .product import Product


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"

    class Reason(models.TextChoices):
        RECEIPT = "RECEIPT", "Stock Receipt"
        SALE = "SALE", "Sale"
        SALE_REVERSAL = "SALE_REVERSAL", "Sale Reversal"
        RETURN = "RETURN", "Customer Return"
        EXCHANGE = "EXCHANGE", "Exchange Out"
        ADJUSTMENT = "ADJUSTMENT", "Manual Adjustment"

    REASON_TO_MOVEMENT = {
        Reason.RECEIPT: MovementType.IN,
        Reason.SALE: MovementType.OUT,
        Reason.SALE_REVERSAL: MovementType.IN,
        Reason.RETURN: MovementType.IN,
        Reason.EXCHANGE: MovementType.OUT,
        Reason.ADJUSTMENT: None,
    }

    SALE_REASONS = {
        Reason.SALE,
        Reason.SALE_REVERSAL,
        Reason.RETURN,
        Reason.EXCHANGE,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="stock_movements"
    )

    movement_type = models.CharField(max_length=3, choices=MovementType.choices)
    reason = models.CharField(max_length=20, choices=Reason.choices)

    quantity = models.PositiveIntegerField()
    stock_before = models.PositiveIntegerField()
    stock_after = models.PositiveIntegerField()

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    sale = models.ForeignKey(
        "sales.Sale",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    note = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["reason"], name="movement_reason_idx"),
            models.Index(fields=["product", "created_at"], name="movement_product_idx"),
            models.Index(fields=["sale", "created_at"], name="movement_sale_idx"),
        ]

    def clean(self):
        if self.quantity <= 0:
            raise ValidationError("quantity must be greater than zero")

        expected_type = self.REASON_TO_MOVEMENT.get(self.reason)
        if expected_type and self.movement_type != expected_type:
            raise ValidationError(
                f"{self.reason} requires movement_type={expected_type}"
            )

        if self.reason in self.SALE_REASONS and not self.sale_id:
            raise ValidationError(f"{self.reason} movements must reference a sale")

        delta = self.quantity if self.movement_type == self.MovementType.IN else -self.quantity
        if self.stock_before + delta != self.stock_after:
            raise ValidationError("stock_after does not match stock_before and quantity")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "StockMovement records are immutable and cannot be deleted"
        )

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | {self.reason} | {self.quantity}"
