# sales/models/status_change.py

"""
SALE STATUS CHANGE AUDIT (IMMUTABLE)

One row per status transition. Records whether stock was reversed and,
in particular, every use of the skip_stock_return escape hatch.
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .sale import Sale


class SaleStatusChange(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="status_changes",
    )

    from_status = models.CharField(max_length=32, choices=Sale.Status.choices)
    to_status = models.CharField(max_length=32, choices=Sale.Status.choices)

    stock_reversed = models.BooleanField(default=False)
    skip_stock_return = models.BooleanField(default=False)

    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sale_status_changes",
    )
    reason = models.TextField(blank=True)

    changed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["changed_at"]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("SaleStatusChange records are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("SaleStatusChange records are immutable")

    def __str__(self):
        return f"{self.sale_id}: {self.from_status} -> {self.to_status}"
