# catalog/models.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class Service(models.Model):
    """
    A billable pet-care service (grooming, bath, consultation...).

    Services carry no stock and are never taxed.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=150, db_index=True)
    description = models.TextField(blank=True)

    price = models.DecimalField(max_digits=12, decimal_places=2)
    duration_minutes = models.PositiveIntegerField(default=60)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def clean(self):
        if self.price is None or Decimal(self.price) <= 0:
            raise ValidationError("Service price must be greater than zero")

    def __str__(self):
        return self.name
