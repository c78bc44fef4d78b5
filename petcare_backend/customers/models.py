# customers/models.py

from django.conf import settings
from django.db import models


class Customer(models.Model):
    """
    A registered customer of the pet-care business.

    One row carries the sentinel document number configured in
    settings.WALK_IN_CUSTOMER_DOCUMENT: the walk-in / generic consumer.
    """

    document_number = models.CharField(max_length=32, unique=True, db_index=True)

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True)

    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    address = models.CharField(max_length=255, blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]

    @property
    def is_walk_in(self) -> bool:
        return self.document_number == settings.WALK_IN_CUSTOMER_DOCUMENT

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return f"{self.full_name} ({self.document_number})"


class Pet(models.Model):
    """
    A pet owned by a customer.

    is_generic marks the reserved pet owned by the walk-in customer;
    service lines sold to walk-ins point at it.
    """

    customer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name="pets",
    )

    name = models.CharField(max_length=100)
    species = models.CharField(max_length=60, blank=True)
    breed = models.CharField(max_length=100, blank=True)

    is_active = models.BooleanField(default=True)
    is_generic = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["customer", "is_active"], name="pet_customer_active_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.species or 'n/a'})"
