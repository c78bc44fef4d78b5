# notifications/models.py

import uuid

from django.conf import settings
from django.db import models


class Notification(models.Model):
    """
    One in-app notification.

    Either addressed to a single recipient or broadcast to admins
    (for_admins=True, recipient empty).
    """

    class Type(models.TextChoices):
        SALE_RECEIPT = "SALE_RECEIPT", "Sale receipt"
        SALE_PENDING = "SALE_PENDING", "Sale pending payment validation"
        SALE_APPROVED = "SALE_APPROVED", "Sale approved"
        SALE_REJECTED = "SALE_REJECTED", "Sale rejected"
        SALE_CANCELLED = "SALE_CANCELLED", "Sale cancelled"
        RETURN_PROCESSED = "RETURN_PROCESSED", "Return processed"
        LOW_STOCK = "LOW_STOCK", "Low stock"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        NORMAL = "normal", "Normal"
        HIGH = "high", "High"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    notification_type = models.CharField(max_length=32, choices=Type.choices)
    title = models.CharField(max_length=200)
    message = models.TextField()
    priority = models.CharField(
        max_length=10, choices=Priority.choices, default=Priority.NORMAL
    )

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
    )
    for_admins = models.BooleanField(default=False)

    sale = models.ForeignKey(
        "sales.Sale",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )

    email_sent = models.BooleanField(default=False)
    is_read = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["notification_type"], name="notification_type_idx"),
            models.Index(fields=["recipient", "is_read"], name="notification_inbox_idx"),
        ]

    def __str__(self):
        return f"{self.notification_type} | {self.title}"
