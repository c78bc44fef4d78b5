# sales/models/sale.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Sale(models.Model):
    """
    Sale header: one POS transaction (or one compensating return/exchange).

    GUARANTEES:
    - total_amount == subtotal_amount + tax_amount on every save
    - status only moves along sales.services.sale_lifecycle.ALLOWED_TRANSITIONS
    - Lines are created with the header in one transaction and replaced
      wholesale on update (never edited in place)
    - Returns/exchanges are NEW Sale rows linked via origin_sale
    """

    class Status(models.TextChoices):
        PENDING = "Pendiente", "Pending"
        EFFECTIVE = "Efectiva", "Effective"
        CANCELLED = "Cancelada", "Cancelled"
        RETURNED = "Devuelta", "Returned"
        PARTIALLY_RETURNED = "Parcialmente Devuelta", "Partially returned"

    class SaleType(models.TextChoices):
        SALE = "Venta", "Sale"
        RETURN = "Devolucion", "Return"
        EXCHANGE = "Cambio", "Exchange"

    class PaymentMethod(models.TextChoices):
        CASH = "efectivo", "Cash"
        QR = "qr", "QR"
        TRANSFER = "transferencia", "Bank transfer"

    INVOICE_PREFIX = {
        SaleType.SALE: "VEN",
        SaleType.RETURN: "DEV",
        SaleType.EXCHANGE: "CAM",
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice_no = models.CharField(
        max_length=64,
        unique=True,
        blank=True,
        help_text="System-generated invoice / receipt number",
    )

    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="sales",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
        help_text="Operator who registered the sale",
    )

    sale_date = models.DateTimeField(default=timezone.now)

    subtotal_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    tax_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
    )
    amount_tendered = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    change_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    payment_reference = models.CharField(max_length=64, blank=True)
    qr_code = models.CharField(max_length=255, blank=True)

    status = models.CharField(
        max_length=32,
        choices=Status.choices,
        default=Status.EFFECTIVE,
    )
    sale_type = models.CharField(
        max_length=16,
        choices=SaleType.choices,
        default=SaleType.SALE,
    )

    origin_sale = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="derived_sales",
        help_text="Original sale this return/exchange compensates",
    )

    notes = models.TextField(blank=True)
    receipt_attachment = models.CharField(
        max_length=500,
        blank=True,
        help_text="URL / storage key of an uploaded payment receipt",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-sale_date", "-created_at"]
        indexes = [
            models.Index(fields=["sale_date"], name="sale_date_idx"),
            models.Index(fields=["status"], name="sale_status_idx"),
            models.Index(fields=["sale_type"], name="sale_type_idx"),
            models.Index(fields=["invoice_no"], name="sale_invoice_idx"),
        ]

    @property
    def is_compensating(self) -> bool:
        return self.origin_sale_id is not None

    def clean(self):
        if (
            Decimal(self.subtotal_amount) + Decimal(self.tax_amount)
            != Decimal(self.total_amount)
        ):
            raise ValidationError("total_amount must equal subtotal_amount + tax_amount")

        if Decimal(self.change_amount) < 0:
            raise ValidationError("change_amount cannot be negative")

    def _validate_status_move(self):
        previous = (
            Sale.objects.filter(pk=self.pk).values_list("status", flat=True).first()
        )
        if previous is None or previous == self.status:
            return

        # Local import: the lifecycle rules import this model.
        from sales.services.sale_lifecycle import can_transition

        if not can_transition(from_status=previous, to_status=self.status):
            raise ValidationError(
                f"Sale status cannot move from '{previous}' to '{self.status}'"
            )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            self._validate_status_move()

        if not self.invoice_no:
            prefix = self.INVOICE_PREFIX.get(self.sale_type, "VEN")
            stamp = timezone.now().strftime("%Y%m%d")
            self.invoice_no = f"{prefix}{stamp}-{uuid.uuid4().hex[:8].upper()}"

        self.clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.invoice_no} | {self.status} | {self.total_amount}"
