# products/services/stock_ledger.py

"""
STOCK LEDGER (SINGLE WRITE PATH FOR Product.stock)

Purpose:
- Increment / decrement ONE product's on-hand stock inside the caller's
  transaction.
- Write one immutable StockMovement per adjustment.

Rules:
- Must be called inside transaction.atomic(); the caller owns commit/rollback.
- The product row is locked (select_for_update) before it is read.
- Decrement never drives stock below zero:
    1. fast check against the locked read
    2. guarded UPDATE ... WHERE stock >= qty re-checks at write time
    3. PositiveIntegerField CHECK constraint as the last line
- Increment is unbounded.
- A decrement that lands at or below low_stock_threshold schedules a
  post-commit low-stock notification.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from functools import partial

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from notifications.services.dispatch import notify_low_stock
from products.models import Product, StockMovement
from sales.services.exceptions import (
    InsufficientStockError,
    NotFoundError,
    StockLedgerError,
)

logger = logging.getLogger(__name__)


class StockDirection(enum.Enum):
    DECREMENT = "decrement"
    INCREMENT = "increment"


_DIRECTION_TO_MOVEMENT = {
    StockDirection.DECREMENT: StockMovement.MovementType.OUT,
    StockDirection.INCREMENT: StockMovement.MovementType.IN,
}


@dataclass(frozen=True)
class StockAdjustment:
    product_id: object
    direction: StockDirection
    quantity: int
    stock_before: int
    stock_after: int
    movement: StockMovement


def _to_int_qty(value) -> int:
    """
    HARD RULE: stock quantities are positive integer units.
    """
    if isinstance(value, bool) or value is None:
        raise StockLedgerError("quantity must be a positive integer", field="quantity")

    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise StockLedgerError("quantity must be a positive integer", field="quantity")

    if qty != value and str(qty) != str(value).strip():
        raise StockLedgerError("quantity must be a whole number", field="quantity")

    if qty <= 0:
        raise StockLedgerError("quantity must be greater than zero", field="quantity")

    return qty


class StockLedger:
    """
    The only sanctioned way to mutate Product.stock from sale code.
    """

    def adjust(
        self,
        *,
        product_id,
        quantity,
        direction: StockDirection,
        reason: str,
        sale=None,
        user=None,
        note: str = "",
    ) -> StockAdjustment:
        if not transaction.get_connection().in_atomic_block:
            raise StockLedgerError(
                "Stock adjustments must run inside transaction.atomic()"
            )

        if not isinstance(direction, StockDirection):
            raise StockLedgerError(f"Unknown stock direction: {direction!r}")

        qty = _to_int_qty(quantity)

        try:
            product = Product.objects.select_for_update().get(pk=product_id)
        except (Product.DoesNotExist, ValidationError, ValueError, TypeError):
            raise NotFoundError(f"Product {product_id} not found", field="product_id")

        before = int(product.stock)
        now = timezone.now()

        if direction is StockDirection.DECREMENT:
            if before - qty < 0:
                raise InsufficientStockError(
                    product_id=product.pk,
                    product_name=product.name,
                    available=before,
                    requested=qty,
                )

            updated = Product.objects.filter(pk=product.pk, stock__gte=qty).update(
                stock=F("stock") - qty, updated_at=now
            )
            if updated != 1:
                current = (
                    Product.objects.filter(pk=product.pk)
                    .values_list("stock", flat=True)
                    .get()
                )
                raise InsufficientStockError(
                    product_id=product.pk,
                    product_name=product.name,
                    available=int(current),
                    requested=qty,
                )
        else:
            Product.objects.filter(pk=product.pk).update(
                stock=F("stock") + qty, updated_at=now
            )

        after = int(
            Product.objects.filter(pk=product.pk).values_list("stock", flat=True).get()
        )

        movement = StockMovement.objects.create(
            product=product,
            movement_type=_DIRECTION_TO_MOVEMENT[direction],
            reason=reason,
            quantity=qty,
            stock_before=before,
            stock_after=after,
            performed_by=user,
            sale=sale,
            note=note[:255],
        )

        logger.info(
            "Stock adjusted",
            extra={
                "product_id": str(product.pk),
                "direction": direction.value,
                "quantity": qty,
                "stock_before": before,
                "stock_after": after,
                "reason": reason,
                "sale_id": str(sale.pk) if sale is not None else None,
            },
        )

        if direction is StockDirection.DECREMENT and after <= int(
            product.low_stock_threshold
        ):
            transaction.on_commit(partial(notify_low_stock, product_id=product.pk))

        return StockAdjustment(
            product_id=product.pk,
            direction=direction,
            quantity=qty,
            stock_before=before,
            stock_after=after,
            movement=movement,
        )

    def decrement(self, *, product_id, quantity, reason, **kwargs) -> StockAdjustment:
        return self.adjust(
            product_id=product_id,
            quantity=quantity,
            direction=StockDirection.DECREMENT,
            reason=reason,
            **kwargs,
        )

    def increment(self, *, product_id, quantity, reason, **kwargs) -> StockAdjustment:
        return self.adjust(
            product_id=product_id,
            quantity=quantity,
            direction=StockDirection.INCREMENT,
            reason=reason,
            **kwargs,
        )


stock_ledger = StockLedger()
