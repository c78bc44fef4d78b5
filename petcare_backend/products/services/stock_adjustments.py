# products/services/stock_adjustments.py

"""
STOCK ADJUSTMENTS SERVICE (BACK-OFFICE)

Purpose:
- Deliveries (RECEIPT) and stock-count corrections (ADJUSTMENT) made by staff.
- Always routed through StockLedger so the non-negativity rule and the
  immutable StockMovement trail apply exactly as they do for sales.

Rules:
- quantity_delta must be a non-zero integer
- RECEIPT only accepts positive deltas
- an adjustment cannot reduce stock below zero
"""

from __future__ import annotations

from django.db import transaction

from products.models import Product, StockMovement
from products.services.stock_ledger import StockAdjustment, StockDirection, stock_ledger
from sales.services.exceptions import StockLedgerError


def _to_int_delta(value) -> int:
    if value is None or value == "":
        raise StockLedgerError("quantity_delta is required", field="quantity_delta")

    if isinstance(value, bool):
        # bool is an int subclass in Python
        raise StockLedgerError("quantity_delta must be an integer", field="quantity_delta")

    try:
        delta = int(value)
    except (TypeError, ValueError):
        raise StockLedgerError("quantity_delta must be an integer", field="quantity_delta")

    if delta == 0:
        raise StockLedgerError("quantity_delta cannot be 0", field="quantity_delta")

    return delta


@transaction.atomic
def adjust_product_stock(
    *,
    product: Product,
    quantity_delta,
    user=None,
    reason: str = StockMovement.Reason.ADJUSTMENT,
    note: str = "",
) -> StockAdjustment:
    """
    quantity_delta:
      +N -> IN (delivery or upward correction)
      -N -> OUT (shrinkage, breakage, count correction)
    """
    if reason not in (StockMovement.Reason.ADJUSTMENT, StockMovement.Reason.RECEIPT):
        raise StockLedgerError(f"Reason {reason} is reserved for sale flows", field="reason")

    delta = _to_int_delta(quantity_delta)

    if reason == StockMovement.Reason.RECEIPT and delta < 0:
        raise StockLedgerError("A receipt cannot remove stock", field="quantity_delta")

    direction = StockDirection.INCREMENT if delta > 0 else StockDirection.DECREMENT

    return stock_ledger.adjust(
        product_id=product.pk,
        quantity=abs(delta),
        direction=direction,
        reason=reason,
        user=user,
        note=note,
    )
