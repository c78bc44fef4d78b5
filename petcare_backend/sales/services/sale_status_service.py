# sales/services/sale_status_service.py

"""
SALE STATUS SERVICE

- change_sale_status: generic transition (table in sale_lifecycle)
- approve_sale / reject_sale: payment validation of a Pendiente sale
- delete_sale: remove a sale that has not been returned or exchanged

Stock:
- Transitions flagged in STOCK_REVERSING_TRANSITIONS put back every unit the
  sale still holds, in the same transaction as the status write.
- skip_stock_return=True leaves stock untouched. It is logged as a warning
  and recorded on the SaleStatusChange row.
"""

from __future__ import annotations

import logging
from functools import partial

from django.db import transaction

from notifications.services.dispatch import notify_sale_status_changed
from sales.models import Sale
from sales.services.exceptions import InvalidStatusError
from sales.services.sale_lifecycle import STOCK_HOLDING_STATES, plan_transition
from sales.services.sale_lines import (
    SaleAggregate,
    load_sale_aggregate,
    lock_sale,
    record_status_change,
    reverse_product_stock,
)
from sales.services.unit_of_work import sale_unit_of_work

logger = logging.getLogger(__name__)

UNDELETABLE_STATES = {Sale.Status.PARTIALLY_RETURNED, Sale.Status.RETURNED}


def _transition(
    *,
    sale: Sale,
    new_status,
    skip_stock_return: bool,
    user,
    reason: str,
) -> Sale:
    if sale.is_compensating:
        raise InvalidStatusError(
            f"{sale.invoice_no} is a return/exchange record; its status cannot change",
            field="status",
        )

    plan = plan_transition(sale=sale, target_status=new_status)

    if plan.from_status == Sale.Status.PARTIALLY_RETURNED:
        raise InvalidStatusError(
            f"{sale.invoice_no} can only become {plan.to_status} by returning "
            "the remaining products",
            field="status",
        )

    stock_reversed = False
    if plan.reverses_stock:
        if skip_stock_return:
            logger.warning(
                "Status change without stock reversal",
                extra={
                    "sale_id": str(sale.pk),
                    "from_status": plan.from_status,
                    "to_status": plan.to_status,
                    "user_id": str(getattr(user, "pk", "") or ""),
                },
            )
        else:
            reverse_product_stock(
                sale=sale,
                user=user,
                note=f"{sale.invoice_no} {plan.from_status} -> {plan.to_status}",
            )
            stock_reversed = True

    sale.status = plan.to_status
    sale.save(update_fields=["status", "updated_at"])

    record_status_change(
        sale=sale,
        from_status=plan.from_status,
        to_status=plan.to_status,
        user=user,
        stock_reversed=stock_reversed,
        skip_stock_return=bool(skip_stock_return and plan.reverses_stock),
        reason=reason,
    )

    transaction.on_commit(
        partial(
            notify_sale_status_changed,
            sale_id=sale.pk,
            from_status=plan.from_status,
            to_status=plan.to_status,
            reason=reason,
        )
    )

    logger.info(
        "Sale status changed",
        extra={
            "sale_id": str(sale.pk),
            "from_status": plan.from_status,
            "to_status": plan.to_status,
            "stock_reversed": stock_reversed,
        },
    )
    return sale


@sale_unit_of_work("change_sale_status")
def _change_status(*, sale_id, new_status, skip_stock_return, user, reason) -> Sale:
    sale = lock_sale(sale_id)
    return _transition(
        sale=sale,
        new_status=new_status,
        skip_stock_return=skip_stock_return,
        user=user,
        reason=reason,
    )


def change_sale_status(
    *,
    sale_id,
    new_status,
    skip_stock_return: bool = False,
    user=None,
    reason: str = "",
) -> SaleAggregate:
    sale = _change_status(
        sale_id=sale_id,
        new_status=new_status,
        skip_stock_return=skip_stock_return,
        user=user,
        reason=reason,
    )
    return load_sale_aggregate(sale.pk)


@sale_unit_of_work("review_pending_sale")
def _review_pending(*, sale_id, target_status, user, reason) -> Sale:
    sale = lock_sale(sale_id)

    if sale.status != Sale.Status.PENDING:
        raise InvalidStatusError(
            f"Sale {sale.invoice_no} is {sale.status}; only {Sale.Status.PENDING} "
            "sales can be approved or rejected",
            field="status",
        )

    return _transition(
        sale=sale,
        new_status=target_status,
        skip_stock_return=False,
        user=user,
        reason=reason,
    )


def approve_sale(*, sale_id, user=None, reason: str = "") -> SaleAggregate:
    sale = _review_pending(
        sale_id=sale_id,
        target_status=Sale.Status.EFFECTIVE,
        user=user,
        reason=reason or "Payment validated",
    )
    return load_sale_aggregate(sale.pk)


def reject_sale(*, sale_id, user=None, reason: str = "") -> SaleAggregate:
    sale = _review_pending(
        sale_id=sale_id,
        target_status=Sale.Status.CANCELLED,
        user=user,
        reason=reason or "Payment rejected",
    )
    return load_sale_aggregate(sale.pk)


@sale_unit_of_work("delete_sale")
def delete_sale(*, sale_id, user=None) -> None:
    sale = lock_sale(sale_id)

    if sale.is_compensating:
        raise InvalidStatusError(
            f"{sale.invoice_no} is a return/exchange record and cannot be deleted",
            field="status",
        )

    if sale.status in UNDELETABLE_STATES or sale.derived_sales.exists():
        raise InvalidStatusError(
            f"Sale {sale.invoice_no} has returns or exchanges and cannot be deleted",
            field="status",
        )

    if sale.status in STOCK_HOLDING_STATES:
        reverse_product_stock(sale=sale, user=user, note=f"{sale.invoice_no} deleted")

    invoice_no = sale.invoice_no
    sale_pk = sale.pk
    sale.delete()

    logger.info(
        "Sale deleted",
        extra={
            "sale_id": str(sale_pk),
            "invoice_no": invoice_no,
            "user_id": str(getattr(user, "pk", "") or ""),
        },
    )
