# sales/services/sale_mutator.py

"""
SALE MUTATOR (APPLICATION SERVICE)

Partial update of an existing Venta in Pendiente / Efectiva.

Rules:
- Header fields are applied only when provided.
- status is never changed here (use sale_status_service).
- product_lines provided (even empty): stock held by the sale is put back,
  lines are deleted and reinserted (stock decremented again).
- service_lines provided: deleted and reinserted.
- Switching customer requires service_lines, since pets belong to customers.
- One transaction: a failed reinsertion also undoes the stock reversal.
"""

from __future__ import annotations

import logging

from customers.services.lookup import get_customer
from sales.models import Sale
from sales.services.commands import MutateSaleCommand, decode_mutate_sale
from sales.services.exceptions import InvalidStatusError, SaleValidationError
from sales.services.sale_lines import (
    SaleAggregate,
    apply_payment_rules,
    apply_walk_in_note,
    insert_product_lines,
    insert_service_lines,
    load_sale_aggregate,
    lock_sale,
    recalculate_totals,
    resolve_operator,
    reverse_product_stock,
)
from sales.services.unit_of_work import sale_unit_of_work

logger = logging.getLogger(__name__)

MUTABLE_STATES = {Sale.Status.PENDING, Sale.Status.EFFECTIVE}

# payload attribute -> model field, copied only when not None
_HEADER_FIELDS = (
    ("sale_date", "sale_date"),
    ("payment_method", "payment_method"),
    ("amount_tendered", "amount_tendered"),
    ("notes", "notes"),
    ("receipt_attachment", "receipt_attachment"),
    ("payment_reference", "payment_reference"),
    ("qr_code", "qr_code"),
)


@sale_unit_of_work("mutate_sale")
def _mutate(sale_id, command: MutateSaleCommand, *, user=None) -> Sale:
    sale = lock_sale(sale_id)

    if sale.sale_type != Sale.SaleType.SALE or sale.status not in MUTABLE_STATES:
        raise InvalidStatusError(
            f"Sale {sale.invoice_no} ({sale.sale_type}, {sale.status}) cannot be updated; "
            f"only {Sale.SaleType.SALE} sales in {Sale.Status.PENDING} or "
            f"{Sale.Status.EFFECTIVE} can",
            field="status",
        )

    header = command.header

    if header.customer_id is not None and header.customer_id != sale.customer_id:
        if command.service_lines is None:
            raise SaleValidationError(
                "Changing the customer requires service_lines so pets can be re-resolved",
                field="service_lines",
            )
        sale.customer = get_customer(header.customer_id)

    if header.user_id:
        sale.user = resolve_operator(header.user_id)

    for attr, field in _HEADER_FIELDS:
        value = getattr(header, attr)
        if value is not None:
            setattr(sale, field, value)

    apply_payment_rules(sale)
    apply_walk_in_note(sale)
    sale.save()

    if command.product_lines is not None:
        reverse_product_stock(sale=sale, user=user, note=f"{sale.invoice_no} update")
        sale.product_lines.all().delete()
        insert_product_lines(sale=sale, lines=command.product_lines, user=user)

    if command.service_lines is not None:
        sale.service_lines.all().delete()
        insert_service_lines(sale=sale, lines=command.service_lines)

    if not sale.product_lines.exists() and not sale.service_lines.exists():
        raise SaleValidationError(
            "A sale needs at least one product line or one service line",
            field="product_lines",
        )

    recalculate_totals(sale=sale, enforce_cash_cover=True)

    logger.info(
        "Sale updated",
        extra={
            "sale_id": str(sale.pk),
            "replaced_product_lines": command.product_lines is not None,
            "replaced_service_lines": command.service_lines is not None,
            "total": str(sale.total_amount),
        },
    )
    return sale


def mutate_sale(sale_id, payload, *, user=None) -> SaleAggregate:
    command = decode_mutate_sale(payload)
    sale = _mutate(sale_id, command, user=user)
    return load_sale_aggregate(sale.pk)
