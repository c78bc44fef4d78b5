# sales/services/sale_composer.py

"""
SALE COMPOSER (APPLICATION SERVICE)

Purpose:
- Create a sale (header + product lines + service lines) atomically.
- Decrement stock for every product line through the ledger.
- Compute totals and change server-side; client totals are only a hint.

Hard rules:
- The request is fully decoded and validated before the transaction opens.
- Missing customer falls back to the walk-in customer.
- transferencia always starts as Pendiente (payment must be validated).
- Cash must cover the COMPUTED total, not just the declared one.

Post-commit:
- sale-created notification (pending validation for admins, receipt for
  the operator and the customer's email)
"""

from __future__ import annotations

import logging
from functools import partial

from django.db import transaction
from django.utils import timezone

from customers.services.lookup import get_customer, get_walk_in_customer
from notifications.services.dispatch import notify_sale_created
from sales.models import Sale
from sales.services.commands import ComposeSaleCommand, decode_compose_sale
from sales.services.pricing import ZERO
from sales.services.sale_lines import (
    SaleAggregate,
    apply_payment_rules,
    apply_walk_in_note,
    insert_product_lines,
    insert_service_lines,
    load_sale_aggregate,
    recalculate_totals,
    resolve_operator,
)
from sales.services.unit_of_work import sale_unit_of_work

logger = logging.getLogger(__name__)


def _initial_status(command: ComposeSaleCommand) -> str:
    if command.header.payment_method == Sale.PaymentMethod.TRANSFER:
        return Sale.Status.PENDING
    return command.header.status or Sale.Status.EFFECTIVE


@sale_unit_of_work("compose_sale")
def _compose(command: ComposeSaleCommand, *, user=None) -> Sale:
    header = command.header

    if header.customer_id is not None:
        customer = get_customer(header.customer_id)
    else:
        customer = get_walk_in_customer()

    sale = Sale(
        customer=customer,
        user=resolve_operator(header.user_id, default=user),
        sale_date=header.sale_date or timezone.now(),
        payment_method=header.payment_method,
        amount_tendered=header.amount_tendered or ZERO,
        payment_reference=header.payment_reference or "",
        qr_code=header.qr_code or "",
        status=_initial_status(command),
        sale_type=Sale.SaleType.SALE,
        notes=header.notes or "",
        receipt_attachment=header.receipt_attachment or "",
    )
    apply_payment_rules(sale)
    apply_walk_in_note(sale)
    sale.save()

    insert_product_lines(sale=sale, lines=command.product_lines, user=user)
    insert_service_lines(sale=sale, lines=command.service_lines)

    recalculate_totals(sale=sale, enforce_cash_cover=True)

    transaction.on_commit(partial(notify_sale_created, sale_id=sale.pk))

    logger.info(
        "Sale composed",
        extra={
            "sale_id": str(sale.pk),
            "invoice_no": sale.invoice_no,
            "status": sale.status,
            "total": str(sale.total_amount),
            "product_lines": len(command.product_lines),
            "service_lines": len(command.service_lines),
        },
    )
    return sale


def compose_sale(payload, *, user=None) -> SaleAggregate:
    command = decode_compose_sale(payload)
    sale = _compose(command, user=user)
    return load_sale_aggregate(sale.pk)
