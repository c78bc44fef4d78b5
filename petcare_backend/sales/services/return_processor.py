# sales/services/return_processor.py

"""
RETURN / EXCHANGE PROCESSOR (APPLICATION SERVICE)

A return or exchange NEVER edits the original sale's lines. It creates a new
compensating Sale linked via origin_sale:

- Devolucion: only returned lines (stock comes back)
- Cambio:     returned lines + exchange lines (new products go out)

Rules:
- Origin must be an original sale in Efectiva or Parcialmente Devuelta.
- Returned products must have been sold on the origin.
- Cumulative returned quantity per product never exceeds the sold quantity.
- The origin is reclassified afterwards:
    exchange lines        -> type Cambio, status unchanged
    everything returned   -> Devuelta / Devolucion
    otherwise             -> Parcialmente Devuelta / Devolucion
- One transaction; the return notification fires after commit.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from functools import partial

from django.db import transaction

from notifications.services.dispatch import notify_return_processed
from products.models import StockMovement
from products.services.lookup import get_product
from products.services.stock_ledger import stock_ledger
from sales.models import Sale, SaleProductLine
from sales.services.commands import ProcessReturnCommand, decode_process_return
from sales.services.exceptions import InvalidStatusError, SaleValidationError
from sales.services.pricing import ZERO
from sales.services.sale_lines import (
    SaleAggregate,
    insert_product_line,
    load_sale_aggregate,
    lock_sale,
    recalculate_totals,
    record_status_change,
    returned_quantities,
    sold_quantities,
)
from sales.services.unit_of_work import sale_unit_of_work

logger = logging.getLogger(__name__)

RETURNABLE_STATES = {Sale.Status.EFFECTIVE, Sale.Status.PARTIALLY_RETURNED}

RETURN_TYPE_FULL = "Full return"
RETURN_TYPE_PARTIAL = "Partial return"
RETURN_TYPE_EXCHANGE = "Product exchange"


def _key(product_id) -> str:
    return str(product_id).strip().lower()


def _money(value) -> str:
    return f"${Decimal(value):,.2f}"


def _origin_lines_by_product(origin: Sale) -> dict:
    lines = {}
    for line in origin.product_lines.filter(line_kind=SaleProductLine.Kind.SALE):
        lines.setdefault(_key(line.product_id), line)
    return lines


def _check_return_ceilings(*, origin: Sale, command: ProcessReturnCommand) -> tuple[int, int]:
    """
    Returns (units returned including this request, units sold).
    """
    sold = {_key(pid): qty for pid, qty in sold_quantities(origin).items()}
    before = {_key(pid): qty for pid, qty in returned_quantities(origin).items()}

    for line in command.returned_lines:
        key = _key(line.product_id)
        field = f"returned_lines[{line.position}]"

        if key not in sold:
            raise SaleValidationError(
                f"Product {line.product_id} was not sold on {origin.invoice_no}",
                field=f"{field}.product_id",
            )

        already = before.get(key, 0)
        if already + line.quantity > sold[key]:
            raise SaleValidationError(
                f"Cannot return {line.quantity} of product {line.product_id}: "
                f"sold {sold[key]}, already returned {already}",
                field=f"{field}.quantity",
            )

    returned_now = sum(line.quantity for line in command.returned_lines)
    return sum(before.values()) + returned_now, sum(sold.values())


def _build_audit_note(
    *,
    origin: Sale,
    new_sale: Sale,
    command: ProcessReturnCommand,
    return_type: str,
    processed_by: str,
    returned_units: int,
    sold_units: int,
    returned_value: Decimal,
    exchange_lines: list,
) -> str:
    customer = origin.customer
    lines = [
        f"{new_sale.get_sale_type_display()} of invoice {origin.invoice_no}",
        f"Customer: {customer.full_name} ({customer.document_number})",
        f"Original sale date: {origin.sale_date:%Y-%m-%d %H:%M}",
        f"Reason: {command.reason or 'n/a'}",
        f"Return type: {return_type}",
        f"Processed by: {processed_by}",
        f"Products returned: {returned_units} of {sold_units}",
    ]

    if exchange_lines:
        exchange_value = sum((Decimal(line.total_with_tax) for line in exchange_lines), ZERO)
        difference = exchange_value - returned_value - command.customer_balance
        if difference > ZERO:
            lines.append(
                f"Difference paid by customer: {_money(command.amount_paid)} "
                f"(due {_money(difference)})"
            )
        else:
            lines.append(f"Balance in favour of customer: {_money(-difference)}")

        lines.append("Exchange products:")
        for line in exchange_lines:
            lines.append(
                f"  - {line.product.name} x {line.quantity} @ {_money(line.unit_price)}"
            )
    else:
        lines.append(
            f"Balance in favour of customer: "
            f"{_money(returned_value + command.customer_balance)}"
        )

    return "\n".join(lines)


@sale_unit_of_work("process_return")
def _process(origin_sale_id, command: ProcessReturnCommand, *, user=None) -> Sale:
    origin = lock_sale(origin_sale_id)

    if origin.is_compensating:
        raise InvalidStatusError(
            f"{origin.invoice_no} is itself a return/exchange; process against "
            "the original sale",
            field="origin_sale_id",
        )

    if origin.status not in RETURNABLE_STATES:
        raise InvalidStatusError(
            f"Sale {origin.invoice_no} is {origin.status}; only "
            f"{Sale.Status.EFFECTIVE} or {Sale.Status.PARTIALLY_RETURNED} "
            "sales accept returns",
            field="status",
        )

    returned_units, sold_units = _check_return_ceilings(origin=origin, command=command)
    origin_lines = _origin_lines_by_product(origin)

    new_sale = Sale(
        customer=origin.customer,
        user=user if getattr(user, "pk", None) else None,
        status=Sale.Status.EFFECTIVE,
        sale_type=(
            Sale.SaleType.EXCHANGE if command.is_exchange else Sale.SaleType.RETURN
        ),
        origin_sale=origin,
        payment_method=Sale.PaymentMethod.CASH,
        amount_tendered=command.amount_paid,
    )
    new_sale.save()

    returned_value = ZERO
    for line in command.returned_lines:
        original = origin_lines[_key(line.product_id)]
        created = insert_product_line(
            sale=new_sale,
            product=original.product,
            quantity=line.quantity,
            unit_price=line.unit_price or original.unit_price,
            position=line.position,
            line_kind=SaleProductLine.Kind.RETURN,
        )
        returned_value += Decimal(created.total_with_tax)
        stock_ledger.increment(
            product_id=original.product_id,
            quantity=line.quantity,
            reason=StockMovement.Reason.RETURN,
            sale=new_sale,
            user=user,
            note=f"Return of {origin.invoice_no}",
        )

    offset = len(command.returned_lines)
    exchange_lines = []
    for line in command.exchange_lines:
        product = get_product(line.product_id)
        exchange_lines.append(
            insert_product_line(
                sale=new_sale,
                product=product,
                quantity=line.quantity,
                unit_price=line.unit_price or product.unit_price,
                position=offset + line.position,
                line_kind=SaleProductLine.Kind.EXCHANGE,
            )
        )
        stock_ledger.decrement(
            product_id=product.pk,
            quantity=line.quantity,
            reason=StockMovement.Reason.EXCHANGE,
            sale=new_sale,
            user=user,
            note=f"Exchange for {origin.invoice_no}",
        )

    recalculate_totals(sale=new_sale, enforce_cash_cover=False)

    # reclassify the origin
    from_status = origin.status
    if command.is_exchange:
        origin.sale_type = Sale.SaleType.EXCHANGE
        return_type = RETURN_TYPE_EXCHANGE
    elif returned_units >= sold_units:
        origin.sale_type = Sale.SaleType.RETURN
        origin.status = Sale.Status.RETURNED
        return_type = RETURN_TYPE_FULL
    else:
        origin.sale_type = Sale.SaleType.RETURN
        origin.status = Sale.Status.PARTIALLY_RETURNED
        return_type = RETURN_TYPE_PARTIAL

    origin.save(update_fields=["sale_type", "status", "updated_at"])

    if origin.status != from_status:
        record_status_change(
            sale=origin,
            from_status=from_status,
            to_status=origin.status,
            user=user,
            reason=f"{return_type} via {new_sale.invoice_no}",
        )

    processed_by = command.processed_by or (
        user.display_name if getattr(user, "pk", None) else "system"
    )
    new_sale.notes = _build_audit_note(
        origin=origin,
        new_sale=new_sale,
        command=command,
        return_type=return_type,
        processed_by=processed_by,
        returned_units=returned_units,
        sold_units=sold_units,
        returned_value=returned_value,
        exchange_lines=exchange_lines,
    )
    new_sale.save(update_fields=["notes", "updated_at"])

    transaction.on_commit(partial(notify_return_processed, sale_id=new_sale.pk))

    logger.info(
        "Return processed",
        extra={
            "sale_id": str(new_sale.pk),
            "origin_sale_id": str(origin.pk),
            "return_type": return_type,
            "returned_units": returned_units,
            "sold_units": sold_units,
        },
    )
    return new_sale


def process_return(origin_sale_id, payload, *, user=None) -> SaleAggregate:
    command = decode_process_return(payload)
    sale = _process(origin_sale_id, command, user=user)
    return load_sale_aggregate(sale.pk)
