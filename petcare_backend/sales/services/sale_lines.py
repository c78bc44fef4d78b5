# sales/services/sale_lines.py

"""
SALE LINE PERSISTENCE HELPERS (SHARED BY COMPOSER / MUTATOR / RETURNS)

All functions assume they run inside the sale unit of work.

- insert_product_lines: price, insert, then decrement stock via the ledger
- insert_service_lines: price, resolve pet, insert (no stock)
- reverse_product_stock: put back what a sale still holds out of inventory
- recalculate_totals: header totals + change from the persisted lines
"""

from __future__ import annotations

import logging
import secrets
import time
from collections import defaultdict
from dataclasses import dataclass

from django.core.exceptions import ValidationError
from django.db.models import Sum

from catalog.services.lookup import get_service
from products.models import Product, StockMovement
from products.services.lookup import get_product
from products.services.stock_ledger import stock_ledger
from sales.models import Sale, SaleProductLine, SaleServiceLine, SaleStatusChange
from sales.services.exceptions import NotFoundError, SaleValidationError
from sales.services.pet_resolution import resolve_pet
from sales.services.pricing import (
    MAX_AMOUNT,
    ZERO,
    calculate_change,
    price_product_line,
    price_service_line,
    sum_sale_totals,
)
from users.models import User

logger = logging.getLogger(__name__)

WALK_IN_NOTE = "Venta presencial"


@dataclass(frozen=True)
class SaleAggregate:
    """
    A sale header with its lines and status history, as read after commit.
    """

    sale: Sale
    product_lines: tuple
    service_lines: tuple
    status_changes: tuple

    @property
    def subtotal(self):
        return self.sale.subtotal_amount

    @property
    def tax_total(self):
        return self.sale.tax_amount

    @property
    def total(self):
        return self.sale.total_amount


def load_sale_aggregate(sale_id) -> SaleAggregate:
    try:
        sale = Sale.objects.select_related("customer", "user", "origin_sale").get(
            pk=sale_id
        )
    except (Sale.DoesNotExist, ValidationError, ValueError, TypeError):
        raise NotFoundError(f"Sale {sale_id} not found", field="sale_id")

    return SaleAggregate(
        sale=sale,
        product_lines=tuple(sale.product_lines.select_related("product")),
        service_lines=tuple(sale.service_lines.select_related("service", "pet")),
        status_changes=tuple(sale.status_changes.all()),
    )


def lock_sale(sale_id) -> Sale:
    try:
        return (
            Sale.objects.select_for_update()
            .select_related("customer")
            .get(pk=sale_id)
        )
    except (Sale.DoesNotExist, ValidationError, ValueError, TypeError):
        raise NotFoundError(f"Sale {sale_id} not found", field="sale_id")


def resolve_operator(user_id, *, default=None):
    if not user_id:
        return default
    try:
        return User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValidationError, ValueError, TypeError):
        raise NotFoundError(f"User {user_id} not found", field="user_id")


# ============================================================
# HEADER RULES
# ============================================================


def apply_payment_rules(sale: Sale) -> None:
    """
    transferencia -> generated REF-... reference when none was given
    efectivo      -> reference and QR cleared
    qr            -> generated QR-... code once the sale is not pending
    """
    stamp = int(time.time() * 1000)

    if sale.payment_method == Sale.PaymentMethod.TRANSFER:
        if not sale.payment_reference:
            sale.payment_reference = f"REF-{stamp}-{secrets.token_hex(3).upper()}"
    elif sale.payment_method == Sale.PaymentMethod.CASH:
        sale.payment_reference = ""
        sale.qr_code = ""
    elif sale.payment_method == Sale.PaymentMethod.QR:
        if sale.status != Sale.Status.PENDING and not sale.qr_code:
            sale.qr_code = f"QR-{stamp}"


def apply_walk_in_note(sale: Sale) -> None:
    if sale.customer.is_walk_in and not (sale.notes or "").strip():
        sale.notes = WALK_IN_NOTE


# ============================================================
# LINES
# ============================================================


def insert_product_line(
    *,
    sale: Sale,
    product: Product,
    quantity: int,
    unit_price,
    position: int,
    line_kind: str = SaleProductLine.Kind.SALE,
) -> SaleProductLine:
    price = price_product_line(
        unit_price=unit_price,
        quantity=quantity,
        tax_applicable=product.tax_applicable,
        tax_rate=product.tax_rate,
    )
    if price.total_with_tax > MAX_AMOUNT:
        raise SaleValidationError(
            f"Line total for {product.name} exceeds {MAX_AMOUNT}",
            field=f"product_lines[{position}].quantity",
        )
    return SaleProductLine.objects.create(
        sale=sale,
        product=product,
        line_kind=line_kind,
        position=position,
        quantity=price.quantity,
        unit_price=price.unit_price,
        subtotal=price.subtotal,
        unit_tax=price.unit_tax,
        total_with_tax=price.total_with_tax,
    )


def insert_product_lines(*, sale: Sale, lines, user=None) -> list[SaleProductLine]:
    """
    Lines are processed in caller order; the first shortfall aborts the
    whole unit of work.
    """
    created = []

    for line in lines:
        product = get_product(line.product_id)
        created.append(
            insert_product_line(
                sale=sale,
                product=product,
                quantity=line.quantity,
                unit_price=line.unit_price,
                position=line.position,
            )
        )
        stock_ledger.decrement(
            product_id=product.pk,
            quantity=line.quantity,
            reason=StockMovement.Reason.SALE,
            sale=sale,
            user=user,
            note=sale.invoice_no,
        )

    return created


def insert_service_lines(*, sale: Sale, lines) -> list[SaleServiceLine]:
    created = []

    for line in lines:
        service = get_service(line.service_id)
        resolved = resolve_pet(
            customer=sale.customer,
            pet_id=line.pet_id,
            temp_pet_name=line.temp_pet_name,
            temp_pet_species=line.temp_pet_species,
        )
        price = price_service_line(unit_price=line.unit_price, quantity=line.quantity)

        created.append(
            SaleServiceLine.objects.create(
                sale=sale,
                service=service,
                pet=resolved.pet,
                temp_pet_name=resolved.temp_pet_name,
                temp_pet_species=resolved.temp_pet_species,
                position=line.position,
                quantity=price.quantity,
                unit_price=price.unit_price,
                subtotal=price.subtotal,
            )
        )

    return created


# ============================================================
# QUANTITIES
# ============================================================


def sold_quantities(sale: Sale) -> dict:
    """
    product_id -> units sold on this sale.
    """
    rows = (
        sale.product_lines.filter(line_kind=SaleProductLine.Kind.SALE)
        .values("product_id")
        .annotate(total=Sum("quantity"))
    )
    return {row["product_id"]: int(row["total"]) for row in rows}


def returned_quantities(sale: Sale) -> dict:
    """
    product_id -> units already returned through derived sales.
    """
    rows = (
        SaleProductLine.objects.filter(
            sale__origin_sale=sale, line_kind=SaleProductLine.Kind.RETURN
        )
        .values("product_id")
        .annotate(total=Sum("quantity"))
    )
    return {row["product_id"]: int(row["total"]) for row in rows}


def outstanding_quantities(sale: Sale) -> dict:
    returned = returned_quantities(sale)
    outstanding = defaultdict(int)

    for product_id, sold in sold_quantities(sale).items():
        remaining = sold - returned.get(product_id, 0)
        if remaining > 0:
            outstanding[product_id] = remaining

    return dict(outstanding)


def reverse_product_stock(*, sale: Sale, user=None, note: str = "") -> int:
    """
    Put back every unit the sale still holds (sold minus already returned).
    Returns the number of units restored.
    """
    restored = 0

    for product_id, quantity in outstanding_quantities(sale).items():
        stock_ledger.increment(
            product_id=product_id,
            quantity=quantity,
            reason=StockMovement.Reason.SALE_REVERSAL,
            sale=sale,
            user=user,
            note=note or sale.invoice_no,
        )
        restored += quantity

    logger.info(
        "Sale stock reversed",
        extra={"sale_id": str(sale.pk), "units": restored},
    )
    return restored


# ============================================================
# TOTALS / AUDIT
# ============================================================


def recalculate_totals(*, sale: Sale, enforce_cash_cover: bool = True) -> Sale:
    totals = sum_sale_totals(
        product_prices=sale.product_lines.all(),
        service_prices=sale.service_lines.all(),
    )

    if totals.total > MAX_AMOUNT:
        raise SaleValidationError(f"Sale total exceeds {MAX_AMOUNT}", field="total")

    sale.subtotal_amount = totals.subtotal
    sale.tax_amount = totals.tax_total
    sale.total_amount = totals.total

    if sale.payment_method == Sale.PaymentMethod.CASH:
        if enforce_cash_cover and sale.amount_tendered < totals.total:
            raise SaleValidationError(
                f"amount_tendered ({sale.amount_tendered}) does not cover the "
                f"sale total ({totals.total})",
                field="amount_tendered",
            )
        sale.change_amount = calculate_change(
            amount_tendered=sale.amount_tendered, total=totals.total
        )
    else:
        sale.change_amount = ZERO

    sale.save(
        update_fields=[
            "subtotal_amount",
            "tax_amount",
            "total_amount",
            "change_amount",
            "updated_at",
        ]
    )
    return sale


def record_status_change(
    *,
    sale: Sale,
    from_status: str,
    to_status: str,
    user=None,
    stock_reversed: bool = False,
    skip_stock_return: bool = False,
    reason: str = "",
) -> SaleStatusChange:
    return SaleStatusChange.objects.create(
        sale=sale,
        from_status=from_status,
        to_status=to_status,
        changed_by=user if getattr(user, "pk", None) else None,
        stock_reversed=stock_reversed,
        skip_stock_return=skip_stock_return,
        reason=reason,
    )
