# sales/services/pricing.py

"""
LINE PRICING CALCULATOR (PURE)

No I/O, no model access.

Product line:
    subtotal       = unit_price * quantity
    unit_tax       = unit_price * tax_rate / 100   (0 when tax not applicable)
    total_with_tax = subtotal + unit_tax * quantity

Service line:
    subtotal = unit_price * quantity               (services are never taxed)

Money is quantized to 0.01 with ROUND_HALF_UP. Only unit_tax can carry a
fractional cent before quantization; the line identities hold exactly on the
quantized values.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

# Column limits: DecimalField(max_digits=12, decimal_places=2) and
# PositiveIntegerField (Postgres integer).
MAX_AMOUNT = Decimal("9999999999.99")
MAX_QUANTITY = 2_147_483_647

_STRIP_CHARS = re.compile(r"[\s$€£]|COP|USD", re.IGNORECASE)
_NUMERIC = re.compile(r"^[+-]?[0-9.,]+$")


def _money(value) -> Decimal:
    return Decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def parse_decimal(value) -> Decimal:
    """
    Coerce a possibly locale-formatted number into a Decimal.

    - Decimal / int pass through; float goes through str()
    - "1.234.567,89" / "1,234,567.89" -> 1234567.89 (last separator is decimal)
    - a single separator is always the decimal point:
      "7,5" -> 7.5, "1.500" -> 1.5 (write "1.500,00" for fifteen hundred)
    - anything malformed -> Decimal("0"), never raises
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")

    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")

    if isinstance(value, int):
        return Decimal(value)

    if isinstance(value, float):
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            return Decimal("0")
        return parsed if parsed.is_finite() else Decimal("0")

    if not isinstance(value, str):
        return Decimal("0")

    text = _STRIP_CHARS.sub("", value)
    if not text or not _NUMERIC.match(text):
        return Decimal("0")

    parts = re.split(r"[.,]", text)
    if len(parts) == 1:
        canonical = text
    else:
        canonical = "".join(parts[:-1]) + "." + parts[-1]

    try:
        return Decimal(canonical)
    except InvalidOperation:
        return Decimal("0")


# ============================================================
# RESULTS
# ============================================================


@dataclass(frozen=True)
class ProductLinePrice:
    unit_price: Decimal
    quantity: int
    subtotal: Decimal
    unit_tax: Decimal
    total_with_tax: Decimal

    @property
    def tax_total(self) -> Decimal:
        return self.unit_tax * self.quantity


@dataclass(frozen=True)
class ServiceLinePrice:
    unit_price: Decimal
    quantity: int
    subtotal: Decimal


@dataclass(frozen=True)
class SaleTotals:
    subtotal: Decimal
    tax_total: Decimal
    total: Decimal


# ============================================================
# CALCULATORS
# ============================================================


def price_product_line(
    *, unit_price, quantity: int, tax_applicable: bool, tax_rate
) -> ProductLinePrice:
    price = _money(parse_decimal(unit_price))
    qty = int(quantity)

    subtotal = _money(price * qty)

    if tax_applicable:
        unit_tax = _money(price * parse_decimal(tax_rate) / HUNDRED)
    else:
        unit_tax = ZERO

    return ProductLinePrice(
        unit_price=price,
        quantity=qty,
        subtotal=subtotal,
        unit_tax=unit_tax,
        total_with_tax=subtotal + unit_tax * qty,
    )


def price_service_line(*, unit_price, quantity: int) -> ServiceLinePrice:
    price = _money(parse_decimal(unit_price))
    qty = int(quantity)
    return ServiceLinePrice(unit_price=price, quantity=qty, subtotal=_money(price * qty))


def sum_sale_totals(*, product_prices, service_prices) -> SaleTotals:
    """
    Header totals from line results (or any objects exposing the same fields).
    """
    subtotal = ZERO
    tax_total = ZERO

    for line in product_prices:
        subtotal += Decimal(line.subtotal)
        tax_total += Decimal(line.unit_tax) * int(line.quantity)

    for line in service_prices:
        subtotal += Decimal(line.subtotal)

    subtotal = _money(subtotal)
    tax_total = _money(tax_total)
    return SaleTotals(subtotal=subtotal, tax_total=tax_total, total=subtotal + tax_total)


def calculate_change(*, amount_tendered, total) -> Decimal:
    """
    change = tendered - total, floored at zero.
    """
    change = _money(parse_decimal(amount_tendered)) - _money(parse_decimal(total))
    return change if change > ZERO else ZERO
