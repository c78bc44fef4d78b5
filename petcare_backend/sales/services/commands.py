# sales/services/commands.py

"""
REQUEST DECODING (SINGLE UPFRONT VALIDATION PASS)

Purpose:
- Turn loosely-typed request bodies (dicts from JSON) into frozen, typed
  command objects BEFORE any domain logic or transaction runs.
- Reject early with SaleValidationError naming the offending field, e.g.
  "product_lines[1].quantity must be a positive integer".

Nothing here touches the database. Existence checks (customer, product,
service, pet) belong to the unit of work because they need the
transaction's view of the data.

Conventions:
- For mutation headers, a field left as None means "not provided, keep".
- Money is parsed with pricing.parse_decimal (locale tolerant).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from sales.models import Sale
from sales.services.exceptions import SaleValidationError
from sales.services.pricing import MAX_AMOUNT, MAX_QUANTITY, ZERO, parse_decimal
from sales.services.sale_lifecycle import parse_status

# Client clocks drift; a sale stamped a few minutes ahead is not "future".
SALE_DATE_FUTURE_TOLERANCE = timedelta(minutes=5)

CREATION_STATUSES = {Sale.Status.PENDING, Sale.Status.EFFECTIVE}

_PAYMENT_ALIASES = {
    "cash": Sale.PaymentMethod.CASH,
    "transfer": Sale.PaymentMethod.TRANSFER,
}

_TRUE = {"true", "1", "yes", "si", "sí"}
_FALSE = {"false", "0", "no", ""}


# ============================================================
# COMMANDS
# ============================================================


@dataclass(frozen=True)
class ProductLineInput:
    position: int
    product_id: str
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class ServiceLineInput:
    position: int
    service_id: str
    quantity: int
    unit_price: Decimal
    pet_id: int | None = None
    temp_pet_name: str = ""
    temp_pet_species: str = ""


@dataclass(frozen=True)
class SaleHeaderInput:
    customer_id: int | None = None
    user_id: str | None = None
    sale_date: datetime | None = None
    payment_method: str | None = None
    amount_tendered: Decimal | None = None
    declared_total: Decimal | None = None
    status: str | None = None
    payment_reference: str | None = None
    qr_code: str | None = None
    notes: str | None = None
    receipt_attachment: str | None = None


@dataclass(frozen=True)
class ComposeSaleCommand:
    header: SaleHeaderInput
    product_lines: tuple[ProductLineInput, ...]
    service_lines: tuple[ServiceLineInput, ...]


@dataclass(frozen=True)
class MutateSaleCommand:
    header: SaleHeaderInput
    # None means "keep the persisted lines"
    product_lines: tuple[ProductLineInput, ...] | None
    service_lines: tuple[ServiceLineInput, ...] | None


@dataclass(frozen=True)
class ChangeStatusCommand:
    new_status: str
    skip_stock_return: bool = False
    reason: str = ""


@dataclass(frozen=True)
class ReturnLineInput:
    position: int
    product_id: str
    quantity: int
    unit_price: Decimal | None = None


@dataclass(frozen=True)
class ProcessReturnCommand:
    returned_lines: tuple[ReturnLineInput, ...]
    exchange_lines: tuple[ReturnLineInput, ...]
    reason: str = ""
    processed_by: str = ""
    customer_balance: Decimal = ZERO
    amount_paid: Decimal = ZERO

    @property
    def is_exchange(self) -> bool:
        return bool(self.exchange_lines)


# ============================================================
# FIELD HELPERS
# ============================================================


def _require_mapping(payload, field: str = "body") -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise SaleValidationError(f"{field} must be an object", field=field)
    return payload


def _require_list(value, field: str) -> list:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise SaleValidationError(f"{field} must be a list", field=field)
    return list(value)


def _positive_int(value, field: str) -> int:
    if isinstance(value, bool) or value is None or value == "":
        raise SaleValidationError(f"{field} must be a positive integer", field=field)

    if isinstance(value, int):
        number = value
    elif isinstance(value, (float, Decimal)):
        try:
            number = int(value)
        except (OverflowError, ValueError):
            number = None
        if number is None or number != value:
            raise SaleValidationError(f"{field} must be a positive integer", field=field)
    elif isinstance(value, str) and value.strip().lstrip("+").isdigit():
        number = int(value.strip())
    else:
        raise SaleValidationError(f"{field} must be a positive integer", field=field)

    if number <= 0:
        raise SaleValidationError(f"{field} must be a positive integer", field=field)
    if number > MAX_QUANTITY:
        raise SaleValidationError(f"{field} must be at most {MAX_QUANTITY}", field=field)
    return number


def _check_amount_ceiling(amount: Decimal, field: str) -> None:
    if amount > MAX_AMOUNT:
        raise SaleValidationError(f"{field} must be at most {MAX_AMOUNT}", field=field)


def _positive_amount(value, field: str) -> Decimal:
    amount = parse_decimal(value)
    if amount <= ZERO:
        raise SaleValidationError(f"{field} must be a positive amount", field=field)
    _check_amount_ceiling(amount, field)
    return amount


def _optional_amount(value, field: str) -> Decimal | None:
    if value is None or value == "":
        return None
    amount = parse_decimal(value)
    if amount < ZERO:
        raise SaleValidationError(f"{field} cannot be negative", field=field)
    _check_amount_ceiling(amount, field)
    return amount


def _required_id(value, field: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise SaleValidationError(f"{field} is required", field=field)
    return text


def _product_id(value, field: str) -> str:
    """
    Canonical UUID text, so "ABC..." and "abc..." name the same product.
    """
    text = _required_id(value, field)
    try:
        return str(uuid.UUID(text))
    except ValueError:
        raise SaleValidationError(f"{field} is not a valid product id", field=field) from None


def _line_amount(quantity: int, unit_price: Decimal, field: str) -> None:
    if quantity * unit_price > MAX_AMOUNT:
        raise SaleValidationError(
            f"{field} times unit_price must be at most {MAX_AMOUNT}", field=field
        )


def _optional_int_id(value, field: str) -> int | None:
    if value is None or value == "":
        return None
    return _positive_int(value, field)


def _optional_text(value, field: str, *, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise SaleValidationError(f"{field} must be a string", field=field)
    text = value.strip()
    if max_length is not None and len(text) > max_length:
        raise SaleValidationError(
            f"{field} must be at most {max_length} characters", field=field
        )
    return text


def _as_bool(value, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise SaleValidationError(f"{field} must be a boolean", field=field)


def parse_payment_method(value, field: str = "payment_method") -> str:
    raw = (str(value) if value is not None else "").strip().lower()
    if raw in Sale.PaymentMethod.values:
        return raw
    if raw in _PAYMENT_ALIASES:
        return _PAYMENT_ALIASES[raw]
    raise SaleValidationError(
        f"{field} must be one of: {', '.join(Sale.PaymentMethod.values)}",
        field=field,
    )


def parse_sale_date(value, field: str = "sale_date") -> datetime | None:
    """
    ISO date or datetime, never in the future. Naive values use TIME_ZONE.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            parsed = parse_datetime(value.strip())
            if parsed is None:
                day = parse_date(value.strip())
                parsed = datetime.combine(day, time.min) if day else None
        except ValueError:
            parsed = None
    else:
        parsed = None

    if parsed is None:
        raise SaleValidationError(f"{field} is not a valid date", field=field)

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)

    if parsed > timezone.now() + SALE_DATE_FUTURE_TOLERANCE:
        raise SaleValidationError(f"{field} cannot be in the future", field=field)

    return parsed


# ============================================================
# LINE DECODERS
# ============================================================


def _decode_product_lines(raw, field: str = "product_lines") -> tuple[ProductLineInput, ...]:
    lines = []
    seen = set()

    for index, item in enumerate(_require_list(raw, field)):
        prefix = f"{field}[{index}]"
        item = _require_mapping(item, prefix)

        product_id = _product_id(item.get("product_id"), f"{prefix}.product_id")
        if product_id in seen:
            raise SaleValidationError(
                f"{prefix}.product_id {product_id} appears more than once in the sale",
                field=f"{prefix}.product_id",
            )
        seen.add(product_id)

        quantity = _positive_int(item.get("quantity"), f"{prefix}.quantity")
        unit_price = _positive_amount(item.get("unit_price"), f"{prefix}.unit_price")
        _line_amount(quantity, unit_price, f"{prefix}.quantity")

        lines.append(
            ProductLineInput(
                position=index,
                product_id=product_id,
                quantity=quantity,
                unit_price=unit_price,
            )
        )

    return tuple(lines)


def _decode_service_lines(raw, field: str = "service_lines") -> tuple[ServiceLineInput, ...]:
    lines = []

    for index, item in enumerate(_require_list(raw, field)):
        prefix = f"{field}[{index}]"
        item = _require_mapping(item, prefix)

        service_id = _required_id(item.get("service_id"), f"{prefix}.service_id")
        quantity = _positive_int(item.get("quantity"), f"{prefix}.quantity")
        unit_price = _positive_amount(item.get("unit_price"), f"{prefix}.unit_price")
        _line_amount(quantity, unit_price, f"{prefix}.quantity")

        lines.append(
            ServiceLineInput(
                position=index,
                service_id=service_id,
                quantity=quantity,
                unit_price=unit_price,
                pet_id=_optional_int_id(item.get("pet_id"), f"{prefix}.pet_id"),
                temp_pet_name=_optional_text(
                    item.get("temp_pet_name"), f"{prefix}.temp_pet_name", max_length=100
                )
                or "",
                temp_pet_species=_optional_text(
                    item.get("temp_pet_species"), f"{prefix}.temp_pet_species", max_length=60
                )
                or "",
            )
        )

    return tuple(lines)


def _decode_return_lines(raw, field: str) -> tuple[ReturnLineInput, ...]:
    lines = []
    seen = set()

    for index, item in enumerate(_require_list(raw, field)):
        prefix = f"{field}[{index}]"
        item = _require_mapping(item, prefix)

        product_id = _product_id(item.get("product_id"), f"{prefix}.product_id")
        if product_id in seen:
            raise SaleValidationError(
                f"{prefix}.product_id {product_id} appears more than once",
                field=f"{prefix}.product_id",
            )
        seen.add(product_id)

        quantity = _positive_int(item.get("quantity"), f"{prefix}.quantity")
        unit_price = item.get("unit_price")
        if unit_price in (None, ""):
            unit_price = None
        else:
            unit_price = _positive_amount(unit_price, f"{prefix}.unit_price")
            _line_amount(quantity, unit_price, f"{prefix}.quantity")

        lines.append(
            ReturnLineInput(
                position=index,
                product_id=product_id,
                quantity=quantity,
                unit_price=unit_price,
            )
        )

    return tuple(lines)


def _decode_header(payload: dict) -> SaleHeaderInput:
    payment_method = payload.get("payment_method")

    return SaleHeaderInput(
        customer_id=_optional_int_id(payload.get("customer_id"), "customer_id"),
        user_id=_optional_text(payload.get("user_id"), "user_id") or None,
        sale_date=parse_sale_date(payload.get("sale_date")),
        payment_method=(
            None if payment_method in (None, "") else parse_payment_method(payment_method)
        ),
        amount_tendered=_optional_amount(payload.get("amount_tendered"), "amount_tendered"),
        declared_total=_optional_amount(payload.get("total"), "total"),
        payment_reference=_optional_text(
            payload.get("payment_reference"), "payment_reference", max_length=64
        ),
        qr_code=_optional_text(payload.get("qr_code"), "qr_code", max_length=255),
        notes=_optional_text(payload.get("notes"), "notes"),
        receipt_attachment=_optional_text(
            payload.get("receipt_attachment"), "receipt_attachment", max_length=500
        ),
    )


def _check_cash_against_declared_total(header: SaleHeaderInput) -> None:
    if header.payment_method != Sale.PaymentMethod.CASH or header.declared_total is None:
        return

    tendered = header.amount_tendered if header.amount_tendered is not None else ZERO
    if tendered < header.declared_total:
        raise SaleValidationError(
            f"amount_tendered ({tendered}) must cover the total ({header.declared_total}) "
            "for cash payments",
            field="amount_tendered",
        )


# ============================================================
# PUBLIC DECODERS
# ============================================================


def decode_compose_sale(payload) -> ComposeSaleCommand:
    payload = _require_mapping(payload)
    header = _decode_header(payload)

    raw_status = payload.get("status")
    if raw_status not in (None, ""):
        status = parse_status(raw_status)
        if status not in CREATION_STATUSES:
            raise SaleValidationError(
                f"A new sale can only start as {Sale.Status.EFFECTIVE} or "
                f"{Sale.Status.PENDING}",
                field="status",
            )
        header = replace(header, status=status)

    if header.payment_method is None:
        header = replace(header, payment_method=Sale.PaymentMethod.CASH)

    product_lines = _decode_product_lines(payload.get("product_lines"))
    service_lines = _decode_service_lines(payload.get("service_lines"))

    if not product_lines and not service_lines:
        raise SaleValidationError(
            "A sale needs at least one product line or one service line",
            field="product_lines",
        )

    _check_cash_against_declared_total(header)

    return ComposeSaleCommand(
        header=header,
        product_lines=product_lines,
        service_lines=service_lines,
    )


def decode_mutate_sale(payload) -> MutateSaleCommand:
    payload = _require_mapping(payload)

    if "status" in payload:
        raise SaleValidationError(
            "status cannot be changed through an update; use the status change operation",
            field="status",
        )

    header = _decode_header(payload)
    _check_cash_against_declared_total(header)

    product_lines = (
        _decode_product_lines(payload["product_lines"])
        if "product_lines" in payload
        else None
    )
    service_lines = (
        _decode_service_lines(payload["service_lines"])
        if "service_lines" in payload
        else None
    )

    if product_lines == () and service_lines == ():
        raise SaleValidationError(
            "A sale needs at least one product line or one service line",
            field="product_lines",
        )

    return MutateSaleCommand(
        header=header,
        product_lines=product_lines,
        service_lines=service_lines,
    )


def decode_change_status(payload) -> ChangeStatusCommand:
    payload = _require_mapping(payload)

    return ChangeStatusCommand(
        new_status=parse_status(payload.get("status")),
        skip_stock_return=_as_bool(payload.get("skip_stock_return"), "skip_stock_return"),
        reason=_optional_text(payload.get("reason"), "reason") or "",
    )


def decode_process_return(payload) -> ProcessReturnCommand:
    payload = _require_mapping(payload)

    returned = _decode_return_lines(payload.get("returned_lines"), "returned_lines")
    exchanged = _decode_return_lines(payload.get("exchange_lines"), "exchange_lines")

    if not returned and not exchanged:
        raise SaleValidationError(
            "A return needs at least one returned or exchanged product",
            field="returned_lines",
        )

    return ProcessReturnCommand(
        returned_lines=returned,
        exchange_lines=exchanged,
        reason=_optional_text(payload.get("reason"), "reason") or "",
        processed_by=_optional_text(payload.get("processed_by"), "processed_by", max_length=150)
        or "",
        customer_balance=_optional_amount(payload.get("customer_balance"), "customer_balance")
        or ZERO,
        amount_paid=_optional_amount(payload.get("amount_paid"), "amount_paid") or ZERO,
    )
