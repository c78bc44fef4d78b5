"""
SALE LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed status transitions for Sale entities
and which of them reverse stock.

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
- Single source of truth (Sale.save() consults can_transition as well)
"""

from __future__ import annotations

from dataclasses import dataclass

from sales.models import Sale
from sales.services.exceptions import InvalidStatusError

Status = Sale.Status

# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Status.CANCELLED,
    Status.RETURNED,
}

# Statuses in which the sale's product lines still hold stock out of inventory.
STOCK_HOLDING_STATES = {
    Status.PENDING,
    Status.EFFECTIVE,
}

ALLOWED_TRANSITIONS = {
    Status.PENDING: {
        Status.EFFECTIVE,
        Status.CANCELLED,
    },
    Status.EFFECTIVE: {
        Status.CANCELLED,
        Status.RETURNED,
        Status.PARTIALLY_RETURNED,
    },
    # Reached only through the return processor once the remaining
    # quantity comes back.
    Status.PARTIALLY_RETURNED: {
        Status.RETURNED,
    },
}

# (from, to) pairs whose transition reverses stock for every product line.
STOCK_REVERSING_TRANSITIONS = {
    (Status.PENDING, Status.CANCELLED),
    (Status.EFFECTIVE, Status.CANCELLED),
    (Status.EFFECTIVE, Status.RETURNED),
}


@dataclass(frozen=True)
class TransitionPlan:
    from_status: str
    to_status: str
    reverses_stock: bool


# ============================================================
# DOMAIN RULES
# ============================================================


def parse_status(value) -> str:
    """
    Accept a stored value ("Cancelada") or an enum name ("CANCELLED").
    """
    raw = (str(value) if value is not None else "").strip()

    if raw in Status.values:
        return raw

    by_name = raw.upper().replace(" ", "_")
    if by_name in Status.names:
        return Status[by_name].value

    raise InvalidStatusError(
        f"Invalid status '{raw}'. Valid values: {', '.join(Status.values)}",
        field="status",
    )


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def plan_transition(*, sale: Sale, target_status) -> TransitionPlan:
    target = parse_status(target_status)

    if not can_transition(from_status=sale.status, to_status=target):
        raise InvalidStatusError(
            f"Sale {sale.invoice_no or sale.id} cannot transition from "
            f"'{sale.status}' to '{target}'",
            field="status",
        )

    return TransitionPlan(
        from_status=sale.status,
        to_status=target,
        reverses_stock=(sale.status, target) in STOCK_REVERSING_TRANSITIONS,
    )
