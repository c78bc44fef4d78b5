# customers/services/lookup.py

"""
CUSTOMER / PET LOOKUPS

Read-only collaborator surface used by the sale engine.
Every miss raises NotFoundError so callers never branch on None.
"""

from __future__ import annotations

from django.conf import settings

from customers.models import Customer, Pet
from sales.services.exceptions import NotFoundError


def get_customer(customer_id) -> Customer:
    try:
        return Customer.objects.get(pk=customer_id)
    except (Customer.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Customer {customer_id} not found", field="customer_id")


def get_walk_in_customer() -> Customer:
    customer = Customer.objects.filter(
        document_number=settings.WALK_IN_CUSTOMER_DOCUMENT
    ).first()
    if customer is None:
        raise NotFoundError(
            "No customer supplied and the walk-in customer is not configured",
            field="customer_id",
        )
    return customer


def get_pet(pet_id) -> Pet:
    try:
        return Pet.objects.get(pk=pet_id)
    except (Pet.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Pet {pet_id} not found", field="pet_id")


def get_generic_pet() -> Pet:
    pet = (
        Pet.objects.filter(
            is_generic=True,
            customer__document_number=settings.WALK_IN_CUSTOMER_DOCUMENT,
        )
        .order_by("id")
        .first()
    )
    if pet is None:
        raise NotFoundError("The generic walk-in pet is not configured", field="pet_id")
    return pet


def first_active_pet(customer: Customer) -> Pet | None:
    return (
        Pet.objects.filter(customer=customer, is_active=True, is_generic=False)
        .order_by("id")
        .first()
    )
