# sales/services/pet_resolution.py

"""
PET RESOLUTION FOR SERVICE LINES

Order (load-bearing, it guarantees every service line has a pet):
1. walk-in customer          -> reserved generic pet (+ optional temporary
                                name / species for display)
2. explicit pet_id           -> must belong to the sale's customer
3. registered customer       -> first ACTIVE pet by id ascending
"""

from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings

from customers.models import Customer, Pet
from customers.services.lookup import first_active_pet, get_generic_pet, get_pet
from sales.services.exceptions import NoRegisteredPetError, PetOwnershipMismatchError


@dataclass(frozen=True)
class ResolvedPet:
    pet: Pet
    temp_pet_name: str = ""
    temp_pet_species: str = ""

    @property
    def is_generic(self) -> bool:
        return self.pet.is_generic


def resolve_pet(
    *,
    customer: Customer,
    pet_id=None,
    temp_pet_name: str = "",
    temp_pet_species: str = "",
) -> ResolvedPet:
    if customer.is_walk_in:
        return ResolvedPet(
            pet=get_generic_pet(),
            temp_pet_name=(temp_pet_name or "").strip(),
            temp_pet_species=(temp_pet_species or "").strip()
            or settings.GENERIC_PET_SPECIES,
        )

    if pet_id not in (None, ""):
        pet = get_pet(pet_id)
        if pet.customer_id != customer.pk:
            raise PetOwnershipMismatchError(
                f"Pet {pet.pk} does not belong to customer {customer.pk}",
                field="pet_id",
            )
        return ResolvedPet(pet=pet)

    pet = first_active_pet(customer)
    if pet is None:
        raise NoRegisteredPetError(
            f"Customer {customer.pk} has no active registered pet; "
            "register one or pass pet_id",
            field="pet_id",
        )
    return ResolvedPet(pet=pet)
