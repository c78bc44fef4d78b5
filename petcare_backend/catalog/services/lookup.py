# catalog/services/lookup.py

from __future__ import annotations

from django.core.exceptions import ValidationError

from catalog.models import Service
from sales.services.exceptions import NotFoundError


def get_service(service_id) -> Service:
    try:
        return Service.objects.get(pk=service_id)
    except (Service.DoesNotExist, ValidationError, ValueError, TypeError):
        raise NotFoundError(f"Service {service_id} not found", field="service_id")
