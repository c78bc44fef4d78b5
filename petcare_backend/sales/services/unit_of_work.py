# sales/services/unit_of_work.py

"""
SALE UNIT OF WORK

Every write operation of the sale engine runs as ONE database transaction:
header, lines, stock movements, status audit and reclassification commit
together or roll back together.

Error boundary:
- SaleError subclasses propagate unchanged (the transaction is rolled back).
- Model invariant violations (django ValidationError) become
  SaleValidationError.
- Database failures become InfrastructureError with a correlation id; the
  raw detail is only logged.
"""

from __future__ import annotations

import functools
import logging
import uuid

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction

from sales.services.exceptions import (
    InfrastructureError,
    SaleError,
    SaleValidationError,
)

logger = logging.getLogger(__name__)


def sale_unit_of_work(operation: str):
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                with transaction.atomic():
                    return func(*args, **kwargs)
            except SaleError:
                raise
            except DjangoValidationError as exc:
                raise SaleValidationError("; ".join(exc.messages)) from exc
            except DatabaseError as exc:
                correlation_id = uuid.uuid4().hex[:12]
                logger.exception(
                    "Sale operation failed",
                    extra={"operation": operation, "correlation_id": correlation_id},
                )
                raise InfrastructureError(correlation_id) from exc

        return wrapper

    return decorator
