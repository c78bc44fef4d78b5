# sales/api/errors.py

"""
API ERROR NORMALIZATION

Every sale engine failure is rendered as:

    {"error": {"code": "...", "message": "...", "field": "..."}}
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.response import Response

from sales.services.exceptions import (
    InfrastructureError,
    InsufficientStockError,
    InvalidStatusError,
    NoRegisteredPetError,
    NotFoundError,
    PetOwnershipMismatchError,
    SaleError,
    SaleValidationError,
)

# Most specific first; SaleError is the catch-all for the taxonomy.
HTTP_STATUS_BY_ERROR = (
    (SaleValidationError, status.HTTP_400_BAD_REQUEST),
    (PetOwnershipMismatchError, status.HTTP_400_BAD_REQUEST),
    (NoRegisteredPetError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InsufficientStockError, status.HTTP_409_CONFLICT),
    (InvalidStatusError, status.HTTP_409_CONFLICT),
    (InfrastructureError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (SaleError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def error_response(*, code: str, message: str, http_status: int, extra=None):
    """
    Canonical API error response.
    """
    body = {"code": code, "message": message}
    if extra:
        body.update(extra)
    return Response({"error": body}, status=http_status)


def sale_error_response(exc: SaleError):
    http_status = next(
        code for error_class, code in HTTP_STATUS_BY_ERROR if isinstance(exc, error_class)
    )

    extra = {}
    if exc.field:
        extra["field"] = exc.field
    if isinstance(exc, InsufficientStockError):
        extra.update(
            product_id=str(exc.product_id),
            available=exc.available,
            requested=exc.requested,
        )
    if isinstance(exc, InfrastructureError):
        extra["correlation_id"] = exc.correlation_id

    return error_response(
        code=exc.code,
        message=exc.message,
        http_status=http_status,
        extra=extra,
    )
