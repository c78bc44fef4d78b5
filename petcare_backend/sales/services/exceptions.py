# sales/services/exceptions.py

"""
SALE ENGINE ERROR TAXONOMY

Every error the engine raises on purpose derives from SaleError and carries a
stable `code` the API layer maps to an HTTP status.

Raised BEFORE a transaction opens:
- SaleValidationError (bad shape / range)
- InvalidStatusError (when detected on decode)

Raised INSIDE the unit of work (transaction rolled back):
- NotFoundError
- InsufficientStockError
- PetOwnershipMismatchError / NoRegisteredPetError
- InvalidStatusError
- StockLedgerError (ledger misuse)

InfrastructureError wraps unexpected database failures; its message is generic
and the detail only lives in server logs under `correlation_id`.
"""

from __future__ import annotations


class SaleError(Exception):
    """Base sale engine exception"""

    code = "SALE_ERROR"

    def __init__(self, message: str = "", *, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class SaleValidationError(SaleError):
    code = "VALIDATION_ERROR"


class NotFoundError(SaleError):
    code = "NOT_FOUND"


class InsufficientStockError(SaleError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, *, product_id, available: int, requested: int, product_name: str = ""):
        label = product_name or str(product_id)
        super().__init__(
            f"Insufficient stock for {label}. "
            f"Available: {available}, Requested: {requested}",
            field="product_id",
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class PetOwnershipMismatchError(SaleError):
    code = "PET_OWNERSHIP_MISMATCH"


class NoRegisteredPetError(SaleError):
    code = "NO_REGISTERED_PET"


class InvalidStatusError(SaleError):
    code = "INVALID_STATUS"


class StockLedgerError(SaleError):
    """Ledger called incorrectly (outside a transaction, bad quantity)"""

    code = "STOCK_LEDGER_ERROR"


class InfrastructureError(SaleError):
    code = "INFRASTRUCTURE_ERROR"

    def __init__(self, correlation_id: str):
        super().__init__(
            "An internal error occurred while processing the sale. "
            f"Reference: {correlation_id}"
        )
        self.correlation_id = correlation_id
