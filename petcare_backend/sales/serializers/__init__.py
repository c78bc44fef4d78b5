from .sale import SaleSerializer
from .sale_command import (
    ChangeStatusCommandSerializer,
    ComposeSaleCommandSerializer,
    MutateSaleCommandSerializer,
    ProcessReturnCommandSerializer,
    ReviewCommandSerializer,
)

__all__ = [
    "SaleSerializer",
    "ComposeSaleCommandSerializer",
    "MutateSaleCommandSerializer",
    "ChangeStatusCommandSerializer",
    "ReviewCommandSerializer",
    "ProcessReturnCommandSerializer",
]
