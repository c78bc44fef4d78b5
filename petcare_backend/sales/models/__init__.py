# sales/models/__init__.py

"""
SALES MODELS PACKAGE EXPORTS

Purpose:
- Central export surface for sales app models.
"""

from .sale import Sale
from .sale_line import SaleProductLine, SaleServiceLine
from .status_change import SaleStatusChange

__all__ = [
    "Sale",
    "SaleProductLine",
    "SaleServiceLine",
    "SaleStatusChange",
]
