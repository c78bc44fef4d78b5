# products/services/lookup.py

from __future__ import annotations

from django.core.exceptions import ValidationError

from products.models import Product
from sales.services.exceptions import NotFoundError


def get_product(product_id) -> Product:
    """
    Read-only product lookup (price, tax flag, tax rate, stock).
    Stock writes go through StockLedger only.
    """
    try:
        return Product.objects.get(pk=product_id)
    except (Product.DoesNotExist, ValidationError, ValueError, TypeError):
        raise NotFoundError(f"Product {product_id} not found", field="product_id")
