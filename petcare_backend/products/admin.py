# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules (ledger-safe stock):

- Product.stock is read-only here; it only changes through StockLedger
  (sales, returns, back-office adjustments).
- Initial stock may be set when a product is created.
- StockMovement rows are immutable: no add, change or delete in admin.
"""

from __future__ import annotations

from django.contrib import admin

from products.models import Category, Product, StockMovement


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "is_active")
    search_fields = ("name",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "sku",
        "category",
        "unit_price",
        "tax_applicable",
        "tax_rate",
        "stock",
        "is_active",
    )
    list_filter = ("is_active", "tax_applicable", "category")
    search_fields = ("name", "sku")

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ("stock", "created_at", "updated_at")
        return ("created_at", "updated_at")


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = (
        "created_at",
        "product",
        "movement_type",
        "reason",
        "quantity",
        "stock_before",
        "stock_after",
        "sale",
    )
    list_filter = ("movement_type", "reason")
    search_fields = ("product__name", "product__sku")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
