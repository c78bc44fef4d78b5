# sales/admin.py

"""
Sales are read-only in admin: creating, editing or deleting them here would
bypass the stock ledger. Use the /api/sales/ endpoints.
"""

from django.contrib import admin

from sales.models import Sale, SaleProductLine, SaleServiceLine, SaleStatusChange


class _ReadOnlyInline(admin.TabularInline):
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class SaleProductLineInline(_ReadOnlyInline):
    model = SaleProductLine
    fields = (
        "position",
        "line_kind",
        "product",
        "quantity",
        "unit_price",
        "unit_tax",
        "subtotal",
        "total_with_tax",
    )


class SaleServiceLineInline(_ReadOnlyInline):
    model = SaleServiceLine
    fields = (
        "position",
        "service",
        "pet",
        "temp_pet_name",
        "temp_pet_species",
        "quantity",
        "unit_price",
        "subtotal",
    )


class SaleStatusChangeInline(_ReadOnlyInline):
    model = SaleStatusChange
    fields = (
        "from_status",
        "to_status",
        "stock_reversed",
        "skip_stock_return",
        "changed_by",
        "reason",
        "changed_at",
    )


# ======================================================
# SALE ADMIN
# ======================================================


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_no",
        "sale_type",
        "status",
        "customer",
        "payment_method",
        "total_amount",
        "sale_date",
    )
    list_filter = ("status", "sale_type", "payment_method", "sale_date")
    search_fields = ("invoice_no", "customer__document_number", "customer__first_name")
    inlines = (SaleProductLineInline, SaleServiceLineInline, SaleStatusChangeInline)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
