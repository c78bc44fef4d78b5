# customers/admin.py

from django.contrib import admin

from customers.models import Customer, Pet


class PetInline(admin.TabularInline):
    model = Pet
    extra = 0
    fields = ("name", "species", "breed", "is_active", "is_generic")


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("id", "document_number", "first_name", "last_name", "email", "is_active")
    search_fields = ("document_number", "first_name", "last_name", "email")
    list_filter = ("is_active",)
    inlines = [PetInline]
