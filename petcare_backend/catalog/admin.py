# catalog/admin.py

from django.contrib import admin

from catalog.models import Service


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("name", "price", "duration_minutes", "is_active")
    search_fields = ("name",)
    list_filter = ("is_active",)
