# customers/apps.py

"""
CUSTOMERS APP CONFIG

Customers and their pets, including the walk-in customer and its
reserved generic pet used for anonymous service sales.
"""

from django.apps import AppConfig


class CustomersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "customers"
    verbose_name = "Customers & Pets"
