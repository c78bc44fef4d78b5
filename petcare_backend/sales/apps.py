# sales/apps.py

"""
SALES APP CONFIG

Sale Transaction Engine:
- compose / mutate sales with product + service lines
- status lifecycle with stock reversal
- returns and exchanges as linked compensating sales
"""

from django.apps import AppConfig


class SalesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "sales"
    verbose_name = "Sales"
