# notifications/apps.py

"""
NOTIFICATIONS APP CONFIG

In-app notifications + emails raised AFTER a sale transaction commits.
Delivery is best-effort: failures are logged, never escalated.
"""

from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"
    verbose_name = "Notifications"
