# notifications/admin.py

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = (
        "created_at",
        "notification_type",
        "title",
        "priority",
        "recipient",
        "for_admins",
        "email_sent",
        "is_read",
    )
    list_filter = ("notification_type", "priority", "for_admins", "is_read")
    search_fields = ("title", "message")
