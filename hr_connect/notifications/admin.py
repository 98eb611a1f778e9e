from django.contrib import admin

from hr_connect.notifications import models


@admin.register(models.Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["id", "sender", "title", "notification_type", "timestamp"]
    search_fields = ["title", "message"]
    list_filter = ["notification_type", "timestamp"]
    filter_horizontal = ["target_users", "read_by"]
