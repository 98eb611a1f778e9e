from django.contrib import admin

from hr_connect.chat import models


@admin.register(models.ChatGroup)
class ChatGroupAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "type", "department", "is_active", "created_at"]
    search_fields = ["name", "description"]
    list_filter = ["type", "is_active"]
    filter_horizontal = ["members", "admins"]


@admin.register(models.Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ["id", "sender", "receiver", "group", "status", "timestamp"]
    search_fields = ["content", "file_name"]
    list_filter = ["status", "timestamp"]
    raw_id_fields = ["sender", "receiver", "group"]
