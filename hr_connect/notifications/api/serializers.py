from __future__ import annotations

from typing import Any

from django.contrib.auth import get_user_model
from rest_framework import serializers

from hr_connect.notifications.models import Notification
from hr_connect.org.models import Department

User = get_user_model()


class NotificationSerializer(serializers.ModelSerializer):
    """Read serializer; ``is_read`` is relative to the requesting user."""

    is_read = serializers.SerializerMethodField()
    sender_name = serializers.CharField(source="sender.display_name", read_only=True)
    target_users = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = Notification
        fields = (
            "id",
            "title",
            "message",
            "notification_type",
            "metadata",
            "sender",
            "sender_name",
            "target_users",
            "is_read",
            "timestamp",
        )
        read_only_fields = fields

    def get_is_read(self, obj: Notification) -> bool:
        request = self.context.get("request")
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            return False
        # Prefetched on list views; a per-row query otherwise.
        return any(u.pk == user.pk for u in obj.read_by.all())


class NotificationCreateSerializer(serializers.Serializer):
    """Create serializer.

    Targeting (first match wins): ``send_to_all``, ``target_department``,
    ``target_users``. With none of them set everyone but the sender is targeted.
    """

    title = serializers.CharField(max_length=200)
    message = serializers.CharField(max_length=1000)
    notification_type = serializers.ChoiceField(
        choices=Notification.Type.choices,
        required=False,
        default=Notification.Type.GENERAL,
    )
    metadata = serializers.DictField(required=False, default=dict)
    target_users = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True), many=True, required=False
    )
    target_department = serializers.PrimaryKeyRelatedField(
        queryset=Department.objects.all(), required=False, allow_null=True
    )
    send_to_all = serializers.BooleanField(required=False, default=False)

    def validate_title(self, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "Title is required."
            raise serializers.ValidationError(msg)
        return value

    def validate_message(self, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "Message is required."
            raise serializers.ValidationError(msg)
        return value

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        users = attrs.get("target_users")
        if users is not None:
            attrs["target_users"] = [u.pk for u in users]
        department = attrs.get("target_department")
        attrs["target_department"] = department.pk if department else None
        return attrs


class UnreadCountSerializer(serializers.Serializer):
    count = serializers.IntegerField()


class AdminNotificationListSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    results = NotificationSerializer(many=True)
    unread_counts_by_type = serializers.DictField(child=serializers.IntegerField())
