from __future__ import annotations

from typing import Any

from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework import serializers

from hr_connect.chat.models import ChatGroup
from hr_connect.org.models import Department

User = get_user_model()


class HistoryQuerySerializer(serializers.Serializer):
    recipient_id = serializers.IntegerField(required=False, min_value=1)
    group_id = serializers.IntegerField(required=False, min_value=1)
    limit = serializers.IntegerField(
        required=False, min_value=1, default=settings.CHAT_HISTORY_DEFAULT_LIMIT
    )
    skip = serializers.IntegerField(required=False, min_value=0, default=0)

    def validate_limit(self, value: int) -> int:
        return min(value, settings.CHAT_HISTORY_MAX_LIMIT)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if ("recipient_id" in attrs) == ("group_id" in attrs):
            msg = "Provide exactly one of recipient_id, group_id."
            raise serializers.ValidationError(msg)
        return attrs


class MarkReadSerializer(serializers.Serializer):
    chat_id = serializers.IntegerField(min_value=1)
    is_group = serializers.BooleanField(default=False)


class ConversationSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(source="counterpart_id")
    user_name = serializers.CharField()
    last_message = serializers.CharField()
    last_message_time = serializers.DateTimeField()
    unread_count = serializers.IntegerField()


class ChatGroupSerializer(serializers.ModelSerializer):
    members = serializers.PrimaryKeyRelatedField(
        many=True, queryset=User.objects.filter(is_active=True), required=False
    )
    admins = serializers.PrimaryKeyRelatedField(many=True, read_only=True)
    created_by = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = ChatGroup
        fields = (
            "id",
            "name",
            "description",
            "type",
            "department",
            "members",
            "admins",
            "created_by",
            "is_active",
            "created_at",
        )
        read_only_fields = ("id", "type", "department", "is_active", "created_at")

    def validate_name(self, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "Group name is required."
            raise serializers.ValidationError(msg)
        return value


class AddMembersSerializer(serializers.Serializer):
    user_ids = serializers.PrimaryKeyRelatedField(
        many=True, queryset=User.objects.filter(is_active=True), allow_empty=False
    )


class DepartmentGroupCreateSerializer(serializers.Serializer):
    department = serializers.PrimaryKeyRelatedField(
        queryset=Department.objects.filter(is_active=True)
    )
    name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)

    def validate_name(self, value: str) -> str:
        return value.strip()
