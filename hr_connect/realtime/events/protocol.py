"""Client -> server event types.

Each Socket.IO event name maps to one frozen dataclass. Raw payloads are
validated by a DRF serializer at the boundary, so the pipeline only ever sees
well-formed, typed commands.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from datetime import timezone as dt_timezone
from typing import Any
from typing import ClassVar

from django.utils.dateparse import parse_datetime
from rest_framework import serializers

from hr_connect.realtime.errors import ValidationError

AUTHENTICATE = "authenticate"
JOIN_ROOM = "joinRoom"
LEAVE_ROOM = "leaveRoom"
SEND_MESSAGE = "sendMessage"
TYPING = "typing"
MESSAGE_READ = "messageRead"


@dataclass(frozen=True)
class Authenticate:
    event: ClassVar[str] = AUTHENTICATE
    user_id: int


@dataclass(frozen=True)
class JoinRoom:
    event: ClassVar[str] = JOIN_ROOM
    room_id: str


@dataclass(frozen=True)
class LeaveRoom:
    event: ClassVar[str] = LEAVE_ROOM
    room_id: str


@dataclass(frozen=True)
class SendMessage:
    event: ClassVar[str] = SEND_MESSAGE
    sender_id: int | None = None
    receiver_id: int | None = None
    group_id: int | None = None
    content: str = ""
    file_url: str = ""
    file_name: str = ""
    file_type: str = ""
    client_timestamp: datetime | None = None

    @property
    def is_group(self) -> bool:
        return self.group_id is not None

    @property
    def has_attachment(self) -> bool:
        return bool(self.file_url)


@dataclass(frozen=True)
class Typing:
    event: ClassVar[str] = TYPING
    sender_id: int | None = None
    is_typing: bool = True
    receiver_id: int | None = None
    group_id: int | None = None


@dataclass(frozen=True)
class MessageRead:
    event: ClassVar[str] = MESSAGE_READ
    message_id: int
    reader_id: int | None = None


def _coerce_client_timestamp(value: Any) -> datetime | None:
    """Best effort parse of the advisory client clock; junk becomes None."""

    if value in (None, ""):
        return None
    text = str(value).strip()
    if text.isdigit():
        # Milliseconds since the epoch (JavaScript Date.now()).
        try:
            return datetime.fromtimestamp(int(text) / 1000, tz=dt_timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    try:
        parsed = parse_datetime(text)
    except ValueError:
        return None
    if parsed is not None and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed


def _require_one_target(attrs: dict[str, Any]) -> None:
    targets = [attrs.get("receiver_id"), attrs.get("group_id")]
    if sum(t is not None for t in targets) != 1:
        msg = "Provide exactly one of receiverId, groupId."
        raise serializers.ValidationError(msg)


class AuthenticateSerializer(serializers.Serializer):
    userId = serializers.IntegerField(source="user_id", min_value=1)  # noqa: N815


class RoomSerializer(serializers.Serializer):
    roomId = serializers.CharField(source="room_id", max_length=200)  # noqa: N815


class SendMessageSerializer(serializers.Serializer):
    senderId = serializers.IntegerField(  # noqa: N815
        source="sender_id", required=False, allow_null=True
    )
    receiverId = serializers.IntegerField(  # noqa: N815
        source="receiver_id", required=False, allow_null=True
    )
    groupId = serializers.IntegerField(  # noqa: N815
        source="group_id", required=False, allow_null=True
    )
    content = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, default=""
    )
    fileUrl = serializers.CharField(  # noqa: N815
        source="file_url",
        required=False,
        allow_blank=True,
        allow_null=True,
        max_length=1000,
    )
    fileName = serializers.CharField(  # noqa: N815
        source="file_name",
        required=False,
        allow_blank=True,
        allow_null=True,
        max_length=255,
    )
    fileType = serializers.CharField(  # noqa: N815
        source="file_type",
        required=False,
        allow_blank=True,
        allow_null=True,
        max_length=100,
    )
    timestamp = serializers.JSONField(required=False, allow_null=True)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        _require_one_target(attrs)
        for key in ("content", "file_url", "file_name", "file_type"):
            attrs[key] = (attrs.get(key) or "").strip()
        if not attrs["content"] and not attrs["file_url"]:
            msg = "Message content or an attachment is required."
            raise serializers.ValidationError(msg)
        attrs["client_timestamp"] = _coerce_client_timestamp(attrs.pop("timestamp", None))
        return attrs


class TypingSerializer(serializers.Serializer):
    senderId = serializers.IntegerField(  # noqa: N815
        source="sender_id", required=False, allow_null=True
    )
    receiverId = serializers.IntegerField(  # noqa: N815
        source="receiver_id", required=False, allow_null=True
    )
    groupId = serializers.IntegerField(  # noqa: N815
        source="group_id", required=False, allow_null=True
    )
    isTyping = serializers.BooleanField(source="is_typing", default=True)  # noqa: N815

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        _require_one_target(attrs)
        return attrs


class MessageReadSerializer(serializers.Serializer):
    messageId = serializers.IntegerField(source="message_id", min_value=1)  # noqa: N815
    readerId = serializers.IntegerField(  # noqa: N815
        source="reader_id", required=False, allow_null=True
    )


# event name -> (serializer, event type, key used when the payload is a scalar)
_REGISTRY: dict[str, tuple[type[serializers.Serializer], type, str | None]] = {
    AUTHENTICATE: (AuthenticateSerializer, Authenticate, "userId"),
    JOIN_ROOM: (RoomSerializer, JoinRoom, "roomId"),
    LEAVE_ROOM: (RoomSerializer, LeaveRoom, "roomId"),
    SEND_MESSAGE: (SendMessageSerializer, SendMessage, None),
    TYPING: (TypingSerializer, Typing, None),
    MESSAGE_READ: (MessageReadSerializer, MessageRead, None),
}


def _first_error(detail: Any) -> str:
    if isinstance(detail, dict):
        for key, value in detail.items():
            text = _first_error(value)
            return text if key == "non_field_errors" else f"{key}: {text}"
    if isinstance(detail, list) and detail:
        return _first_error(detail[0])
    return str(detail)


def parse_event(name: str, data: Any):
    """Validate a raw payload and return the typed event for ``name``."""

    try:
        serializer_class, event_type, scalar_key = _REGISTRY[name]
    except KeyError:
        msg = f"Unknown event {name!r}."
        raise ValidationError(msg) from None

    if not isinstance(data, dict):
        if scalar_key is None:
            msg = f"{name} expects an object payload."
            raise ValidationError(msg)
        data = {scalar_key: data}

    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise ValidationError(_first_error(serializer.errors))
    return event_type(**serializer.validated_data)
