"""Server -> client chat payloads.

Keys are camelCase to match the frontend socket contract.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:  # import for type checking only
    from hr_connect.chat.models import Message

RECEIVE_MESSAGE = "receiveMessage"
MESSAGE_SENT = "messageSent"
USER_TYPING = "userTyping"
MESSAGE_STATUS_UPDATE = "messageStatusUpdate"
ERROR = "error"


def _isoformat(value) -> str | None:
    return value.isoformat() if value is not None else None


def build_message_payload(message: Message, sender_name: str) -> dict[str, Any]:
    return {
        "id": message.id,
        "senderId": message.sender_id,
        "senderName": sender_name,
        "receiverId": message.receiver_id,
        "groupId": message.group_id,
        "content": message.content,
        "status": message.status,
        "timestamp": _isoformat(message.timestamp),
        "clientTimestamp": _isoformat(message.client_timestamp),
        "fileUrl": message.file_url or None,
        "fileName": message.file_name or None,
        "fileType": message.file_type or None,
    }


def build_typing_payload(sender_id: int, *, is_typing: bool) -> dict[str, Any]:
    return {"senderId": sender_id, "isTyping": is_typing}


def build_status_payload(message_id: int, status: str) -> dict[str, Any]:
    return {"messageId": message_id, "status": status}
