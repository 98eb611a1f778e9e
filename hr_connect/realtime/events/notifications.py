from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable

    from hr_connect.notifications.models import Notification
from hr_connect.realtime.socketio import emit_event_to_user

NOTIFICATION = "notification"


def build_notification_payload(notification: Notification) -> dict[str, Any]:
    return {
        "id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.notification_type,
        "metadata": notification.metadata,
        "senderId": notification.sender_id,
        "timestamp": notification.timestamp.isoformat(),
    }


def publish_notification_created(
    notification: Notification,
    user_ids: Iterable[int],
) -> None:
    """Push a new Notification to each target's personal room."""

    payload = build_notification_payload(notification)
    for user_id in user_ids:
        emit_event_to_user(user_id, NOTIFICATION, payload)
