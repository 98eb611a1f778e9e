from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction

from hr_connect.notifications.models import Notification

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable

logger = logging.getLogger(__name__)
User = get_user_model()


def resolve_recipients(
    sender,
    *,
    target_users: Iterable[int] | None = None,
    target_department: int | None = None,
    send_to_all: bool = False,
) -> list[int]:
    """Resolve a notification audience to user ids.

    Precedence: everyone, then a department, then explicit users. With no
    targeting at all the notification goes to every active user. The sender
    is left out of the broadcast forms.
    """

    active = User.objects.filter(is_active=True)
    if send_to_all:
        qs = active.exclude(pk=sender.pk)
    elif target_department is not None:
        qs = active.filter(department_id=target_department).exclude(pk=sender.pk)
    elif target_users:
        qs = active.filter(pk__in=list(target_users))
    else:
        qs = active.exclude(pk=sender.pk)
    return sorted(qs.values_list("id", flat=True))


def send_notification(  # noqa: PLR0913
    *,
    sender,
    title: str,
    message: str,
    recipient_ids: Iterable[int],
    notification_type: str = Notification.Type.GENERAL,
    metadata: dict[str, Any] | None = None,
) -> Notification:
    """Create a notification for ``recipient_ids``.

    Realtime delivery and the push task are triggered by the
    ``target_users`` m2m signal once the transaction commits.
    """

    recipient_ids = sorted(set(recipient_ids))
    if not recipient_ids:
        msg = "Notification must have at least one target user"
        raise ValidationError(msg)

    with transaction.atomic():
        notification = Notification.objects.create(
            sender=sender,
            title=title,
            message=message,
            notification_type=notification_type,
            metadata=metadata or {},
        )
        notification.target_users.set(recipient_ids)
    logger.info(
        "Notification %s sent by %s to %s users",
        notification.id,
        sender.pk,
        len(recipient_ids),
    )
    return notification
