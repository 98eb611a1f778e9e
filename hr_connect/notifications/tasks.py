import logging

from celery import shared_task
from django.contrib.auth import get_user_model

from hr_connect.notifications.models import Notification
from hr_connect.notifications.push import get_push_provider
from hr_connect.notifications.push import unique_tokens
from hr_connect.realtime.errors import NotificationDeliveryError

logger = logging.getLogger(__name__)


@shared_task(name="notifications.push_notification")
def push_notification(notification_id: int, user_ids: list[int]) -> int:
    """Push a Notification to the devices of ``user_ids``.

    Presence lives in the socket process, so the worker pushes to every
    target that has a device token.

    Returns:
        Number of devices the provider accepted.
    """
    notification = Notification.objects.filter(pk=notification_id).first()
    if notification is None:
        logger.warning("Notification %s vanished before push", notification_id)
        return 0

    tokens = unique_tokens(
        get_user_model()
        .objects.filter(pk__in=user_ids, is_active=True)
        .exclude(push_token="")
        .order_by("id")
        .values_list("push_token", flat=True)
    )
    if not tokens:
        return 0

    try:
        results = get_push_provider().send_to_tokens(
            tokens,
            notification.title,
            notification.message,
            {
                "type": "notification",
                "notificationId": notification.id,
                "notificationType": notification.notification_type,
            },
        )
    except NotificationDeliveryError:
        logger.exception("Push failed for notification %s", notification_id)
        return 0
    return sum(1 for r in results if r.success)
