from django.db.models.signals import m2m_changed
from django.db.transaction import on_commit
from django.dispatch import receiver

from hr_connect.realtime.events.notifications import publish_notification_created

from .models import Notification
from .tasks import push_notification


@receiver(m2m_changed, sender=Notification.target_users.through)
def deliver_notification(sender, instance, action, pk_set, **kwargs):
    if action != "post_add" or not pk_set:
        return
    user_ids = sorted(pk_set)

    def deliver():
        publish_notification_created(instance, user_ids)
        push_notification.delay(instance.id, user_ids)

    on_commit(deliver)
