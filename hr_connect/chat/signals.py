from django.contrib.auth import get_user_model
from django.db.models.signals import post_save
from django.dispatch import receiver

from hr_connect.chat.services import sync_department_membership


@receiver(post_save, sender=get_user_model())
def update_department_chat_group(sender, instance, raw=False, **kwargs):
    """Follow the user's department into its chat group."""

    if raw:
        return
    sync_department_membership(instance)
