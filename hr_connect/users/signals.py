from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.db.models.signals import post_save
from django.dispatch import receiver

from hr_connect.users.api.permissions import ROLE_EMPLOYEE


@receiver(post_save, sender=get_user_model())
def add_default_employee_group(sender, instance, created, **kwargs):
    """Put every new account in the 'Employee' role group."""

    if not created:
        return

    group, _ = Group.objects.get_or_create(name=ROLE_EMPLOYEE)
    instance.groups.add(group)
