from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Notification(models.Model):
    """An announcement sent to a fixed set of users.

    ``read_by`` is always a subset of ``target_users``; ``mark_read_by`` is the
    only writer of ``read_by``.
    """

    class Type(models.TextChoices):
        GENERAL = "general", _("General")
        ADDRESS_CHANGE = "address_change", _("Address Change")
        DEPARTMENT_UPDATE = "department_update", _("Department Update")
        SYSTEM = "system", _("System")

    title = models.CharField(max_length=200)
    message = models.CharField(max_length=1000)
    notification_type = models.CharField(
        max_length=50, choices=Type.choices, default=Type.GENERAL
    )
    metadata = models.JSONField(default=dict, blank=True)
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_notifications",
    )
    target_users = models.ManyToManyField(
        settings.AUTH_USER_MODEL, related_name="notifications"
    )
    read_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL, related_name="read_notifications", blank=True
    )
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-timestamp"]

    def __str__(self):
        return f"{self.title} - {self.sender}"

    def is_target(self, user) -> bool:
        return self.target_users.filter(pk=getattr(user, "pk", user)).exists()

    def is_read_by(self, user) -> bool:
        return self.read_by.filter(pk=getattr(user, "pk", user)).exists()

    def mark_read_by(self, user) -> bool:
        """Record that ``user`` read this. False if they already had."""

        if not self.is_target(user):
            msg = "You are not authorized to access this notification"
            raise PermissionDenied(msg)
        if self.is_read_by(user):
            return False
        self.read_by.add(user)
        return True
