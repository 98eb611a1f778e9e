from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class ChatGroup(models.Model):
    class Type(models.TextChoices):
        CUSTOM = "custom", _("Custom")
        DEPARTMENT = "department", _("Department")

    name = models.CharField(max_length=150)
    description = models.TextField(blank=True)
    type = models.CharField(max_length=20, choices=Type.choices, default=Type.CUSTOM)
    department = models.ForeignKey(
        "org.Department",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="chat_groups",
    )
    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL, related_name="chat_groups", blank=True
    )
    admins = models.ManyToManyField(
        settings.AUTH_USER_MODEL, related_name="administered_chat_groups", blank=True
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="created_chat_groups",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            # One chat group per department.
            models.UniqueConstraint(
                fields=["department"],
                condition=Q(type="department"),
                name="uniq_department_chat_group",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name

    def is_member(self, user) -> bool:
        return self.members.filter(pk=getattr(user, "pk", user)).exists()

    def is_admin(self, user) -> bool:
        return self.admins.filter(pk=getattr(user, "pk", user)).exists()


class Message(models.Model):
    """A chat message.

    Immutable once created apart from ``status``. Addressed either to one
    user (direct) or to one chat group, never both.
    """

    class Status(models.TextChoices):
        # No separate "delivered" state: messages go straight from sent to read.
        SENT = "sent", _("Sent")
        READ = "read", _("Read")

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="received_messages",
    )
    group = models.ForeignKey(
        ChatGroup,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="messages",
    )
    content = models.TextField(blank=True)
    file_url = models.CharField(max_length=1000, blank=True)
    file_name = models.CharField(max_length=255, blank=True)
    file_type = models.CharField(max_length=100, blank=True)
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.SENT, db_index=True
    )
    # Server clock, the ordering key.
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)
    # Whatever the client claimed; display only.
    client_timestamp = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["timestamp", "id"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(receiver__isnull=False, group__isnull=True)
                    | Q(receiver__isnull=True, group__isnull=False)
                ),
                name="message_direct_xor_group",
            ),
        ]
        indexes = [
            models.Index(
                fields=["sender", "receiver", "timestamp"], name="chat_msg_direct_idx"
            ),
            models.Index(fields=["group", "timestamp"], name="chat_msg_group_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        target = f"group {self.group_id}" if self.group_id else f"user {self.receiver_id}"
        return f"Message({self.pk}) {self.sender_id} -> {target}"

    @property
    def is_group(self) -> bool:
        return self.group_id is not None
