"""Persistent message log.

Messages are create-only; the one mutation is the ``sent -> read`` status
transition, done as a conditional UPDATE so that concurrent readers produce a
single transition. Sync methods serve the REST views; the ``a``-prefixed
variants are what the realtime pipeline awaits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async
from django.db import DatabaseError
from django.db.models import Q

from hr_connect.chat.models import Message
from hr_connect.realtime.errors import NotFoundError
from hr_connect.realtime.errors import PersistenceError

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusChange:
    message_id: int
    sender_id: int


@dataclass(frozen=True)
class ConversationSummary:
    counterpart_id: int
    last_message: str
    last_message_time: datetime
    unread_count: int


class MessageStore:
    # Writes --------------------------------------------------------------------
    def create(  # noqa: PLR0913
        self,
        *,
        sender_id: int,
        receiver_id: int | None = None,
        group_id: int | None = None,
        content: str = "",
        file_url: str = "",
        file_name: str = "",
        file_type: str = "",
        client_timestamp: datetime | None = None,
    ) -> Message:
        try:
            return Message.objects.create(
                sender_id=sender_id,
                receiver_id=None if group_id is not None else receiver_id,
                group_id=group_id,
                content=content,
                file_url=file_url,
                file_name=file_name,
                file_type=file_type,
                status=Message.Status.SENT,
                client_timestamp=client_timestamp,
            )
        except DatabaseError as exc:
            logger.exception("Failed to persist message from user %s", sender_id)
            raise PersistenceError from exc

    def mark_read(self, message_id: int) -> bool:
        """Move one message to ``read``. False when it already was."""

        try:
            updated = Message.objects.filter(
                pk=message_id, status=Message.Status.SENT
            ).update(status=Message.Status.READ)
        except DatabaseError as exc:
            logger.exception("Failed to update status of message %s", message_id)
            raise PersistenceError from exc
        return updated == 1

    def mark_conversation_read(
        self,
        reader_id: int,
        *,
        counterpart_id: int | None = None,
        group_id: int | None = None,
    ) -> list[StatusChange]:
        """Mark every unread message addressed to ``reader_id`` as read."""

        if group_id is not None:
            qs = Message.objects.filter(group_id=group_id).exclude(sender_id=reader_id)
        elif counterpart_id is not None:
            qs = Message.objects.filter(sender_id=counterpart_id, receiver_id=reader_id)
        else:
            msg = "counterpart_id or group_id is required"
            raise ValueError(msg)

        try:
            pending = list(
                qs.filter(status=Message.Status.SENT).values_list("id", "sender_id")
            )
            changed: list[StatusChange] = []
            for message_id, sender_id in pending:
                # Same conditional update as mark_read: a concurrent reader
                # cannot make us report a transition twice.
                if (
                    Message.objects.filter(
                        pk=message_id, status=Message.Status.SENT
                    ).update(status=Message.Status.READ)
                    == 1
                ):
                    changed.append(StatusChange(message_id, sender_id))
        except DatabaseError as exc:
            logger.exception("Failed to mark conversation read for %s", reader_id)
            raise PersistenceError from exc
        return changed

    def purge_group(self, group_id: int) -> int:
        deleted, _ = Message.objects.filter(group_id=group_id).delete()
        logger.info("Purged %s messages of chat group %s", deleted, group_id)
        return deleted

    # Reads ---------------------------------------------------------------------
    def get(self, message_id: int) -> Message:
        message = Message.objects.filter(pk=message_id).first()
        if message is None:
            msg = f"Unknown message {message_id}."
            raise NotFoundError(msg)
        return message

    def count(self) -> int:
        return Message.objects.count()

    def history(
        self,
        user_id: int,
        *,
        recipient_id: int | None = None,
        group_id: int | None = None,
        limit: int = 50,
        skip: int = 0,
    ) -> list[Message]:
        """Latest ``limit`` messages of a conversation, oldest first."""

        if recipient_id is not None:
            qs = Message.objects.filter(
                Q(sender_id=user_id, receiver_id=recipient_id)
                | Q(sender_id=recipient_id, receiver_id=user_id)
            )
        elif group_id is not None:
            qs = Message.objects.filter(group_id=group_id)
        else:
            msg = "recipient_id or group_id is required"
            raise ValueError(msg)
        page = list(
            qs.select_related("sender").order_by("-timestamp", "-id")[
                skip : skip + limit
            ]
        )
        page.reverse()
        return page

    def conversations(self, user_id: int) -> list[ConversationSummary]:
        """Direct conversations of ``user_id``, most recent first."""

        summaries: dict[int, dict] = {}
        for row in self._direct_rows(user_id):
            counterpart = (
                row["receiver_id"] if row["sender_id"] == user_id else row["sender_id"]
            )
            summary = summaries.get(counterpart)
            if summary is None:
                # Rows are newest first, so the first row is the last message.
                summary = summaries[counterpart] = {
                    "last_message": row["content"] or row["file_name"],
                    "last_message_time": row["timestamp"],
                    "unread_count": 0,
                }
            if row["receiver_id"] == user_id and row["status"] != Message.Status.READ:
                summary["unread_count"] += 1
        return [
            ConversationSummary(counterpart_id=cid, **data)
            for cid, data in summaries.items()
        ]

    def _direct_rows(self, user_id: int) -> Iterator[dict]:
        return (
            Message.objects.filter(group__isnull=True)
            .filter(Q(sender_id=user_id) | Q(receiver_id=user_id))
            .order_by("-timestamp", "-id")
            .values(
                "sender_id",
                "receiver_id",
                "content",
                "file_name",
                "status",
                "timestamp",
            )
            .iterator()
        )

    # Async variants used by the realtime pipeline -----------------------------
    acreate = database_sync_to_async(create)
    aget = database_sync_to_async(get)
    amark_read = database_sync_to_async(mark_read)
    amark_conversation_read = database_sync_to_async(mark_conversation_read)
