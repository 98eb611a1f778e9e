"""Message delivery: persist, broadcast, then push to whoever is offline.

Ordering of effects for one message:

1. validate the command (no side effects on failure);
2. persist it with status ``sent`` and the server clock as timestamp;
3. resolve targets from the group's member list *at send time*;
4. emit ``receiveMessage``;
5. push to targets with no live connection.

A persistence failure stops everything before step 4. Push failures are
logged and swallowed: the message is already stored and broadcast.

Group and direct messages are echoed differently on purpose. A group message
is emitted to the whole group room, so the sender's own connections get it
back with the server id. A direct message goes to the receiver's personal
room only, and the sending connection alone gets ``messageSent``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING

from hr_connect.chat.models import Message
from hr_connect.notifications.push import unique_tokens
from hr_connect.realtime.errors import AuthorizationError
from hr_connect.realtime.errors import NotificationDeliveryError
from hr_connect.realtime.errors import ValidationError
from hr_connect.realtime.events.chat import MESSAGE_SENT
from hr_connect.realtime.events.chat import MESSAGE_STATUS_UPDATE
from hr_connect.realtime.events.chat import RECEIVE_MESSAGE
from hr_connect.realtime.events.chat import build_message_payload
from hr_connect.realtime.events.chat import build_status_payload
from hr_connect.realtime.presence import PresenceBroadcaster
from hr_connect.realtime.router import RoomRouter

if TYPE_CHECKING:  # import for type checking only
    from typing import Any

    from hr_connect.chat.store import MessageStore
    from hr_connect.chat.store import StatusChange
    from hr_connect.notifications.push import BasePushProvider
    from hr_connect.notifications.push import PushResult
    from hr_connect.realtime.directory import Directory
    from hr_connect.realtime.directory import GroupInfo
    from hr_connect.realtime.directory import UserInfo
    from hr_connect.realtime.events.protocol import SendMessage
    from hr_connect.realtime.events.protocol import Typing
    from hr_connect.realtime.registry import SessionRegistry
    from hr_connect.realtime.router import Route

logger = logging.getLogger(__name__)

DEFAULT_PUSH_BODY_LIMIT = 100


@dataclass(frozen=True)
class Delivery:
    message_id: int
    payload: dict[str, Any]
    route: Route
    emitted: int
    offline_user_ids: frozenset[int]
    push_results: tuple[PushResult, ...] = field(default=())


def truncate_body(text: str, limit: int = DEFAULT_PUSH_BODY_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."


class DeliveryPipeline:
    def __init__(  # noqa: PLR0913
        self,
        *,
        store: MessageStore,
        registry: SessionRegistry,
        directory: Directory,
        push_provider: BasePushProvider,
        router: RoomRouter | None = None,
        push_body_limit: int = DEFAULT_PUSH_BODY_LIMIT,
    ):
        self.store = store
        self.registry = registry
        self.directory = directory
        self.push_provider = push_provider
        self.router = router or RoomRouter()
        self.presence = PresenceBroadcaster(registry, self.router)
        self.push_body_limit = push_body_limit

    # Send ----------------------------------------------------------------------
    async def send_message(
        self,
        command: SendMessage,
        *,
        origin_sid: str | None = None,
    ) -> Delivery:
        sender_id = self._resolve_actor(command.sender_id, origin_sid, "senderId")
        self._validate_send(command)

        sender = await self.directory.get_user(sender_id)
        group: GroupInfo | None = None
        if command.group_id is not None:
            group = await self.directory.get_group(command.group_id)
            if not group.is_member(sender_id):
                msg = "You are not a member of this group."
                raise AuthorizationError(msg)
        else:
            # Unknown receivers are rejected before anything is stored.
            await self.directory.get_user(command.receiver_id)

        message = await self.store.acreate(
            sender_id=sender_id,
            receiver_id=command.receiver_id,
            group_id=command.group_id,
            content=command.content,
            file_url=command.file_url,
            file_name=command.file_name,
            file_type=command.file_type,
            client_timestamp=command.client_timestamp,
        )

        route = self.router.resolve(
            sender_id=sender_id,
            receiver_id=message.receiver_id,
            group_id=message.group_id,
            member_ids=group.member_ids if group else (),
        )
        payload = build_message_payload(message, sender.display_name)
        emitted = await self._broadcast(route, payload, sender_id, origin_sid, group)

        offline = frozenset(
            uid for uid in route.target_user_ids if not self.registry.is_online(uid)
        )
        push_results = await self._fan_out(message, sender, group, offline)
        logger.info(
            "Message %s sent from %s to %s (%s emits, %s offline)",
            message.id,
            sender_id,
            f"group {message.group_id}" if group else f"user {message.receiver_id}",
            emitted,
            len(offline),
        )
        return Delivery(
            message_id=message.id,
            payload=payload,
            route=route,
            emitted=emitted,
            offline_user_ids=offline,
            push_results=tuple(push_results),
        )

    def _validate_send(self, command: SendMessage) -> None:
        if (command.receiver_id is None) == (command.group_id is None):
            msg = "Provide exactly one of receiverId, groupId."
            raise ValidationError(msg)
        if not command.content.strip() and not command.file_url:
            msg = "Message content or an attachment is required."
            raise ValidationError(msg)

    async def _broadcast(
        self,
        route: Route,
        payload: dict[str, Any],
        sender_id: int,
        origin_sid: str | None,
        group: GroupInfo | None,
    ) -> int:
        (room,) = route.rooms
        if group is not None:
            # Sender included: their connections get the confirmed echo.
            return await self.registry.emit_to_room(
                room,
                RECEIVE_MESSAGE,
                payload,
                user_ids=group.member_ids | {sender_id},
            )
        emitted = await self.registry.emit_to_room(room, RECEIVE_MESSAGE, payload)
        if origin_sid is not None:
            emitted += await self.registry.emit_to_sid(origin_sid, MESSAGE_SENT, payload)
        return emitted

    async def _fan_out(
        self,
        message: Message,
        sender: UserInfo,
        group: GroupInfo | None,
        offline_user_ids: frozenset[int],
    ) -> list[PushResult]:
        if not offline_user_ids:
            return []
        try:
            users = await self.directory.get_users(offline_user_ids)
            tokens = unique_tokens(
                users[uid].push_token for uid in sorted(offline_user_ids) if uid in users
            )
            if not tokens:
                return []
            title = (
                f"New message in {group.name}"
                if group is not None
                else f"New message from {sender.display_name}"
            )
            body = truncate_body(
                message.content or f"Sent a file: {message.file_name or 'attachment'}",
                self.push_body_limit,
            )
            data = {
                "type": "chat",
                "chatId": group.id if group is not None else sender.id,
                "isGroup": "true" if group is not None else "false",
                "messageId": message.id,
            }
            return await self.push_provider.asend_to_tokens(tokens, title, body, data)
        except NotificationDeliveryError as exc:
            logger.warning("Push delivery failed for message %s: %s", message.id, exc)
        except Exception:  # noqa: BLE001 - push must never fail a send
            logger.exception("Failed to send push notification for message %s", message.id)
        return []

    # Read status ---------------------------------------------------------------
    async def mark_read(
        self,
        message_id: int,
        *,
        reader_id: int | None = None,
        origin_sid: str | None = None,
    ) -> bool:
        """``sent -> read``. Returns False (and emits nothing) if already read."""

        reader_id = self._resolve_actor(reader_id, origin_sid, "readerId")
        message = await self.store.aget(message_id)
        await self._check_can_read(message, reader_id)

        changed = await self.store.amark_read(message.id)
        if changed:
            await self._emit_status(message.id, message.sender_id)
        return changed

    async def mark_conversation_read(
        self,
        reader_id: int,
        *,
        counterpart_id: int | None = None,
        group_id: int | None = None,
    ) -> list[StatusChange]:
        if (counterpart_id is None) == (group_id is None):
            msg = "Provide exactly one of counterpart or group."
            raise ValidationError(msg)
        if group_id is not None:
            group = await self.directory.get_group(group_id)
            if not group.is_member(reader_id):
                msg = "You are not a member of this group."
                raise AuthorizationError(msg)

        changes = await self.store.amark_conversation_read(
            reader_id, counterpart_id=counterpart_id, group_id=group_id
        )
        for change in changes:
            await self._emit_status(change.message_id, change.sender_id)
        return changes

    async def _check_can_read(self, message: Message, reader_id: int) -> None:
        if message.sender_id == reader_id:
            msg = "Senders cannot mark their own message as read."
            raise AuthorizationError(msg)
        if message.group_id is None:
            if message.receiver_id != reader_id:
                msg = "Only the receiver can mark this message as read."
                raise AuthorizationError(msg)
            return
        group = await self.directory.get_group(message.group_id)
        if not group.is_member(reader_id):
            msg = "You are not a member of this group."
            raise AuthorizationError(msg)

    async def _emit_status(self, message_id: int, sender_id: int) -> None:
        await self.registry.emit_to_user(
            sender_id,
            MESSAGE_STATUS_UPDATE,
            build_status_payload(message_id, Message.Status.READ.value),
        )

    # Typing --------------------------------------------------------------------
    async def typing(self, command: Typing, *, origin_sid: str | None = None) -> int:
        sender_id = self._resolve_actor(command.sender_id, origin_sid, "senderId")
        if command.group_id is not None:
            group = await self.directory.get_group(command.group_id)
            if not group.is_member(sender_id):
                msg = "You are not a member of this group."
                raise AuthorizationError(msg)
        return await self.presence.typing(
            sender_id,
            is_typing=command.is_typing,
            receiver_id=command.receiver_id,
            group_id=command.group_id,
            origin_sid=origin_sid,
        )

    # Helpers -------------------------------------------------------------------
    def _resolve_actor(
        self,
        claimed: int | None,
        origin_sid: str | None,
        field_name: str,
    ) -> int:
        """The acting user: the connection's user, or ``claimed`` off-socket."""

        if origin_sid is None:
            if claimed is None:
                msg = f"{field_name} is required."
                raise ValidationError(msg)
            return int(claimed)

        bound = self.registry.user_for(origin_sid)
        if bound is None:
            msg = "Connection is not authenticated."
            raise ValidationError(msg)
        if claimed is not None and int(claimed) != bound:
            msg = f"{field_name} does not match the authenticated user."
            raise ValidationError(msg)
        return bound
