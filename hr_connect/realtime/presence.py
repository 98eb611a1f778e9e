"""Typing indicators: a stateless relay, best effort, never persisted.

Online/offline presence is emitted by ``SessionRegistry`` itself on connect
and disconnect.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hr_connect.realtime.events.chat import USER_TYPING
from hr_connect.realtime.events.chat import build_typing_payload

if TYPE_CHECKING:  # import for type checking only
    from hr_connect.realtime.registry import SessionRegistry
    from hr_connect.realtime.router import RoomRouter


class PresenceBroadcaster:
    def __init__(self, registry: SessionRegistry, router: RoomRouter):
        self.registry = registry
        self.router = router

    async def typing(
        self,
        sender_id: int,
        *,
        is_typing: bool,
        receiver_id: int | None = None,
        group_id: int | None = None,
        origin_sid: str | None = None,
    ) -> int:
        payload = build_typing_payload(sender_id, is_typing=is_typing)
        if group_id is not None:
            # Everyone in the group room but the typing connection itself.
            return await self.registry.emit_to_room(
                self.router.room_for_chat_group(group_id),
                USER_TYPING,
                payload,
                skip_sid=origin_sid,
            )
        if receiver_id is None:
            return 0
        return await self.registry.emit_to_room(
            self.router.room_for_user(receiver_id), USER_TYPING, payload
        )
