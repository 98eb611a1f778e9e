"""Room naming and delivery target resolution.

Direct conversations have no shared room: a direct message goes to the
receiver's personal room and the confirmation goes back to the sending
connection. Group conversations use one room per chat group.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable

USER_ROOM_PREFIX = "user_"
CHAT_GROUP_ROOM_PREFIX = "chat_group_"


def room_for_user(user_id: int) -> str:
    return f"{USER_ROOM_PREFIX}{int(user_id)}"


def room_for_chat_group(group_id: int) -> str:
    return f"{CHAT_GROUP_ROOM_PREFIX}{int(group_id)}"


@dataclass(frozen=True)
class Route:
    rooms: tuple[str, ...]
    # Users that should get the message, sender excluded.
    target_user_ids: frozenset[int]
    is_group: bool


class RoomRouter:
    """Stateless resolution of message addressing to rooms and targets."""

    room_for_user = staticmethod(room_for_user)
    room_for_chat_group = staticmethod(room_for_chat_group)

    def normalize_room(self, raw: object) -> str:
        """Map a client supplied room id to a room name.

        Bare group ids (``12`` or ``"12"``) become chat group rooms; any other
        string is used as is.
        """

        if isinstance(raw, bool) or raw is None:
            msg = "roomId is required."
            raise ValueError(msg)
        if isinstance(raw, int):
            return room_for_chat_group(raw)
        value = str(raw).strip()
        if not value:
            msg = "roomId is required."
            raise ValueError(msg)
        if value.isdigit():
            return room_for_chat_group(int(value))
        return value

    def group_id_for_room(self, room: str) -> int | None:
        if not room.startswith(CHAT_GROUP_ROOM_PREFIX):
            return None
        suffix = room[len(CHAT_GROUP_ROOM_PREFIX) :]
        return int(suffix) if suffix.isdigit() else None

    def user_id_for_room(self, room: str) -> int | None:
        if not room.startswith(USER_ROOM_PREFIX):
            return None
        suffix = room[len(USER_ROOM_PREFIX) :]
        return int(suffix) if suffix.isdigit() else None

    def resolve(
        self,
        *,
        sender_id: int,
        receiver_id: int | None = None,
        group_id: int | None = None,
        member_ids: Iterable[int] = (),
    ) -> Route:
        if (receiver_id is None) == (group_id is None):
            msg = "Exactly one of receiver_id or group_id must be set."
            raise ValueError(msg)
        if group_id is not None:
            targets = frozenset(int(m) for m in member_ids) - {int(sender_id)}
            return Route(
                rooms=(room_for_chat_group(group_id),),
                target_user_ids=targets,
                is_group=True,
            )
        return Route(
            rooms=(room_for_user(receiver_id),),
            target_user_ids=frozenset({int(receiver_id)}),
            is_group=False,
        )
