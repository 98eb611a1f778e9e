"""Read-only lookups the messaging core needs from the rest of the system.

The pipeline never touches the user or group tables directly; it asks the
directory for immutable snapshots taken at call time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async
from django.contrib.auth import get_user_model

from hr_connect.realtime.errors import NotFoundError

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable


@dataclass(frozen=True)
class UserInfo:
    id: int
    display_name: str
    push_token: str = ""
    department_id: int | None = None


@dataclass(frozen=True)
class GroupInfo:
    id: int
    name: str
    member_ids: frozenset[int]

    def is_member(self, user_id: int) -> bool:
        return int(user_id) in self.member_ids


def _user_info(user) -> UserInfo:
    return UserInfo(
        id=int(user.id),
        display_name=user.name or user.username,
        push_token=user.push_token or "",
        department_id=user.department_id,
    )


class Directory:
    @database_sync_to_async
    def get_user(self, user_id: int) -> UserInfo:
        user = get_user_model().objects.filter(pk=user_id, is_active=True).first()
        if user is None:
            msg = f"Unknown user {user_id}."
            raise NotFoundError(msg)
        return _user_info(user)

    @database_sync_to_async
    def get_users(self, user_ids: Iterable[int]) -> dict[int, UserInfo]:
        users = get_user_model().objects.filter(pk__in=list(user_ids), is_active=True)
        return {int(u.id): _user_info(u) for u in users}

    @database_sync_to_async
    def get_group(self, group_id: int) -> GroupInfo:
        from hr_connect.chat.models import ChatGroup  # noqa: PLC0415

        group = ChatGroup.objects.filter(pk=group_id, is_active=True).first()
        if group is None:
            msg = f"Unknown chat group {group_id}."
            raise NotFoundError(msg)
        return GroupInfo(
            id=int(group.id),
            name=group.name,
            member_ids=frozenset(group.members.values_list("id", flat=True)),
        )

    @database_sync_to_async
    def group_ids_for_user(self, user_id: int) -> list[int]:
        from hr_connect.chat.models import ChatGroup  # noqa: PLC0415

        return list(
            ChatGroup.objects.filter(members=user_id, is_active=True)
            .order_by("id")
            .values_list("id", flat=True)
        )
