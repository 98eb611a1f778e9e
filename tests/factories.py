from __future__ import annotations

from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group

from hr_connect.chat.models import ChatGroup

if TYPE_CHECKING:
    from collections.abc import Iterable

    from hr_connect.org.models import Department

User = get_user_model()


def ensure_groups(names: Iterable[str]) -> None:
    for name in names:
        Group.objects.get_or_create(name=name)


def create_user(  # noqa: PLR0913
    username: str,
    *,
    groups: Iterable[str] | None = None,
    is_staff: bool = False,
    department: Department | None = None,
    push_token: str = "",
    first_name: str = "",
    last_name: str = "",
):
    ensure_groups(groups or [])
    user = User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="TestPass123!",  # noqa: S106
        first_name=first_name,
        last_name=last_name,
        is_staff=is_staff,
        department=department,
        push_token=push_token,
    )
    for group_name in groups or []:
        user.groups.add(Group.objects.get(name=group_name))
    return user


def create_chat_group(name: str, *, creator, members=()) -> ChatGroup:
    group = ChatGroup.objects.create(name=name, created_by=creator)
    group.members.add(creator, *members)
    group.admins.add(creator)
    return group
