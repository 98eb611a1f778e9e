"""Chat group membership.

Membership lives in the database; live connections are subscribed to (or
dropped from) the group room once the change has committed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError
from django.db import transaction

from hr_connect.chat.models import ChatGroup

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable

    from hr_connect.org.models import Department

logger = logging.getLogger(__name__)


def _sync_rooms(group_id: int, joined: Iterable[int] = (), left: Iterable[int] = ()):
    from hr_connect.realtime.socketio import add_user_to_chat_group_room  # noqa: PLC0415
    from hr_connect.realtime.socketio import remove_user_from_chat_group_room  # noqa: PLC0415

    joined, left = list(joined), list(left)

    def apply():
        for user_id in joined:
            add_user_to_chat_group_room(user_id, group_id)
        for user_id in left:
            remove_user_from_chat_group_room(user_id, group_id)

    transaction.on_commit(apply)


def add_members(group: ChatGroup, user_ids: Iterable[int]) -> list[int]:
    """Add users to ``group``; returns the ids that were not members yet."""

    wanted = set(user_ids)
    existing = set(group.members.filter(pk__in=wanted).values_list("id", flat=True))
    added = sorted(wanted - existing)
    if added:
        group.members.add(*added)
        _sync_rooms(group.id, joined=added)
        logger.info("Added users %s to chat group %s", added, group.id)
    return added


def remove_member(group: ChatGroup, user_id: int) -> bool:
    if not group.is_member(user_id):
        return False
    group.members.remove(user_id)
    group.admins.remove(user_id)
    _sync_rooms(group.id, left=[user_id])
    logger.info("Removed user %s from chat group %s", user_id, group.id)
    return True


def ensure_department_group(department: Department) -> ChatGroup:
    """Get or create the chat group of ``department`` with all its users in it."""

    with transaction.atomic():
        group, created = ChatGroup.objects.get_or_create(
            type=ChatGroup.Type.DEPARTMENT,
            department=department,
            defaults={
                "name": department.name,
                "description": department.chat_group_description,
            },
        )
        add_members(group, department.active_member_ids())
    if created:
        logger.info("Created chat group %s for department %s", group.id, department.id)
    return group


def create_department_group(
    department: Department,
    creator,
    *,
    name: str = "",
    description: str = "",
) -> ChatGroup:
    """Create the chat group of ``department`` explicitly, with ``creator`` as admin."""

    if ChatGroup.objects.filter(
        type=ChatGroup.Type.DEPARTMENT, department=department
    ).exists():
        msg = "A group for this department already exists."
        raise ValidationError(msg)

    with transaction.atomic():
        group = ChatGroup.objects.create(
            type=ChatGroup.Type.DEPARTMENT,
            department=department,
            name=name or department.name,
            description=description or department.chat_group_description,
            created_by=creator,
        )
        group.admins.add(creator)
        add_members(group, [creator.pk, *department.active_member_ids()])
    logger.info(
        "User %s created chat group %s for department %s",
        creator.pk,
        group.id,
        department.id,
    )
    return group


def sync_department_membership(user) -> None:
    """Keep ``user`` in exactly the chat group of their current department."""

    current = user.department_id if user.is_active else None
    stale = ChatGroup.objects.filter(type=ChatGroup.Type.DEPARTMENT, members=user)
    if current is not None:
        stale = stale.exclude(department_id=current)
    for group in stale:
        remove_member(group, user.pk)

    if current is None:
        return
    group = ChatGroup.objects.filter(
        type=ChatGroup.Type.DEPARTMENT, department_id=current
    ).first()
    if group is None:
        ensure_department_group(user.department)
    else:
        add_members(group, [user.pk])
