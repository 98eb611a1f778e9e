"""Global Socket.IO server for the frontend.

One server instance carries chat, presence, read receipts and notification
events. This module only wires things together: the registry, pipeline and
gateway hold the behaviour and are built here once per process.

Frontend convention:
- URL base: ws://<host>:8000
- Socket.IO path: settings.REALTIME_SOCKETIO_PATH (default /ws/chat/)
- Auth: `query.token` or `auth.token` (JWT access token)
"""

from __future__ import annotations

import logging
from typing import Any

import socketio
from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from django.conf import settings
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.tokens import AccessToken

from hr_connect.chat.store import MessageStore
from hr_connect.notifications.push import get_push_provider
from hr_connect.realtime.directory import Directory
from hr_connect.realtime.gateway import ChatGateway
from hr_connect.realtime.pipeline import DeliveryPipeline
from hr_connect.realtime.registry import SessionRegistry
from hr_connect.realtime.router import RoomRouter
from hr_connect.realtime.router import room_for_chat_group
from hr_connect.realtime.router import room_for_user

logger = logging.getLogger(__name__)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.REALTIME_CORS_ALLOWED_ORIGINS,
    logger=False,
    engineio_logger=False,
)


@database_sync_to_async
def user_id_from_access_token(token: str) -> int:
    jwt_auth = JWTAuthentication()
    # AccessToken raises TokenError itself, so expiry stays distinguishable.
    validated = AccessToken(token)
    user = jwt_auth.get_user(validated)
    return int(user.id)


registry = SessionRegistry(transport=sio)
directory = Directory()
pipeline = DeliveryPipeline(
    store=MessageStore(),
    registry=registry,
    directory=directory,
    push_provider=get_push_provider(),
    router=RoomRouter(),
    push_body_limit=settings.CHAT_PUSH_BODY_LIMIT,
)
gateway = ChatGateway(
    registry=registry,
    pipeline=pipeline,
    directory=directory,
    authenticate_token=user_id_from_access_token,
)
gateway.register(sio)


def emit_event_to_room(room: str, event: str, payload: dict[str, Any]) -> None:
    """Emit an event to a room from sync Django code."""

    async_to_sync(registry.emit_to_room)(room, event, payload)


def emit_event_to_user(user_id: int, event: str, payload: dict[str, Any]) -> None:
    emit_event_to_room(room_for_user(user_id), event, payload)


def emit_event_to_chat_group(group_id: int, event: str, payload: dict[str, Any]) -> None:
    emit_event_to_room(room_for_chat_group(group_id), event, payload)


async def _join_user(user_id: int, room: str) -> int:
    return registry.join_user_to_room(user_id, room)


async def _remove_user(user_id: int, room: str) -> int:
    return registry.remove_user_from_room(user_id, room)


def add_user_to_chat_group_room(user_id: int, group_id: int) -> None:
    """Subscribe a user's live connections to a group they just joined."""

    # Registry state belongs to the event loop; mutate it there.
    async_to_sync(_join_user)(user_id, room_for_chat_group(group_id))


def remove_user_from_chat_group_room(user_id: int, group_id: int) -> None:
    async_to_sync(_remove_user)(user_id, room_for_chat_group(group_id))
