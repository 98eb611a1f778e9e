"""Socket.IO event handlers for chat, presence and read receipts.

The gateway owns no state: it authenticates connections, parses raw payloads
into typed events and hands them to the registry and the delivery pipeline.
Domain errors become an ``error`` event on the offending connection.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any
from urllib.parse import parse_qs

from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import TokenError

from hr_connect.realtime.errors import AuthorizationError
from hr_connect.realtime.errors import RealtimeError
from hr_connect.realtime.errors import ValidationError
from hr_connect.realtime.events import protocol
from hr_connect.realtime.events.chat import ERROR

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Awaitable
    from collections.abc import Callable

    from hr_connect.realtime.directory import Directory
    from hr_connect.realtime.pipeline import DeliveryPipeline
    from hr_connect.realtime.registry import SessionRegistry

logger = logging.getLogger(__name__)


def extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Extract the JWT from the Socket.IO handshake.

    Handles python-socketio environ shapes across ASGI/WSGI servers, then
    falls back to ``auth: { token }``.
    """

    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    return None


class ChatGateway:
    def __init__(
        self,
        *,
        registry: SessionRegistry,
        pipeline: DeliveryPipeline,
        directory: Directory,
        authenticate_token: Callable[[str], Awaitable[int]],
    ):
        self.registry = registry
        self.pipeline = pipeline
        self.directory = directory
        self.router = pipeline.router
        self.authenticate_token = authenticate_token

    def register(self, sio) -> None:
        sio.on("connect", self.on_connect)
        sio.on("disconnect", self.on_disconnect)
        sio.on(protocol.AUTHENTICATE, self.on_authenticate)
        sio.on(protocol.JOIN_ROOM, self.on_join_room)
        sio.on(protocol.LEAVE_ROOM, self.on_leave_room)
        sio.on(protocol.SEND_MESSAGE, self.on_send_message)
        sio.on(protocol.TYPING, self.on_typing)
        sio.on(protocol.MESSAGE_READ, self.on_message_read)

    # Connection lifecycle ---------------------------------------------------
    async def on_connect(self, sid: str, environ: dict[str, Any], auth: Any = None):
        token = extract_token(environ, auth)
        if not token:
            msg = "unauthorized"
            raise ConnectionRefusedError(msg)

        try:
            user_id = await self.authenticate_token(token)
        except TokenError as exc:
            # Frontend expects this exact string to trigger refresh.
            if "expired" in str(exc).lower():
                msg = "jwt_expired"
                raise ConnectionRefusedError(msg) from exc
            msg = "unauthorized"
            raise ConnectionRefusedError(msg) from exc
        except AuthenticationFailed as exc:  # user not found / inactive, etc.
            msg = "unauthorized"
            raise ConnectionRefusedError(msg) from exc
        except Exception as exc:
            logger.exception("Socket.IO connect error")
            msg = "server_error"
            raise ConnectionRefusedError(msg) from exc

        await self._bind(sid, user_id)

    async def on_disconnect(self, sid: str, reason: Any = None):
        logger.debug("Socket %s disconnected (%s)", sid, reason)
        await self.registry.disconnect(sid)

    async def _bind(self, sid: str, user_id: int) -> None:
        group_ids = await self.directory.group_ids_for_user(user_id)
        await self.registry.authenticate(
            sid,
            user_id,
            rooms=[self.router.room_for_chat_group(gid) for gid in group_ids],
        )

    # Client events ----------------------------------------------------------
    async def on_authenticate(self, sid: str, data: Any = None):
        async def handle():
            event = protocol.parse_event(protocol.AUTHENTICATE, data)
            bound = self.registry.user_for(sid)
            # The handshake token already bound the connection; the explicit
            # event may only confirm that identity.
            if bound is None or bound != event.user_id:
                msg = "userId does not match the authenticated user."
                raise ValidationError(msg)
            await self._bind(sid, bound)

        await self._guard(sid, protocol.AUTHENTICATE, handle)

    async def on_join_room(self, sid: str, data: Any = None):
        async def handle():
            event = protocol.parse_event(protocol.JOIN_ROOM, data)
            room = await self._authorized_room(sid, event.room_id)
            self.registry.join_room(sid, room)
            logger.info("Socket %s joined room %s", sid, room)

        await self._guard(sid, protocol.JOIN_ROOM, handle)

    async def on_leave_room(self, sid: str, data: Any = None):
        async def handle():
            event = protocol.parse_event(protocol.LEAVE_ROOM, data)
            room = self._normalize_room(event.room_id)
            self.registry.leave_room(sid, room)
            logger.info("Socket %s left room %s", sid, room)

        await self._guard(sid, protocol.LEAVE_ROOM, handle)

    async def on_send_message(self, sid: str, data: Any = None):
        async def handle():
            command = protocol.parse_event(protocol.SEND_MESSAGE, data)
            # One connection's messages are stored in the order received.
            async with self.registry.ordering_lock(sid):
                await self.pipeline.send_message(command, origin_sid=sid)

        await self._guard(sid, protocol.SEND_MESSAGE, handle)

    async def on_typing(self, sid: str, data: Any = None):
        async def handle():
            command = protocol.parse_event(protocol.TYPING, data)
            await self.pipeline.typing(command, origin_sid=sid)

        await self._guard(sid, protocol.TYPING, handle)

    async def on_message_read(self, sid: str, data: Any = None):
        async def handle():
            event = protocol.parse_event(protocol.MESSAGE_READ, data)
            await self.pipeline.mark_read(
                event.message_id, reader_id=event.reader_id, origin_sid=sid
            )

        await self._guard(sid, protocol.MESSAGE_READ, handle)

    # Helpers ----------------------------------------------------------------
    def _normalize_room(self, raw: str) -> str:
        try:
            return self.router.normalize_room(raw)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    async def _authorized_room(self, sid: str, raw: str) -> str:
        user_id = self.registry.user_for(sid)
        if user_id is None:
            msg = "Connection is not authenticated."
            raise ValidationError(msg)
        room = self._normalize_room(raw)
        # Other users' personal rooms and foreign groups are off limits.
        owner = self.router.user_id_for_room(room)
        if owner is not None and owner != user_id:
            msg = "Cannot join another user's room."
            raise AuthorizationError(msg)
        group_id = self.router.group_id_for_room(room)
        if group_id is not None:
            group = await self.directory.get_group(group_id)
            if not group.is_member(user_id):
                msg = "You are not a member of this group."
                raise AuthorizationError(msg)
        return room

    async def _guard(self, sid: str, event: str, handle) -> None:
        try:
            await handle()
        except RealtimeError as exc:
            logger.warning("Rejected %s from %s: %s", event, sid, exc.message)
            await self.registry.emit_to_sid(sid, ERROR, exc.as_payload())
        except Exception:
            logger.exception("Error handling %s from %s", event, sid)
            await self.registry.emit_to_sid(
                sid, ERROR, RealtimeError("Failed to process event.").as_payload()
            )
