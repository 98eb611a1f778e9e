"""In-process registry of live Socket.IO connections.

The registry is the single source of truth for presence and room membership.
It keeps explicit subscriber sets per room and emits through a transport, so
delivery fan-out can be exercised without a network layer.

All mutating methods run without awaiting between reads and writes, which makes
each of them atomic on the event loop. Presence is process-local: a restart
resets everyone to offline.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import TYPE_CHECKING
from typing import Any
from typing import Protocol

from hr_connect.realtime.errors import ValidationError
from hr_connect.realtime.router import room_for_user

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

EVENT_USER_ONLINE = "userOnline"
EVENT_USER_OFFLINE = "userOffline"


class Transport(Protocol):
    async def emit(self, event: str, data: Any = None, *, to: str | None = None): ...


class SessionRegistry:
    def __init__(self, transport: Transport):
        self.transport = transport
        self._user_by_sid: dict[str, int] = {}
        self._sids_by_user: dict[int, set[str]] = defaultdict(set)
        self._sids_by_room: dict[str, set[str]] = defaultdict(set)
        self._rooms_by_sid: dict[str, set[str]] = defaultdict(set)
        self._locks: dict[str, asyncio.Lock] = {}

    # Connection lifecycle ---------------------------------------------------
    async def authenticate(
        self,
        sid: str,
        user_id: int,
        rooms: Iterable[str] = (),
    ) -> bool:
        """Bind ``sid`` to ``user_id`` and join its personal room.

        Returns True when this connection made the user come online (in which
        case ``userOnline`` was broadcast to every other connection).
        """

        user_id = int(user_id)
        bound = self._user_by_sid.get(sid)
        if bound is not None and bound != user_id:
            msg = "Connection is already authenticated as another user."
            raise ValidationError(msg)

        came_online = not self._sids_by_user.get(user_id)
        self._user_by_sid[sid] = user_id
        self._sids_by_user[user_id].add(sid)
        self.join_room(sid, room_for_user(user_id))
        for room in rooms:
            self.join_room(sid, room)

        if bound is None:
            logger.info("User %s authenticated with socket %s", user_id, sid)
        if came_online:
            await self.broadcast(EVENT_USER_ONLINE, {"userId": user_id}, skip_sid=sid)
        return came_online

    async def disconnect(self, sid: str) -> int | None:
        """Forget ``sid``. Returns the user id when the user went offline."""

        for room in self._rooms_by_sid.pop(sid, set()):
            self._discard(self._sids_by_room, room, sid)
        self._locks.pop(sid, None)

        user_id = self._user_by_sid.pop(sid, None)
        if user_id is None:
            return None
        self._discard(self._sids_by_user, user_id, sid)
        if self._sids_by_user.get(user_id):
            return None

        logger.info("User %s went offline", user_id)
        await self.broadcast(EVENT_USER_OFFLINE, {"userId": user_id}, skip_sid=sid)
        return user_id

    # Rooms ------------------------------------------------------------------
    def join_room(self, sid: str, room: str) -> None:
        self._sids_by_room[room].add(sid)
        self._rooms_by_sid[sid].add(room)

    def leave_room(self, sid: str, room: str) -> None:
        self._discard(self._sids_by_room, room, sid)
        self._discard(self._rooms_by_sid, sid, room)

    def join_user_to_room(self, user_id: int, room: str) -> int:
        sids = self.connections_for(user_id)
        for sid in sids:
            self.join_room(sid, room)
        return len(sids)

    def remove_user_from_room(self, user_id: int, room: str) -> int:
        sids = self.connections_for(user_id)
        for sid in sids:
            self.leave_room(sid, room)
        return len(sids)

    # Lookups ----------------------------------------------------------------
    def connections_for(self, user_id: int) -> frozenset[str]:
        """Live connections of a user; unknown users simply have none."""

        return frozenset(self._sids_by_user.get(int(user_id), ()))

    def is_online(self, user_id: int) -> bool:
        return bool(self._sids_by_user.get(int(user_id)))

    def user_for(self, sid: str) -> int | None:
        return self._user_by_sid.get(sid)

    def members_of(self, room: str) -> frozenset[str]:
        return frozenset(self._sids_by_room.get(room, ()))

    def rooms_of(self, sid: str) -> frozenset[str]:
        return frozenset(self._rooms_by_sid.get(sid, ()))

    def online_user_ids(self) -> frozenset[int]:
        return frozenset(uid for uid, sids in self._sids_by_user.items() if sids)

    def connection_count(self) -> int:
        return len(self._user_by_sid)

    def ordering_lock(self, sid: str) -> asyncio.Lock:
        """Lock serialising the sends of a single connection."""

        lock = self._locks.get(sid)
        if lock is None:
            lock = self._locks[sid] = asyncio.Lock()
        return lock

    # Emission ---------------------------------------------------------------
    async def emit_to_sid(self, sid: str, event: str, payload: Any) -> int:
        # Gone connections are skipped; a disconnect mid-send is not an error.
        if sid not in self._user_by_sid:
            return 0
        await self.transport.emit(event, payload, to=sid)
        return 1

    async def emit_to_room(
        self,
        room: str,
        event: str,
        payload: Any,
        *,
        skip_sid: str | None = None,
        user_ids: Iterable[int] | None = None,
    ) -> int:
        """Emit to every connection in ``room``.

        ``user_ids`` restricts delivery to connections bound to those users.
        """

        allowed = None if user_ids is None else {int(u) for u in user_ids}
        sent = 0
        # Snapshot: the set may change while we await the transport.
        for sid in sorted(self.members_of(room)):
            if sid == skip_sid:
                continue
            if allowed is not None and self._user_by_sid.get(sid) not in allowed:
                continue
            sent += await self.emit_to_sid(sid, event, payload)
        return sent

    async def emit_to_user(self, user_id: int, event: str, payload: Any) -> int:
        return await self.emit_to_room(room_for_user(user_id), event, payload)

    async def broadcast(
        self,
        event: str,
        payload: Any,
        *,
        skip_sid: str | None = None,
    ) -> int:
        sent = 0
        for sid in sorted(self._user_by_sid):
            if sid == skip_sid:
                continue
            sent += await self.emit_to_sid(sid, event, payload)
        return sent

    @staticmethod
    def _discard(index: dict, key, value) -> None:
        values = index.get(key)
        if values is None:
            return
        values.discard(value)
        if not values:
            del index[key]
