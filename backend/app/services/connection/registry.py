"""
Presence & Room Registry

Thin wrapper over the Socket.IO server's room primitives. Besides forwarding
enter/leave/emit to the transport it keeps:
- sid -> ConnectionSession
- user_id -> sids (registration order, latest last)
- room -> sids (mirror of transport membership)

so reachability checks and room listings never scan every live connection.
This registry is the single source of truth for "is this user reachable".
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from app.config.constants import GROUP_ROOM_PREFIX, ROLE_PILGRIM, USER_ROOM_PREFIX

from .models import ConnectionSession

logger = logging.getLogger(__name__)


def room_for_user(user_id: str) -> str:
    return f"{USER_ROOM_PREFIX}{user_id}"


def room_for_group(group_id: str) -> str:
    return f"{GROUP_ROOM_PREFIX}{group_id}"


class RoomRegistry:
    """
    Tracks live connections, their identities and their rooms.

    Provides methods for:
    - Opening/binding/closing connection sessions
    - Joining and leaving rooms (idempotent)
    - Broadcasting to rooms and delivering to a single user or connection
    """

    def __init__(self, sio):
        self._sio = sio
        self._sessions: Dict[str, ConnectionSession] = {}
        self._user_sids: Dict[str, List[str]] = {}
        self._rooms: Dict[str, Set[str]] = {}
        self._lock = asyncio.Lock()

    # === Session lifecycle ===

    async def open_session(self, sid: str) -> ConnectionSession:
        async with self._lock:
            session = self._sessions.get(sid)
            if session is None:
                session = ConnectionSession(sid=sid)
                self._sessions[sid] = session
        logger.debug(f"[Registry] Session opened: {sid}")
        return session

    def get_session(self, sid: str) -> Optional[ConnectionSession]:
        return self._sessions.get(sid)

    async def bind_user(self, sid: str, user_id: str, role: str = ROLE_PILGRIM) -> ConnectionSession:
        """Attach an identity to a connection and join its personal room."""
        async with self._lock:
            session = self._sessions.get(sid)
            if session is None:
                session = ConnectionSession(sid=sid)
                self._sessions[sid] = session

            session.user_id = user_id
            session.role = role

            sids = self._user_sids.setdefault(user_id, [])
            if sid in sids:
                sids.remove(sid)
            sids.append(sid)

            await self._enter(sid, room_for_user(user_id))

        logger.info(f"[Registry] {sid} bound to user {user_id} ({role})")
        return session

    async def close_session(self, sid: str) -> Optional[ConnectionSession]:
        """Forget a connection: drop it from every room and from the user index."""
        async with self._lock:
            session = self._sessions.pop(sid, None)

            for room in [r for r, members in self._rooms.items() if sid in members]:
                members = self._rooms[room]
                members.discard(sid)
                if not members:
                    del self._rooms[room]

            if session and session.user_id:
                sids = self._user_sids.get(session.user_id, [])
                if sid in sids:
                    sids.remove(sid)
                if not sids:
                    self._user_sids.pop(session.user_id, None)

        logger.debug(f"[Registry] Session closed: {sid}")
        return session

    # === Rooms ===

    async def _enter(self, sid: str, room: str) -> bool:
        # Caller holds the lock
        members = self._rooms.setdefault(room, set())
        if sid in members:
            return False
        members.add(sid)
        await self._sio.enter_room(sid, room)
        return True

    async def join_room(self, sid: str, room: str) -> bool:
        """Join a room. Returns False if the connection was already a member."""
        async with self._lock:
            return await self._enter(sid, room)

    async def leave_room(self, sid: str, room: str) -> bool:
        """Leave a room. Returns False if the connection was not a member."""
        async with self._lock:
            members = self._rooms.get(room)
            if not members or sid not in members:
                return False
            members.discard(sid)
            if not members:
                del self._rooms[room]
            await self._sio.leave_room(sid, room)
            return True

    def list_sessions_in_room(self, room: str) -> List[ConnectionSession]:
        return [
            self._sessions[sid]
            for sid in self._rooms.get(room, ())
            if sid in self._sessions
        ]

    def is_in_room(self, sid: str, room: str) -> bool:
        return sid in self._rooms.get(room, ())

    # === Delivery ===

    async def broadcast_to_room(
        self,
        room: str,
        event: str,
        payload: Dict[str, Any],
        exclude_sid: Optional[str] = None
    ) -> int:
        """
        Emit an event to every connection in a room.

        Returns:
            Number of connections the event was addressed to
        """
        members = self._rooms.get(room, set())
        recipients = len(members) - (1 if exclude_sid in members else 0)
        if recipients <= 0:
            return 0

        await self._sio.emit(event, payload, room=room, skip_sid=exclude_sid)
        return recipients

    async def send_to_user(self, user_id: str, event: str, payload: Dict[str, Any]) -> bool:
        """Deliver to every live connection of a user via their personal room."""
        if not self.is_user_reachable(user_id):
            return False
        await self._sio.emit(event, payload, room=room_for_user(user_id))
        return True

    async def send_to_connection(self, sid: str, event: str, payload: Dict[str, Any]) -> bool:
        if sid not in self._sessions:
            return False
        await self._sio.emit(event, payload, to=sid)
        return True

    # === Query Methods ===

    def is_user_reachable(self, user_id: str) -> bool:
        """A user is reachable while their personal room has a live member."""
        return bool(user_id) and bool(self._rooms.get(room_for_user(user_id)))

    def find_connection_by_user_id(self, user_id: str) -> Optional[ConnectionSession]:
        """The most recently registered live connection of a user."""
        sids = self._user_sids.get(user_id)
        if not sids:
            return None
        return self._sessions.get(sids[-1])

    def find_connections_by_user_id(self, user_id: str) -> List[ConnectionSession]:
        return [self._sessions[sid] for sid in self._user_sids.get(user_id, []) if sid in self._sessions]

    def get_total_connections(self) -> int:
        return len(self._sessions)

    def get_registered_user_count(self) -> int:
        return len(self._user_sids)

    def get_room_count(self) -> int:
        return len(self._rooms)
