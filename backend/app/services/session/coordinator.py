"""
Session Coordinator

Owns the lifecycle of every Socket.IO connection and arbitrates each
real-time event:
- Identity registration and presence
- Group room membership and presence broadcasts
- Location / SOS fan-out
- Moderator navigation beacons (with replay to late joiners)
- Call signaling (delegated to CallSignaling)
- Cleanup on disconnect

Handlers never raise: a bad payload or a failing store is logged and the
connection keeps running.
"""
import logging
from typing import Any, Dict, Optional

from app.config.constants import (
    EVENT_BATTERY_UPDATE,
    EVENT_LOCATION_UPDATE,
    EVENT_NAV_BEACON,
    EVENT_SOS_ALERT_CANCELLED,
    EVENT_SOS_ALERT_RECEIVED,
    EVENT_STATUS_UPDATE,
    ROLE_PILGRIM,
    ROLE_STAFF,
)
from app.models.database import utcnow
from app.services.call import CallRecordStore
from app.services.connection import (
    ConnectionSession,
    NavBeacon,
    RoomRegistry,
    nav_beacon_payload,
    room_for_group,
)
from app.services.directory import DirectoryService
from app.services.push import PushDispatcher
from app.services.status_service import StatusService

from .signaling import CallSignaling

logger = logging.getLogger(__name__)


def normalize_role(role: Optional[str]) -> str:
    """Clients send 'pilgrim', 'moderator', 'admin'... the core only needs two classes."""
    if not role or role == ROLE_PILGRIM:
        return ROLE_PILGRIM
    return ROLE_STAFF


class SessionCoordinator:
    """Per-connection state machine binding transport connections to users."""

    def __init__(
        self,
        registry: RoomRegistry,
        directory: DirectoryService,
        status_service: StatusService,
        call_store: CallRecordStore,
        push: PushDispatcher,
        clock=utcnow,
    ):
        self.registry = registry
        self.status_service = status_service
        self._now = clock
        self.signaling = CallSignaling(registry, directory, call_store, push, clock)

    def _status_payload(self, user_id: str, active: bool) -> Dict[str, Any]:
        return {
            "pilgrimId": user_id,
            "active": active,
            "last_active_at": self._now().isoformat(),
        }

    def _registered(self, sid: str, event: str) -> Optional[ConnectionSession]:
        session = self.registry.get_session(sid)
        if session is None or not session.is_registered:
            logger.warning(f"[Session] {event} from unregistered connection {sid} ignored")
            return None
        return session

    # === Connection lifecycle ===

    async def connect(self, sid: str) -> ConnectionSession:
        logger.info(f"[Session] User connected: {sid}")
        return await self.registry.open_session(sid)

    async def register(self, sid: str, user_id: str, role: Optional[str] = None):
        """Bind identity to the connection, join the personal room, mark online."""
        if not user_id:
            return

        session = self.registry.get_session(sid) or await self.registry.open_session(sid)
        if session.user_id and session.user_id != user_id:
            logger.warning(
                f"[Session] {sid} already registered as {session.user_id}, ignoring register as {user_id}"
            )
            return

        role = normalize_role(role)
        await self.registry.bind_user(sid, user_id, role)
        logger.info(f"[Session] User registered: {user_id} ({role}) -> {sid}")

        try:
            await self.status_service.set_user_online(user_id, role)
        except Exception as e:
            logger.error(f"[Session] Error updating active status (connect) for {user_id}: {e}")

    async def disconnect(self, sid: str, reason: Optional[str] = None):
        """
        Cleanup in order: beacon retraction, presence offline, group status_update.
        Each step runs even if an earlier one failed. A call in progress is left
        as-is.
        """
        session = self.registry.get_session(sid)
        logger.info(f"[Session] User disconnected: {sid} (Reason: {reason})")
        if session is None:
            return

        try:
            if session.nav_beacon:
                beacon = session.nav_beacon
                session.nav_beacon = None
                await self._retract_beacon(sid, beacon)
                logger.info(f"[Session] Beacon for group {beacon.group_id} retracted on disconnect")
        except Exception as e:
            logger.error(f"[Session] Error retracting beacon for {sid}: {e}")

        if session.user_id:
            try:
                await self.status_service.set_user_offline(session.user_id, session.role)
            except Exception as e:
                logger.error(f"[Session] Error updating active status (disconnect) for {session.user_id}: {e}")

            if session.current_group_id:
                try:
                    await self.registry.broadcast_to_room(
                        room_for_group(session.current_group_id),
                        EVENT_STATUS_UPDATE,
                        self._status_payload(session.user_id, False),
                        exclude_sid=sid,
                    )
                except Exception as e:
                    logger.error(f"[Session] Error broadcasting offline status for {session.user_id}: {e}")

        await self.registry.close_session(sid)

    # === Groups ===

    async def join_group(self, sid: str, group_id: str):
        if not group_id:
            return

        session = self.registry.get_session(sid) or await self.registry.open_session(sid)
        room = room_for_group(group_id)
        await self.registry.join_room(sid, room)
        session.current_group_id = group_id
        logger.info(f"[Session] User {sid} joined {room}")

        if session.is_registered:
            await self.registry.broadcast_to_room(room, EVENT_STATUS_UPDATE, self._status_payload(session.user_id, True))

        # Replay beacons already live in this group so the joiner doesn't wait for the next tick
        for other in self.registry.list_sessions_in_room(room):
            beacon = other.nav_beacon
            if other.sid != sid and beacon and beacon.group_id == group_id:
                await self.registry.send_to_connection(sid, EVENT_NAV_BEACON, beacon.to_payload())

    async def leave_group(self, sid: str, group_id: str):
        # current_group_id is kept: only disconnect cleans up presence
        if not group_id:
            return
        room = room_for_group(group_id)
        if await self.registry.leave_room(sid, room):
            logger.info(f"[Session] User {sid} left {room}")

    # === Fan-out ===

    async def relay_location(self, sid: str, payload: Dict[str, Any]):
        group_id = payload.get("groupId")
        if not group_id:
            return

        await self.registry.broadcast_to_room(room_for_group(group_id), EVENT_LOCATION_UPDATE, payload, exclude_sid=sid)

        battery = payload.get("battery_percent")
        subject_id = payload.get("pilgrimId")
        if battery is not None and subject_id:
            await self.registry.send_to_user(subject_id, EVENT_BATTERY_UPDATE, {
                "battery_percent": battery,
                "pilgrimId": subject_id,
            })

    async def relay_sos(self, sid: str, payload: Dict[str, Any]):
        group_id = payload.get("groupId")
        if not group_id:
            return
        # Whole room, sender included
        await self.registry.broadcast_to_room(room_for_group(group_id), EVENT_SOS_ALERT_RECEIVED, payload)
        logger.info(f"[Session] SOS Alert from {payload.get('pilgrimId')} in group_{group_id}")

    async def relay_sos_cancel(self, sid: str, payload: Dict[str, Any]):
        group_id = payload.get("groupId")
        if not group_id:
            return
        await self.registry.broadcast_to_room(room_for_group(group_id), EVENT_SOS_ALERT_CANCELLED, payload)
        logger.info(f"[Session] SOS cancelled by {payload.get('pilgrimId')} in group_{group_id}")

    async def nav_beacon(
        self,
        sid: str,
        group_id: str,
        enabled: bool,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        broadcaster_id: Optional[str] = None,
        broadcaster_name: Optional[str] = None,
    ):
        """Publish or retract this connection's navigation beacon for a group."""
        session = self.registry.get_session(sid)
        if session is None or not group_id:
            return

        current = session.nav_beacon
        if enabled:
            if lat is None or lng is None:
                logger.warning(f"[Session] Beacon enable from {sid} without coordinates ignored")
                return
            if current and current.group_id != group_id:
                # One beacon per connection: the old group sees it go away
                await self._retract_beacon(sid, current)
            beacon = NavBeacon(group_id, lat, lng, broadcaster_id, broadcaster_name)
            session.nav_beacon = beacon
            payload = beacon.to_payload(enabled=True)
        else:
            if current and current.group_id == group_id:
                session.nav_beacon = None
            payload = nav_beacon_payload(group_id, False, broadcaster_id, broadcaster_name)

        await self.registry.broadcast_to_room(room_for_group(group_id), EVENT_NAV_BEACON, payload, exclude_sid=sid)

    async def _retract_beacon(self, sid: str, beacon: NavBeacon):
        await self.registry.broadcast_to_room(
            room_for_group(beacon.group_id),
            EVENT_NAV_BEACON,
            beacon.to_payload(enabled=False),
            exclude_sid=sid,
        )

    # === Call signaling ===

    async def call_offer(self, sid: str, to: str, channel_name: Optional[str] = None):
        session = self._registered(sid, "call-offer")
        if session and to:
            await self.signaling.offer(session, to, channel_name)

    async def call_answer(self, sid: str, to: str):
        session = self._registered(sid, "call-answer")
        if session and to:
            await self.signaling.answer(session, to)

    async def ice_candidate(self, sid: str, to: str, candidate: Any):
        session = self._registered(sid, "ice-candidate")
        if session and to:
            await self.signaling.ice_candidate(session, to, candidate)

    async def call_declined(self, sid: str, to: str):
        session = self._registered(sid, "call-declined")
        if session and to:
            await self.signaling.declined(session, to)

    async def call_cancel(self, sid: str, to: str):
        session = self._registered(sid, "call-cancel")
        if session and to:
            await self.signaling.cancel(session, to)

    async def call_busy(self, sid: str, to: str):
        session = self._registered(sid, "call-busy")
        if session and to:
            await self.signaling.busy(session, to)

    async def call_end(self, sid: str, to: str):
        session = self._registered(sid, "call-end")
        if session and to:
            await self.signaling.end(session, to)
