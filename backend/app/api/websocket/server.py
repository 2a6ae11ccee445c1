"""
Socket.IO Server - Realtime Event Channel

This is the thin routing layer between the wire contract (event names and
payload shapes) and the SessionCoordinator. Every handler validates its
payload (malformed events are logged and dropped), then delegates to the
coordinator. Failures are logged, never raised into the transport.
"""
import logging
from typing import Any, Awaitable, Callable, Optional, Type

import socketio
from pydantic import ValidationError

from app.config import constants as ev
from app.config.settings import settings
from app.schemas.socket_events import (
    CallOfferEvent,
    GroupEvent,
    IceCandidateEvent,
    LocationUpdateEvent,
    NavBeaconEvent,
    RegisterUserEvent,
    SOSEvent,
    SignalEvent,
    SocketEvent,
)
from app.services.call import call_record_store
from app.services.connection import RoomRegistry
from app.services.directory import directory_service
from app.services.push import push_dispatcher
from app.services.session import SessionCoordinator
from app.services.status_service import status_service

logger = logging.getLogger(__name__)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.SOCKETIO_CORS_ORIGINS,
    logger=False,
    engineio_logger=False,
)

Action = Callable[[str, Any, dict], Awaitable[None]]


def _as_payload(data: Any) -> Any:
    # join_group / leave_group historically send the bare group id
    if isinstance(data, (str, int)):
        return {"groupId": data}
    return data if data is not None else {}


def _wire_body(event: SocketEvent, raw: Any) -> dict:
    """The payload as sent, with each validated field also present under its wire name."""
    body = dict(raw) if isinstance(raw, dict) else {}
    declared = event.model_dump(by_alias=True, exclude_none=True, include=set(type(event).model_fields))
    for key, value in declared.items():
        body.setdefault(key, value)
    return body


def _bind(server, event: str, model: Type[SocketEvent], action: Action):
    """Register a validated, exception-safe handler for one inbound event."""

    async def handler(sid: str, data: Any = None):
        payload = _as_payload(data)
        try:
            parsed = model.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"[Socket] Malformed '{event}' from {sid} ignored: {e.error_count()} error(s)")
            return

        try:
            await action(sid, parsed, payload)
        except Exception:
            logger.exception(f"[Socket] Error handling '{event}' from {sid}")

    server.on(event, handler)
    return handler


def register_socket_handlers(server, coordinator: SessionCoordinator):
    """Wire every inbound event of the realtime protocol to the coordinator."""

    async def connect(sid: str, environ: dict, auth: Optional[Any] = None):
        await coordinator.connect(sid)

    async def disconnect(sid: str, reason: Optional[Any] = None):
        try:
            await coordinator.disconnect(sid, reason)
        except Exception:
            logger.exception(f"[Socket] Error during disconnect cleanup for {sid}")

    server.on("connect", connect)
    server.on("disconnect", disconnect)

    # Presence / groups
    _bind(server, ev.EVENT_REGISTER_USER, RegisterUserEvent,
          lambda sid, e, raw: coordinator.register(sid, e.user_id, e.role))
    _bind(server, ev.EVENT_JOIN_GROUP, GroupEvent,
          lambda sid, e, raw: coordinator.join_group(sid, e.group_id))
    _bind(server, ev.EVENT_LEAVE_GROUP, GroupEvent,
          lambda sid, e, raw: coordinator.leave_group(sid, e.group_id))

    # Fan-out (payload forwarded as sent, keyed by wire names)
    _bind(server, ev.EVENT_UPDATE_LOCATION, LocationUpdateEvent,
          lambda sid, e, raw: coordinator.relay_location(sid, _wire_body(e, raw)))
    _bind(server, ev.EVENT_SOS_ALERT, SOSEvent,
          lambda sid, e, raw: coordinator.relay_sos(sid, _wire_body(e, raw)))
    _bind(server, ev.EVENT_SOS_CANCEL, SOSEvent,
          lambda sid, e, raw: coordinator.relay_sos_cancel(sid, _wire_body(e, raw)))
    _bind(server, ev.EVENT_NAV_BEACON, NavBeaconEvent,
          lambda sid, e, raw: coordinator.nav_beacon(
              sid, e.group_id, e.enabled, e.lat, e.lng, e.moderator_id, e.moderator_name))

    # Call signaling
    _bind(server, ev.EVENT_CALL_OFFER, CallOfferEvent,
          lambda sid, e, raw: coordinator.call_offer(sid, e.to, e.channel_name))
    _bind(server, ev.EVENT_CALL_ANSWER, SignalEvent,
          lambda sid, e, raw: coordinator.call_answer(sid, e.to))
    _bind(server, ev.EVENT_ICE_CANDIDATE, IceCandidateEvent,
          lambda sid, e, raw: coordinator.ice_candidate(sid, e.to, e.candidate))
    _bind(server, ev.EVENT_CALL_DECLINED, SignalEvent,
          lambda sid, e, raw: coordinator.call_declined(sid, e.to))
    _bind(server, ev.EVENT_CALL_CANCEL, SignalEvent,
          lambda sid, e, raw: coordinator.call_cancel(sid, e.to))
    _bind(server, ev.EVENT_CALL_BUSY, SignalEvent,
          lambda sid, e, raw: coordinator.call_busy(sid, e.to))
    _bind(server, ev.EVENT_CALL_END, SignalEvent,
          lambda sid, e, raw: coordinator.call_end(sid, e.to))


# Process-wide realtime wiring
room_registry = RoomRegistry(sio)
session_coordinator = SessionCoordinator(
    registry=room_registry,
    directory=directory_service,
    status_service=status_service,
    call_store=call_record_store,
    push=push_dispatcher,
)
register_socket_handlers(sio, session_coordinator)
