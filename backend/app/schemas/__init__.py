"""
Schemas Package

Pydantic models for REST endpoints and Socket.IO events.
"""

from app.schemas.socket_events import (
    SocketEvent,
    RegisterUserEvent,
    GroupEvent,
    LocationUpdateEvent,
    SOSEvent,
    NavBeaconEvent,
    SignalEvent,
    CallOfferEvent,
    IceCandidateEvent,
)

__all__ = [
    "SocketEvent",
    "RegisterUserEvent",
    "GroupEvent",
    "LocationUpdateEvent",
    "SOSEvent",
    "NavBeaconEvent",
    "SignalEvent",
    "CallOfferEvent",
    "IceCandidateEvent",
]
