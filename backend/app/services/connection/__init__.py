"""
Connection Management Module

Re-exports the room registry and connection session models.
"""
from .models import ConnectionSession, NavBeacon, nav_beacon_payload
from .registry import RoomRegistry, room_for_group, room_for_user

__all__ = [
    "ConnectionSession",
    "NavBeacon",
    "nav_beacon_payload",
    "RoomRegistry",
    "room_for_group",
    "room_for_user",
]
