"""
Socket Event Schemas

Pydantic models for the inbound Socket.IO payloads. Field names follow the
mobile client's camelCase wire format; extra keys are kept because several
events are forwarded to other clients as-is.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SocketEvent(BaseModel):
    """Base model for all inbound socket events."""
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)


# =============================================================================
# Presence / Groups
# =============================================================================

class RegisterUserEvent(SocketEvent):
    user_id: str = Field(alias="userId", min_length=1)
    role: Optional[str] = None


class GroupEvent(SocketEvent):
    """join_group / leave_group and the base of every group-scoped event."""
    group_id: str = Field(alias="groupId", min_length=1)


class LocationUpdateEvent(GroupEvent):
    pilgrim_id: Optional[str] = Field(None, alias="pilgrimId")
    lat: Optional[float] = None
    lng: Optional[float] = None
    battery_percent: Optional[float] = None


class SOSEvent(GroupEvent):
    """sos_alert / sos_cancel"""
    pilgrim_id: Optional[str] = Field(None, alias="pilgrimId")


class NavBeaconEvent(GroupEvent):
    enabled: bool
    lat: Optional[float] = None
    lng: Optional[float] = None
    moderator_id: Optional[str] = Field(None, alias="moderatorId")
    moderator_name: Optional[str] = Field(None, alias="moderatorName")


# =============================================================================
# Call Signaling
# =============================================================================

class SignalEvent(SocketEvent):
    """call-answer / call-declined / call-cancel / call-busy / call-end"""
    to: str = Field(min_length=1)


class CallOfferEvent(SignalEvent):
    channel_name: Optional[str] = Field(None, alias="channelName")


class IceCandidateEvent(SignalEvent):
    candidate: Any = None
