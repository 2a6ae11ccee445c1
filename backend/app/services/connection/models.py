"""
Connection Models

Data classes representing one live Socket.IO connection and the state the
session coordinator keeps for it.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from app.config.constants import ROLE_PILGRIM
from app.models.database import utcnow


def nav_beacon_payload(
    group_id: str,
    enabled: bool,
    broadcaster_id: Optional[str] = None,
    broadcaster_name: Optional[str] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
) -> Dict[str, Any]:
    """Wire shape of `mod_nav_beacon`; a retraction carries no coordinates."""
    payload: Dict[str, Any] = {
        "groupId": group_id,
        "enabled": enabled,
        "moderatorId": broadcaster_id,
        "moderatorName": broadcaster_name,
    }
    if enabled:
        payload["lat"] = lat
        payload["lng"] = lng
    return payload


@dataclass
class NavBeacon:
    """A moderator's live position published as a navigation target."""
    group_id: str
    lat: float
    lng: float
    broadcaster_id: Optional[str] = None
    broadcaster_name: Optional[str] = None

    def to_payload(self, enabled: bool = True) -> Dict[str, Any]:
        return nav_beacon_payload(
            self.group_id, enabled, self.broadcaster_id, self.broadcaster_name, self.lat, self.lng
        )


@dataclass
class ConnectionSession:
    """State owned by exactly one transport connection."""
    sid: str
    user_id: Optional[str] = None
    role: str = ROLE_PILGRIM
    current_group_id: Optional[str] = None
    active_call_id: Optional[str] = None
    nav_beacon: Optional[NavBeacon] = None
    connected_at: datetime = field(default_factory=utcnow)

    @property
    def is_registered(self) -> bool:
        return self.user_id is not None

    def __repr__(self):
        return f"<ConnectionSession {self.sid} user={self.user_id} role={self.role}>"
