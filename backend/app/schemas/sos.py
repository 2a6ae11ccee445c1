"""
SOS Schemas

Request/response models for REST-triggered SOS alerts.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class SOSAlertRequest(BaseModel):
    pilgrim_id: str = Field(..., min_length=1)
    pilgrim_name: str = Field(..., min_length=1)
    pilgrim_phone: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    group_name: Optional[str] = None
    # Staff to alert by push (resolved by the group collaborator)
    responder_ids: List[str] = Field(default_factory=list)


class SOSAlertResponse(BaseModel):
    success: bool = True
    room_recipients: int
    push_sent: int
    push_failed: int
