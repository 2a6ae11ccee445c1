"""
Call History Schemas

Response models for the call history REST endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class CallParty(BaseModel):
    id: str
    full_name: str
    role: str


class CallHistoryItem(BaseModel):
    id: str
    caller_id: str
    receiver_id: str
    call_type: str
    status: str
    duration: int
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    is_read: bool = False
    created_at: Optional[datetime] = None
    direction: str
    caller: Optional[CallParty] = None
    receiver: Optional[CallParty] = None


class CallHistoryResponse(BaseModel):
    calls: List[CallHistoryItem]
    total: int


class UnreadCountResponse(BaseModel):
    count: int


class MarkReadResponse(BaseModel):
    success: bool = True
    updated: int
