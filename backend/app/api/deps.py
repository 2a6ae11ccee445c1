"""
Shared API dependencies.

Authentication is handled by the upstream gateway; the authenticated
identity arrives in the X-User-Id header.
"""
from typing import Optional
import logging

from fastapi import Header, HTTPException, Request, status

from app.services.call import CallRecordStore, call_record_store
from app.services.connection import RoomRegistry
from app.services.directory import DirectoryService, directory_service
from app.services.push import PushDispatcher, push_dispatcher

logger = logging.getLogger(__name__)

__all__ = [
    "get_current_user_id",
    "get_realtime",
    "get_call_store",
    "get_directory",
    "get_push",
]


async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id:
        logger.warning("[API] Request without X-User-Id rejected")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return x_user_id


def get_realtime(request: Request) -> RoomRegistry:
    """Room registry of the running Socket.IO server."""
    return request.app.state.realtime


def get_call_store() -> CallRecordStore:
    return call_record_store


def get_directory() -> DirectoryService:
    return directory_service


def get_push() -> PushDispatcher:
    return push_dispatcher
