"""
Calls API - Call history endpoints

Implements:
- Call log retrieval with both parties' display info
- Missed-call badge count
- Missed-call acknowledgement
"""
from fastapi import APIRouter, Depends, Query

from app.api.deps import get_call_store, get_current_user_id, get_directory
from app.config.constants import DEFAULT_CALL_HISTORY_LIMIT
from app.schemas.call import (
    CallHistoryItem,
    CallHistoryResponse,
    MarkReadResponse,
    UnreadCountResponse,
)
from app.services.call import (
    CallRecordStore,
    get_unread_missed_count,
    get_user_call_history,
    mark_missed_calls_read,
)
from app.services.directory import DirectoryService

router = APIRouter()


@router.get("/calls/history", response_model=CallHistoryResponse)
async def get_call_history(
    limit: int = Query(DEFAULT_CALL_HISTORY_LIMIT, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    store: CallRecordStore = Depends(get_call_store),
    directory: DirectoryService = Depends(get_directory),
):
    """
    Get user's call history, newest first.
    """
    history = await get_user_call_history(store, directory, user_id, limit)
    items = [CallHistoryItem(**h) for h in history]
    return CallHistoryResponse(calls=items, total=len(items))


@router.get("/calls/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    user_id: str = Depends(get_current_user_id),
    store: CallRecordStore = Depends(get_call_store),
):
    count = await get_unread_missed_count(store, user_id)
    return UnreadCountResponse(count=count)


@router.post("/calls/mark-read", response_model=MarkReadResponse)
async def mark_calls_read(
    user_id: str = Depends(get_current_user_id),
    store: CallRecordStore = Depends(get_call_store),
):
    """
    Mark all of the user's missed incoming calls as read.
    """
    updated = await mark_missed_calls_read(store, user_id)
    return MarkReadResponse(updated=updated)
