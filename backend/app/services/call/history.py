"""
Call History

Functions for retrieving a user's call log and missed-call badge.
"""
from typing import Dict, List, Optional, TYPE_CHECKING

from app.config.constants import DEFAULT_CALL_HISTORY_LIMIT

if TYPE_CHECKING:
    from app.services.directory import DirectoryService
    from .store import CallRecordStore


async def get_user_call_history(
    store: "CallRecordStore",
    directory: "DirectoryService",
    user_id: str,
    limit: int = DEFAULT_CALL_HISTORY_LIMIT
) -> List[Dict]:
    """
    Get user's recent calls with both parties' display info.

    Args:
        store: Call record store
        directory: Directory used to resolve names and roles
        user_id: ID of the user
        limit: Maximum number of calls to return

    Returns:
        List of call history dictionaries, newest first
    """
    records = await store.list_for_user(user_id, limit)

    # Resolve each distinct party once
    party_ids = {r.caller_id for r in records} | {r.receiver_id for r in records}
    parties: Dict[str, Optional[Dict]] = {}
    for party_id in party_ids:
        entry = await directory.lookup(party_id)
        parties[party_id] = {
            "id": party_id,
            "full_name": entry.display_name,
            "role": entry.role,
        } if entry else None

    history = []
    for record in records:
        item = record.to_dict()
        item["caller"] = parties.get(record.caller_id)
        item["receiver"] = parties.get(record.receiver_id)
        item["direction"] = "outgoing" if record.caller_id == user_id else "incoming"
        history.append(item)

    return history


async def get_unread_missed_count(store: "CallRecordStore", user_id: str) -> int:
    return await store.count_unread_missed(user_id)


async def mark_missed_calls_read(store: "CallRecordStore", user_id: str) -> int:
    return await store.mark_missed_read(user_id)
