"""
SOS API - REST-triggered emergency alerts

Used by clients that raise an SOS outside a live socket session. The alert is
broadcast to the group room like a socket SOS and pushed to the responders.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_current_user_id, get_directory, get_push, get_realtime
from app.config.constants import EVENT_SOS_ALERT_RECEIVED, PUSH_TYPE_SOS_ALERT
from app.models.database import utcnow
from app.schemas.sos import SOSAlertRequest, SOSAlertResponse
from app.services.connection import RoomRegistry, room_for_group
from app.services.directory import DirectoryService
from app.services.push import PushDispatcher, PushDispatchError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/groups/{group_id}/sos", response_model=SOSAlertResponse)
async def trigger_sos(
    group_id: str,
    req: SOSAlertRequest,
    user_id: str = Depends(get_current_user_id),
    registry: RoomRegistry = Depends(get_realtime),
    directory: DirectoryService = Depends(get_directory),
    push: PushDispatcher = Depends(get_push),
):
    """
    Broadcast an SOS alert to the group and notify responders by push.
    """
    payload = {
        "pilgrim_id": req.pilgrim_id,
        "pilgrim_name": req.pilgrim_name,
        "pilgrim_phone": req.pilgrim_phone,
        "location": {"lat": req.lat, "lng": req.lng},
        "group_id": group_id,
        "group_name": req.group_name,
        "timestamp": utcnow().isoformat(),
    }
    recipients = await registry.broadcast_to_room(room_for_group(group_id), EVENT_SOS_ALERT_RECEIVED, payload)
    logger.warning(f"[API] SOS alert from {req.pilgrim_id} (reported by {user_id}) in group {group_id}")

    tokens = []
    for responder_id in dict.fromkeys(req.responder_ids):
        entry = await directory.lookup(responder_id)
        if entry and entry.push_token and entry.push_token not in tokens:
            tokens.append(entry.push_token)

    where = req.group_name or group_id
    try:
        result = await push.send(
            tokens,
            "SOS ALERT",
            f"{req.pilgrim_name} needs immediate help in {where}",
            data={
                "type": PUSH_TYPE_SOS_ALERT,
                "pilgrim_id": req.pilgrim_id,
                "pilgrim_name": req.pilgrim_name,
                "pilgrim_phone": req.pilgrim_phone or "",
                "lat": req.lat or 0,
                "lng": req.lng or 0,
                "group_id": group_id,
                "group_name": req.group_name or "",
            },
            urgent=True,
        )
    except PushDispatchError as e:
        raise HTTPException(status_code=502, detail=f"Push delivery failed: {e}")

    return SOSAlertResponse(
        room_recipients=recipients,
        push_sent=result.success_count,
        push_failed=result.failure_count,
    )
