"""
Call Signaling - the call state machine behind the socket events.

Relays WebRTC/Agora signaling between the two parties and writes the call
record through each lifecycle step:

    call-offer     -> record created (ringing), socket relay and/or push
    call-answer    -> ringing -> in-progress
    call-declined  -> ringing -> declined
    call-end       -> ringing -> missed | in-progress -> completed
    ice-candidate, call-cancel, call-busy -> relay only

Reachability is decided by the target's personal room, never by the stored
presence flag, which can be stale across reconnects.
"""
import logging
from typing import Any, Dict, Optional

from app.config.constants import (
    EVENT_CALL_ANSWER,
    EVENT_CALL_BUSY,
    EVENT_CALL_CANCEL,
    EVENT_CALL_DECLINED,
    EVENT_CALL_END,
    EVENT_CALL_OFFER,
    EVENT_ICE_CANDIDATE,
    EVENT_MISSED_CALL_RECEIVED,
    PUSH_TYPE_INCOMING_CALL,
    PUSH_TYPE_MISSED_CALL,
    UNKNOWN_CALLER_NAME,
)
from app.models.call_history import CallRecord, CallStatus
from app.models.database import utcnow
from app.services.call import (
    CallRecordStore,
    CallServiceError,
    InvalidCallTransitionError,
    classify_call_end,
)
from app.services.connection import ConnectionSession, RoomRegistry
from app.services.directory import DirectoryEntry, DirectoryService
from app.services.push import PushDispatcher

logger = logging.getLogger(__name__)


class CallSignaling:
    """Drives the call protocol for registered connections."""

    def __init__(
        self,
        registry: RoomRegistry,
        directory: DirectoryService,
        call_store: CallRecordStore,
        push: PushDispatcher,
        clock=utcnow,
    ):
        self.registry = registry
        self.directory = directory
        self.call_store = call_store
        self.push = push
        self._now = clock

    # === Helpers ===

    async def _lookup(self, user_id: str) -> Optional[DirectoryEntry]:
        # Lookup failures degrade to "unknown / unreachable"
        try:
            return await self.directory.lookup(user_id)
        except Exception as e:
            logger.error(f"[Signaling] Directory lookup failed for {user_id}: {e}")
            return None

    async def _relay(self, to: str, event: str, payload: Dict[str, Any]) -> bool:
        delivered = await self.registry.send_to_user(to, event, payload)
        if not delivered:
            logger.info(f"[Signaling] {event} not relayed, {to} has no live connection")
        return delivered

    async def _push(self, token: Optional[str], title: str, body: str, data: Dict[str, Any], urgent: bool) -> bool:
        if not token:
            return False
        try:
            result = await self.push.send([token], title, body, data, urgent)
        except Exception as e:
            logger.error(f"[Signaling] Push '{title}' failed: {e}")
            return False
        return result.delivered

    async def _pair_call(self, session: ConnectionSession, to: str) -> Optional[CallRecord]:
        """
        The call record between this connection's user and `to`.

        Candidates are this connection's active call, then the target's. A
        candidate belonging to another pair (the target busy on a different
        call) is skipped.
        """
        candidates = [session.active_call_id]
        candidates += [s.active_call_id for s in self.registry.find_connections_by_user_id(to)]

        seen = set()
        for call_id in candidates:
            if not call_id or call_id in seen:
                continue
            seen.add(call_id)
            record = await self.call_store.get(call_id)
            if record and {record.caller_id, record.receiver_id} == {session.user_id, to}:
                return record
        return None

    def _clear_call(self, call_id: str, *user_ids: str):
        for user_id in user_ids:
            for session in self.registry.find_connections_by_user_id(user_id):
                if session.active_call_id == call_id:
                    session.active_call_id = None

    # === Events ===

    async def offer(self, session: ConnectionSession, to: str, channel_name: Optional[str]):
        caller_id = session.user_id
        logger.info(f"[Signaling] Call offer from {caller_id} to {to}")

        caller = await self._lookup(caller_id)
        target = await self._lookup(to)
        caller_info = {
            "id": caller_id,
            "name": caller.display_name if caller else UNKNOWN_CALLER_NAME,
            "role": caller.role if caller else session.role,
        }

        call_id = None
        try:
            record = await self.call_store.create(caller_id, to)
            call_id = record.id
        except Exception as e:
            logger.error(f"[Signaling] Could not create call record {caller_id} -> {to}: {e}")

        if call_id:
            session.active_call_id = call_id
            for target_session in self.registry.find_connections_by_user_id(to):
                # A target already on another call keeps that call; it answers call-busy
                if target_session.active_call_id is None:
                    target_session.active_call_id = call_id

        reachable = self.registry.is_user_reachable(to)
        if reachable:
            await self._relay(to, EVENT_CALL_OFFER, {
                "channelName": channel_name,
                "from": caller_id,
                "callerInfo": caller_info,
            })

        token = target.push_token if target else None
        if not token:
            if not reachable:
                logger.info(f"[Signaling] {to} is offline and has no push token, offer not delivered")
            return

        # Reachable: backup push in case the app is backgrounded. Unreachable: push only.
        await self._push(
            token,
            "Incoming Call",
            f"{caller_info['name']} is calling you",
            {
                "type": PUSH_TYPE_INCOMING_CALL,
                "callId": call_id,
                "callerId": caller_id,
                "callerName": caller_info["name"],
                "callerRole": caller_info["role"],
                "channelName": channel_name,
            },
            urgent=True,
        )

    async def answer(self, session: ConnectionSession, to: str):
        logger.info(f"[Signaling] Call answer from {session.user_id} to {to}")
        await self._relay(to, EVENT_CALL_ANSWER, {"from": session.user_id})

        try:
            record = await self._pair_call(session, to)
            if record is None:
                logger.warning(f"[Signaling] Answer from {session.user_id} has no call record to update")
                return

            session.active_call_id = record.id
            await self.call_store.transition(record.id, CallStatus.IN_PROGRESS, started_at=self._now())
        except CallServiceError as e:
            logger.warning(f"[Signaling] Call not moved to in-progress: {e}")
        except Exception as e:
            logger.error(f"[Signaling] Error updating call record on answer from {session.user_id}: {e}")

    async def ice_candidate(self, session: ConnectionSession, to: str, candidate: Any):
        await self._relay(to, EVENT_ICE_CANDIDATE, {"candidate": candidate, "from": session.user_id})

    async def declined(self, session: ConnectionSession, to: str):
        logger.info(f"[Signaling] Call declined by {session.user_id}, notifying {to}")
        await self._relay(to, EVENT_CALL_DECLINED, {"from": session.user_id})

        try:
            record = await self._pair_call(session, to)
        except Exception as e:
            logger.error(f"[Signaling] Error loading call record on decline from {session.user_id}: {e}")
            return
        if record is None:
            return

        try:
            await self.call_store.transition(record.id, CallStatus.DECLINED, ended_at=self._now())
        except CallServiceError as e:
            logger.warning(f"[Signaling] Call {record.id} not moved to declined: {e}")
        except Exception as e:
            logger.error(f"[Signaling] Error updating call record {record.id}: {e}")
        finally:
            self._clear_call(record.id, session.user_id, to)

    async def cancel(self, session: ConnectionSession, to: str):
        # The record is resolved by the caller's call-end, not here
        logger.info(f"[Signaling] Call cancelled by {session.user_id}, notifying {to}")
        await self._relay(to, EVENT_CALL_CANCEL, {"from": session.user_id})

    async def busy(self, session: ConnectionSession, to: str):
        logger.info(f"[Signaling] {session.user_id} is busy, notifying {to}")
        await self._relay(to, EVENT_CALL_BUSY, {"from": session.user_id})

    async def end(self, session: ConnectionSession, to: str):
        ender_id = session.user_id
        logger.info(f"[Signaling] Call end from {ender_id} to {to}")

        await self._relay(to, EVENT_CALL_END, {"from": ender_id})

        try:
            record = await self._pair_call(session, to)
        except Exception as e:
            logger.error(f"[Signaling] Error loading call record on end from {ender_id}: {e}")
            return
        if record is None:
            return

        call_id = record.id
        outcome = None
        try:
            # A failed conditional write means the other side moved the record first: re-read and decide again
            while record is not None and not record.call_status.is_terminal:
                outcome = classify_call_end(record, self._now())
                try:
                    record = await self.call_store.transition(
                        call_id,
                        outcome.status,
                        expected=record.call_status,
                        ended_at=outcome.ended_at,
                        duration=outcome.duration,
                    )
                    logger.info(f"[Signaling] Call {call_id} ended: {outcome.status.value}, duration: {outcome.duration}s")
                    break
                except InvalidCallTransitionError:
                    outcome = None
                    record = await self.call_store.get(call_id)
        except CallServiceError as e:
            logger.warning(f"[Signaling] Call {call_id} not ended: {e}")
            return
        except Exception as e:
            logger.error(f"[Signaling] Error updating call record {call_id}: {e}")
            return
        finally:
            self._clear_call(call_id, ender_id, to)

        if outcome and outcome.is_missed:
            await self._notify_missed(record, ender_id)

    async def _notify_missed(self, record: CallRecord, ender_id: str):
        missed_by = record.counterpart_of(ender_id)
        caller = await self._lookup(record.caller_id)
        caller_name = caller.display_name if caller else UNKNOWN_CALLER_NAME

        logger.info(f"[Signaling] Sending missed call notification to {missed_by}")
        payload = {"callId": record.id, "callerId": record.caller_id, "callerName": caller_name}
        await self.registry.send_to_user(missed_by, EVENT_MISSED_CALL_RECEIVED, payload)

        target = await self._lookup(missed_by)
        await self._push(
            target.push_token if target else None,
            "Missed Call",
            f"You missed a call from {caller_name}",
            {"type": PUSH_TYPE_MISSED_CALL, **payload},
            urgent=False,
        )
