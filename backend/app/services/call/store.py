"""
Call Record Store

Durable log of call attempts. Append-only create, forward-only status updates,
no deletion. Each operation opens its own short-lived DB session so the
socket layer never holds a transaction across an await on the network.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import select, update, func, or_, and_

from app.config.constants import CALL_TYPE_INTERNET, DEFAULT_CALL_HISTORY_LIMIT
from app.models import database
from app.models.call_history import CallRecord, CallStatus, ALLOWED_TRANSITIONS

from .exceptions import CallNotFoundError, InvalidCallTransitionError

logger = logging.getLogger(__name__)

_TRANSITION_FIELDS = ("started_at", "ended_at", "duration")


class CallRecordStore:
    """Repository for call_history rows."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or database.AsyncSessionLocal
        # Serializes status writes within this process; the conditional UPDATE covers the rest
        self._lock = asyncio.Lock()

    async def create(self, caller_id: str, receiver_id: str) -> CallRecord:
        """Create a record in the initial `ringing` state."""
        async with self._session_factory() as db:
            record = CallRecord(
                caller_id=caller_id,
                receiver_id=receiver_id,
                call_type=CALL_TYPE_INTERNET,
                status=CallStatus.RINGING.value,
                duration=0,
            )
            db.add(record)
            await db.commit()
            await db.refresh(record)

        logger.info(f"[CallStore] Call record created: {record.id} ({caller_id} -> {receiver_id})")
        return record

    async def get(self, call_id: str) -> Optional[CallRecord]:
        async with self._session_factory() as db:
            result = await db.execute(select(CallRecord).where(CallRecord.id == call_id))
            return result.scalar_one_or_none()

    async def transition(
        self,
        call_id: str,
        status: CallStatus,
        expected: Optional[CallStatus] = None,
        **extra: Any,
    ) -> CallRecord:
        """
        Move a record to a new status.

        The write is conditional on the status read just before it, so of two
        competing transitions only one lands; the other gets
        InvalidCallTransitionError.

        Args:
            call_id: Record id
            status: Target status
            expected: Status the caller based its decision on; the transition
                is rejected if the record has moved since
            **extra: started_at / ended_at / duration

        Raises:
            CallNotFoundError: unknown id
            InvalidCallTransitionError: status would not move forward, or the
                record is no longer in `expected`
        """
        unknown = set(extra) - set(_TRANSITION_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported call record fields: {sorted(unknown)}")

        status = CallStatus(status)
        async with self._lock:
            async with self._session_factory() as db:
                result = await db.execute(select(CallRecord).where(CallRecord.id == call_id))
                record = result.scalar_one_or_none()
                if not record:
                    raise CallNotFoundError(f"Call {call_id} not found")

                current = record.call_status
                if expected is not None and CallStatus(expected) != current:
                    raise InvalidCallTransitionError(call_id, current.value, status.value)
                if status not in ALLOWED_TRANSITIONS[current]:
                    raise InvalidCallTransitionError(call_id, current.value, status.value)

                result = await db.execute(
                    update(CallRecord)
                    .where(and_(CallRecord.id == call_id, CallRecord.status == current.value))
                    .values(status=status.value, **extra)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    await db.rollback()
                    raise InvalidCallTransitionError(call_id, current.value, status.value)

                await db.commit()
                await db.refresh(record)

        logger.info(f"[CallStore] Call {call_id}: {current.value} -> {status.value}")
        return record

    async def expire_stale_ringing(self, older_than: datetime, ended_at: datetime) -> List[CallRecord]:
        """Mark every record still ringing since before `older_than` as missed."""
        async with self._lock:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(CallRecord.id).where(
                        and_(
                            CallRecord.status == CallStatus.RINGING.value,
                            CallRecord.created_at < older_than,
                        )
                    )
                )
                ids = list(result.scalars().all())
                if ids:
                    # Rows answered or declined since the select are left alone
                    await db.execute(
                        update(CallRecord)
                        .where(and_(CallRecord.id.in_(ids), CallRecord.status == CallStatus.RINGING.value))
                        .values(status=CallStatus.MISSED.value, ended_at=ended_at, duration=0)
                        .execution_options(synchronize_session=False)
                    )
                    await db.commit()
                    result = await db.execute(
                        select(CallRecord).where(
                            and_(
                                CallRecord.id.in_(ids),
                                CallRecord.status == CallStatus.MISSED.value,
                            )
                        )
                    )
                    stale = list(result.scalars().all())
                else:
                    stale = []

        if stale:
            logger.info(f"[CallStore] Expired {len(stale)} ringing call(s) as missed")
        return stale

    # === History queries ===

    async def list_for_user(self, user_id: str, limit: int = DEFAULT_CALL_HISTORY_LIMIT) -> List[CallRecord]:
        """Calls where the user was caller or receiver, newest first."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(CallRecord)
                .where(or_(CallRecord.caller_id == user_id, CallRecord.receiver_id == user_id))
                .order_by(CallRecord.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def count_unread_missed(self, user_id: str) -> int:
        async with self._session_factory() as db:
            result = await db.execute(
                select(func.count(CallRecord.id)).where(
                    and_(
                        CallRecord.receiver_id == user_id,
                        CallRecord.status == CallStatus.MISSED.value,
                        CallRecord.is_read.is_(False),
                    )
                )
            )
            return int(result.scalar_one())

    async def mark_missed_read(self, user_id: str) -> int:
        async with self._session_factory() as db:
            result = await db.execute(
                update(CallRecord)
                .where(
                    and_(
                        CallRecord.receiver_id == user_id,
                        CallRecord.status == CallStatus.MISSED.value,
                        CallRecord.is_read.is_(False),
                    )
                )
                .values(is_read=True)
            )
            await db.commit()
            return result.rowcount or 0
