"""
Call Lifecycle Rules - how a call-end is classified.

Single Responsibility: decide the terminal state of a call record and expire
calls that were never resolved.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from app.models.call_history import CallRecord, CallStatus
from app.models.database import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallOutcome:
    status: CallStatus
    ended_at: datetime
    duration: int

    @property
    def is_missed(self) -> bool:
        return self.status == CallStatus.MISSED


def compute_duration(started_at: Optional[datetime], ended_at: datetime) -> int:
    """Whole seconds between answer and hang-up, 0 if never answered."""
    if started_at is None:
        return 0
    return max(0, int((ended_at - started_at).total_seconds()))


def classify_call_end(record: CallRecord, ended_at: datetime) -> CallOutcome:
    """
    Classify a call-end event.

    A call still ringing when either side hangs up was never answered, so it
    is missed. Anything else that reaches call-end was answered and completes.
    """
    if record.call_status == CallStatus.RINGING:
        return CallOutcome(CallStatus.MISSED, ended_at, 0)
    return CallOutcome(CallStatus.COMPLETED, ended_at, compute_duration(record.started_at, ended_at))


async def ring_timeout_watchdog(store, timeout_sec: int, interval_sec: int, clock=utcnow):
    """
    Background task: mark calls ringing longer than `timeout_sec` as missed.

    Runs until cancelled. Only started when a ring timeout is configured.
    """
    logger.info(f"[Lifecycle] Ring timeout watchdog started (timeout={timeout_sec}s, interval={interval_sec}s)")

    while True:
        try:
            now = clock()
            await store.expire_stale_ringing(now - timedelta(seconds=timeout_sec), ended_at=now)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[Lifecycle] Ring timeout sweep failed: {e}")

        await asyncio.sleep(interval_sec)
