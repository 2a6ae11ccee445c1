import asyncio
from datetime import datetime, timedelta

import pytest

from app.models import CallRecord, CallStatus, utcnow
from app.services.call import (
    CallNotFoundError,
    InvalidCallTransitionError,
    classify_call_end,
    compute_duration,
    ring_timeout_watchdog,
)

T0 = datetime(2026, 3, 1, 12, 0, 0)


@pytest.mark.asyncio
async def test_create_starts_ringing(call_store):
    record = await call_store.create("mod-1", "pil-1")

    assert record.call_status == CallStatus.RINGING
    assert record.call_type == "internet"
    assert record.duration == 0
    assert record.is_read is False
    assert record.counterpart_of("mod-1") == "pil-1"
    assert record.counterpart_of("pil-1") == "mod-1"


@pytest.mark.asyncio
async def test_answered_call_completes(call_store):
    record = await call_store.create("mod-1", "pil-1")

    await call_store.transition(record.id, CallStatus.IN_PROGRESS, started_at=T0)
    done = await call_store.transition(
        record.id, CallStatus.COMPLETED, ended_at=T0 + timedelta(seconds=42), duration=42
    )

    assert done.call_status == CallStatus.COMPLETED
    assert done.started_at == T0
    assert done.duration == 42


@pytest.mark.asyncio
@pytest.mark.parametrize("first, second", [
    (CallStatus.DECLINED, CallStatus.IN_PROGRESS),
    (CallStatus.MISSED, CallStatus.COMPLETED),
    (CallStatus.IN_PROGRESS, CallStatus.MISSED),
])
async def test_transitions_only_move_forward(call_store, first, second):
    record = await call_store.create("mod-1", "pil-1")
    await call_store.transition(record.id, first)

    with pytest.raises(InvalidCallTransitionError):
        await call_store.transition(record.id, second)

    assert (await call_store.get(record.id)).call_status == first


@pytest.mark.asyncio
async def test_ringing_cannot_complete_directly(call_store):
    record = await call_store.create("mod-1", "pil-1")
    with pytest.raises(InvalidCallTransitionError):
        await call_store.transition(record.id, CallStatus.COMPLETED)


@pytest.mark.asyncio
async def test_transition_errors(call_store):
    with pytest.raises(CallNotFoundError):
        await call_store.transition("missing", CallStatus.DECLINED)

    record = await call_store.create("mod-1", "pil-1")
    with pytest.raises(ValueError):
        await call_store.transition(record.id, CallStatus.DECLINED, caller_id="someone-else")


@pytest.mark.asyncio
async def test_competing_transitions_reach_one_terminal_state(call_store):
    record = await call_store.create("mod-1", "pil-1")

    results = await asyncio.gather(
        call_store.transition(record.id, CallStatus.DECLINED),
        call_store.transition(record.id, CallStatus.MISSED),
        return_exceptions=True,
    )

    won = [r for r in results if isinstance(r, CallRecord)]
    lost = [r for r in results if isinstance(r, InvalidCallTransitionError)]
    assert len(won) == 1 and len(lost) == 1
    assert (await call_store.get(record.id)).call_status == won[0].call_status


@pytest.mark.asyncio
async def test_transition_rejects_stale_expected_status(call_store):
    record = await call_store.create("mod-1", "pil-1")
    await call_store.transition(record.id, CallStatus.IN_PROGRESS, started_at=T0)

    # Completed is a legal next step, but the decision was made on a ringing read
    with pytest.raises(InvalidCallTransitionError):
        await call_store.transition(record.id, CallStatus.COMPLETED, expected=CallStatus.RINGING)

    assert (await call_store.get(record.id)).call_status == CallStatus.IN_PROGRESS
    done = await call_store.transition(record.id, CallStatus.COMPLETED, expected=CallStatus.IN_PROGRESS)
    assert done.call_status == CallStatus.COMPLETED


def test_classify_call_end():
    ringing = CallRecord(caller_id="a", receiver_id="b", status="ringing")
    outcome = classify_call_end(ringing, T0)
    assert outcome.status == CallStatus.MISSED
    assert outcome.duration == 0
    assert outcome.is_missed

    answered = CallRecord(caller_id="a", receiver_id="b", status="in-progress", started_at=T0)
    outcome = classify_call_end(answered, T0 + timedelta(seconds=65, milliseconds=700))
    assert outcome.status == CallStatus.COMPLETED
    assert outcome.duration == 65
    assert not outcome.is_missed


def test_compute_duration_edges():
    assert compute_duration(None, T0) == 0
    assert compute_duration(T0, T0 - timedelta(seconds=5)) == 0


@pytest.mark.asyncio
async def test_expire_stale_ringing(call_store):
    stale = await call_store.create("mod-1", "pil-1")
    answered = await call_store.create("mod-1", "pil-2")
    await call_store.transition(answered.id, CallStatus.IN_PROGRESS, started_at=T0)

    later = utcnow() + timedelta(hours=1)
    expired = await call_store.expire_stale_ringing(later, ended_at=later)

    assert [r.id for r in expired] == [stale.id]
    assert (await call_store.get(stale.id)).call_status == CallStatus.MISSED
    assert (await call_store.get(answered.id)).call_status == CallStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_ring_timeout_watchdog_marks_missed(call_store):
    record = await call_store.create("mod-1", "pil-1")
    future = utcnow() + timedelta(hours=1)

    task = asyncio.create_task(ring_timeout_watchdog(call_store, 30, 0.01, clock=lambda: future))
    await asyncio.sleep(0.1)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    expired = await call_store.get(record.id)
    assert expired.call_status == CallStatus.MISSED
    assert expired.duration == 0


@pytest.mark.asyncio
async def test_history_queries(session_factory, call_store):
    async with session_factory() as db:
        db.add_all([
            CallRecord(id="c1", caller_id="mod-1", receiver_id="pil-1", status="completed", created_at=T0),
            CallRecord(id="c2", caller_id="pil-2", receiver_id="mod-1", status="missed",
                       created_at=T0 + timedelta(minutes=5)),
            CallRecord(id="c3", caller_id="pil-1", receiver_id="mod-1", status="missed",
                       created_at=T0 + timedelta(minutes=10), is_read=True),
            CallRecord(id="c4", caller_id="pil-1", receiver_id="pil-2", status="missed",
                       created_at=T0 + timedelta(minutes=15)),
        ])
        await db.commit()

    calls = await call_store.list_for_user("mod-1")
    assert [c.id for c in calls] == ["c3", "c2", "c1"]
    assert [c.id for c in await call_store.list_for_user("mod-1", limit=1)] == ["c3"]

    assert await call_store.count_unread_missed("mod-1") == 1
    assert await call_store.mark_missed_read("mod-1") == 1
    assert await call_store.count_unread_missed("mod-1") == 0
    # Outgoing missed calls are not the caller's to acknowledge
    assert await call_store.count_unread_missed("pil-1") == 0
    assert await call_store.count_unread_missed("pil-2") == 1
