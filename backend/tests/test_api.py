from datetime import datetime, timedelta

import httpx
import pytest

from app.api.deps import get_call_store, get_directory, get_push, get_realtime
from app.main import app
from app.models import CallRecord
from app.services.push import PushDispatchError

T0 = datetime(2026, 3, 1, 9, 0, 0)


@pytest.fixture
async def client(accounts, registry, directory, call_store, push, status):
    presence = app.state.presence
    app.state.presence = status
    app.dependency_overrides[get_realtime] = lambda: registry
    app.dependency_overrides[get_directory] = lambda: directory
    app.dependency_overrides[get_call_store] = lambda: call_store
    app.dependency_overrides[get_push] = lambda: push

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    app.state.presence = presence


@pytest.fixture
async def call_log(accounts):
    async with accounts() as db:
        db.add_all([
            CallRecord(id="c1", caller_id="mod-1", receiver_id="pil-1", status="completed",
                       duration=75, started_at=T0, ended_at=T0 + timedelta(seconds=75), created_at=T0),
            CallRecord(id="c2", caller_id="pil-2", receiver_id="mod-1", status="missed",
                       created_at=T0 + timedelta(hours=1)),
            CallRecord(id="c3", caller_id="pil-1", receiver_id="pil-2", status="declined",
                       created_at=T0 + timedelta(hours=2)),
        ])
        await db.commit()


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert {"total_connections", "registered_users", "rooms"} <= set(body)
    assert body["presence_cache"] is True

    r = await client.get("/api/health")
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_history_requires_identity(client):
    r = await client.get("/api/calls/history")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_call_history(client, call_log):
    r = await client.get("/api/calls/history", headers={"X-User-Id": "mod-1"})
    assert r.status_code == 200
    data = r.json()

    assert data["total"] == 2
    missed, completed = data["calls"]
    assert missed["id"] == "c2"
    assert missed["direction"] == "incoming"
    assert missed["caller"] == {"id": "pil-2", "full_name": "Pilgrim Two", "role": "pilgrim"}
    assert completed["id"] == "c1"
    assert completed["direction"] == "outgoing"
    assert completed["duration"] == 75
    assert completed["receiver"]["full_name"] == "Pilgrim One"


@pytest.mark.asyncio
async def test_unread_missed_calls(client, call_log):
    headers = {"X-User-Id": "mod-1"}

    assert (await client.get("/api/calls/unread-count", headers=headers)).json() == {"count": 1}

    r = await client.post("/api/calls/mark-read", headers=headers)
    assert r.json() == {"success": True, "updated": 1}

    assert (await client.get("/api/calls/unread-count", headers=headers)).json() == {"count": 0}


@pytest.mark.asyncio
async def test_rest_sos_broadcasts_and_pushes(client, registry, sio, push):
    for sid, user_id in (("s-mod", "mod-1"), ("s-pil", "pil-1")):
        await registry.open_session(sid)
        await registry.bind_user(sid, user_id)
        await registry.join_room(sid, "group_g1")

    r = await client.post(
        "/api/groups/g1/sos",
        headers={"X-User-Id": "pil-1"},
        json={
            "pilgrim_id": "pil-1",
            "pilgrim_name": "Pilgrim One",
            "lat": 21.42,
            "lng": 39.82,
            "group_name": "Group A",
            "responder_ids": ["mod-1", "admin-1", "mod-1"],
        },
    )

    assert r.status_code == 200
    assert r.json() == {"success": True, "room_recipients": 2, "push_sent": 1, "push_failed": 0}

    [alert] = sio.received("s-mod", "sos-alert-received")
    assert alert["pilgrim_id"] == "pil-1"
    assert alert["location"] == {"lat": 21.42, "lng": 39.82}
    assert alert["group_name"] == "Group A"

    [sent] = push.sent
    assert sent["tokens"] == ["tok-mod-1"]
    assert sent["urgent"] is True
    assert sent["data"]["type"] == "sos_alert"
    assert sent["body"] == "Pilgrim One needs immediate help in Group A"


@pytest.mark.asyncio
async def test_rest_sos_push_failure(client, push):
    push.error = PushDispatchError("FCM unavailable")

    r = await client.post(
        "/api/groups/g1/sos",
        headers={"X-User-Id": "pil-1"},
        json={"pilgrim_id": "pil-1", "pilgrim_name": "Pilgrim One", "responder_ids": ["mod-1"]},
    )
    assert r.status_code == 502


@pytest.mark.asyncio
async def test_rest_sos_validation(client):
    r = await client.post("/api/groups/g1/sos", headers={"X-User-Id": "pil-1"}, json={"pilgrim_id": "pil-1"})
    assert r.status_code == 422
