import pytest

from app.api.websocket.server import register_socket_handlers


@pytest.fixture
def wired(sio, coordinator):
    register_socket_handlers(sio, coordinator)
    return sio


async def _connect(sio, sid, user_id, role="pilgrim"):
    await sio.trigger("connect", sid, {})
    await sio.trigger("register-user", sid, {"userId": user_id, "role": role})


@pytest.mark.asyncio
async def test_register_and_join_over_the_wire(wired, registry):
    await _connect(wired, "s1", "pil-1")
    await wired.trigger("join_group", "s1", "g1")

    assert registry.is_user_reachable("pil-1")
    assert registry.get_session("s1").current_group_id == "g1"

    await wired.trigger("leave_group", "s1", {"groupId": "g1"})
    assert not registry.is_in_room("s1", "group_g1")


@pytest.mark.asyncio
async def test_numeric_ids_are_accepted(wired, registry):
    await wired.trigger("connect", "s1", {})
    await wired.trigger("register-user", "s1", {"userId": 42})
    await wired.trigger("join_group", "s1", 7)

    assert registry.is_user_reachable("42")
    assert registry.get_session("s1").current_group_id == "7"


@pytest.mark.asyncio
@pytest.mark.parametrize("event, payload", [
    ("register-user", {}),
    ("register-user", None),
    ("join_group", {"group": "g1"}),
    ("update_location", {"pilgrimId": "pil-1", "lat": 1}),
    ("mod_nav_beacon", {"groupId": "g1", "lat": 1, "lng": 2}),
    ("call-offer", {"channelName": "ch-1"}),
    ("call-end", {"to": ""}),
])
async def test_malformed_payloads_are_dropped(wired, registry, event, payload):
    await _connect(wired, "s1", "pil-1")
    wired.clear()

    await wired.trigger(event, "s1", payload)

    assert wired.emitted == []
    assert registry.get_session("s1").user_id == "pil-1"


@pytest.mark.asyncio
async def test_fanout_payload_forwarded_as_sent(wired):
    await _connect(wired, "s-pil", "pil-1")
    await _connect(wired, "s-mod", "mod-1", "moderator")
    await wired.trigger("join_group", "s-pil", {"groupId": "g1"})
    await wired.trigger("join_group", "s-mod", {"groupId": "g1"})
    wired.clear()

    payload = {"groupId": "g1", "pilgrimId": "pil-1", "lat": 21.4, "lng": 39.8, "accuracy": 5}
    await wired.trigger("update_location", "s-pil", payload)

    assert wired.received("s-mod", "location_update") == [payload]


@pytest.mark.asyncio
async def test_handler_errors_do_not_escape(wired, coordinator, monkeypatch):
    await _connect(wired, "s1", "pil-1")

    async def _boom(*args):
        raise RuntimeError("boom")

    monkeypatch.setattr(coordinator, "relay_sos", _boom)

    await wired.trigger("sos_alert", "s1", {"groupId": "g1", "pilgrimId": "pil-1"})


@pytest.mark.asyncio
async def test_call_flow_over_the_wire(wired, call_store):
    await _connect(wired, "s-mod", "mod-1", "moderator")
    await _connect(wired, "s-pil", "pil-1")

    await wired.trigger("call-offer", "s-mod", {"to": "pil-1", "channelName": "ch-1"})
    await wired.trigger("call-answer", "s-pil", {"to": "mod-1"})
    await wired.trigger("ice-candidate", "s-pil", {"to": "mod-1", "candidate": {"sdpMid": "0"}})
    await wired.trigger("call-end", "s-pil", {"to": "mod-1"})

    assert wired.received("s-mod", "ice-candidate") == [{"candidate": {"sdpMid": "0"}, "from": "pil-1"}]
    [record] = await call_store.list_for_user("mod-1")
    assert record.status == "completed"


@pytest.mark.asyncio
async def test_disconnect_runs_cleanup(wired, registry):
    await _connect(wired, "s1", "pil-1")
    await wired.trigger("disconnect", "s1", "client disconnect")

    assert registry.get_session("s1") is None
    assert not registry.is_user_reachable("pil-1")


@pytest.mark.asyncio
async def test_fanout_accepts_python_field_names(wired):
    await _connect(wired, "s-pil", "pil-1")
    await _connect(wired, "s-mod", "mod-1", "moderator")
    await wired.trigger("join_group", "s-pil", {"groupId": "g1"})
    await wired.trigger("join_group", "s-mod", {"groupId": "g1"})
    wired.clear()

    await wired.trigger("sos_alert", "s-pil", {"group_id": "g1", "pilgrim_id": "pil-1"})
    await wired.trigger("update_location", "s-pil", {"group_id": "g1", "pilgrim_id": "pil-1", "battery_percent": 40})

    [alert] = wired.received("s-mod", "sos-alert-received")
    assert alert["groupId"] == "g1"
    assert alert["pilgrimId"] == "pil-1"
    assert len(wired.received("s-mod", "location_update")) == 1
    assert wired.received("s-pil", "battery-update") == [{"battery_percent": 40, "pilgrimId": "pil-1"}]
