from types import SimpleNamespace

import pytest
from firebase_admin import exceptions as firebase_exceptions

from app.services.push import PushDispatcher, PushDispatchError, build_message, is_data_only


def _batch(*outcomes):
    return SimpleNamespace(responses=[
        SimpleNamespace(success=ok, exception=None if ok else Exception("Requested entity was not found."))
        for ok in outcomes
    ])


def test_incoming_call_is_data_only():
    message = build_message(
        ["tok"], "Incoming Call", "Moderator One is calling you",
        {"type": "incoming_call", "callId": "c1", "channelName": None},
        urgent=True,
    )

    assert message.notification is None
    assert message.data["type"] == "incoming_call"
    assert message.data["title"] == "Incoming Call"
    assert message.data["body"] == "Moderator One is calling you"
    assert message.data["priority"] == "urgent"
    assert message.data["channelName"] == ""
    assert message.android.priority == "high"
    assert message.apns.headers["apns-priority"] == "5"
    assert message.apns.headers["apns-push-type"] == "background"
    assert message.apns.payload.aps.content_available is True


def test_tts_is_data_only_only_when_urgent():
    assert is_data_only({"messageType": "tts"}, urgent=True)
    assert not is_data_only({"messageType": "tts"}, urgent=False)
    assert not is_data_only({"type": "missed_call"}, urgent=True)


def test_visible_urgent_and_normal_channels():
    urgent = build_message(["tok"], "SOS ALERT", "help", {"type": "sos_alert", "lat": 21.4}, urgent=True)
    assert urgent.notification.title == "SOS ALERT"
    assert urgent.data["lat"] == "21.4"
    assert urgent.android.priority == "high"
    assert urgent.android.notification.channel_id == "urgent"
    assert urgent.android.notification.sound == "urgent"
    assert urgent.android.notification.priority == "max"
    assert urgent.android.notification.default_sound is False

    normal = build_message(["tok"], "Missed Call", "You missed a call", {"type": "missed_call"})
    assert normal.data["priority"] == "normal"
    assert normal.data["type"] == "missed_call"
    assert normal.android.priority == "normal"
    assert normal.android.notification.channel_id == "default"
    assert normal.android.notification.default_sound is True


@pytest.mark.asyncio
async def test_send_reports_partial_failures():
    sent = []

    def fake_send(message):
        sent.append(message)
        return _batch(True, False)

    dispatcher = PushDispatcher(send_multicast=fake_send)
    result = await dispatcher.send(["good", "", None, "stale"], "Missed Call", "body", {"type": "missed_call"})

    assert sent[0].tokens == ["good", "stale"]
    assert result.success_count == 1
    assert result.failure_count == 1
    assert result.failed_tokens == ["stale"]
    assert result.delivered


@pytest.mark.asyncio
async def test_send_skips_without_tokens_or_credentials():
    calls = []
    dispatcher = PushDispatcher(send_multicast=lambda m: calls.append(m))
    result = await dispatcher.send([], "t", "b")
    assert result.skipped
    assert calls == []

    disabled = PushDispatcher(app_getter=lambda: None)
    result = await disabled.send(["tok"], "t", "b")
    assert result.skipped
    assert not result.delivered


@pytest.mark.asyncio
async def test_provider_failure_raises():
    def failing_send(message):
        raise firebase_exceptions.UnavailableError("FCM unavailable")

    dispatcher = PushDispatcher(send_multicast=failing_send)
    with pytest.raises(PushDispatchError):
        await dispatcher.send(["tok"], "t", "b")
