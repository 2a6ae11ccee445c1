"""
Push Dispatcher - Firebase Cloud Messaging delivery

Two payload shapes:
- Data-only: incoming calls and urgent TTS messages. The client's background
  handler renders its own UI (full-screen call screen, spoken alert). A
  notification block here would make Android show a tray entry instead of
  waking the background handler, so it must not be present.
- Visible: everything else, with the "urgent" channel/sound when urgent.

Partial failures are reported, not raised. Only a provider-level failure
(auth, network, malformed batch) raises PushDispatchError.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from firebase_admin import messaging
from firebase_admin.exceptions import FirebaseError

from app.config.constants import (
    PUSH_CHANNEL_DEFAULT,
    PUSH_CHANNEL_URGENT,
    PUSH_MESSAGE_TYPE_TTS,
    PUSH_TYPE_INCOMING_CALL,
)
from app.config.firebase import get_firebase_app

from .exceptions import PushDispatchError

logger = logging.getLogger(__name__)


@dataclass
class PushResult:
    success_count: int = 0
    failure_count: int = 0
    failed_tokens: List[str] = field(default_factory=list)
    skipped: bool = False

    @property
    def delivered(self) -> bool:
        return self.success_count > 0


def is_data_only(data: Dict[str, Any], urgent: bool) -> bool:
    """Whether a payload must be sent without a visible notification block."""
    if data.get("type") == PUSH_TYPE_INCOMING_CALL:
        return True
    return urgent and data.get("messageType") == PUSH_MESSAGE_TYPE_TTS


def _stringify(data: Dict[str, Any]) -> Dict[str, str]:
    # FCM data values must be strings
    return {str(k): "" if v is None else str(v) for k, v in data.items()}


def build_message(
    tokens: List[str],
    title: str,
    body: str,
    data: Optional[Dict[str, Any]] = None,
    urgent: bool = False
) -> messaging.MulticastMessage:
    """Build the FCM multicast message for the given payload."""
    data = dict(data or {})
    payload = _stringify({**data, "priority": "urgent" if urgent else "normal"})

    if is_data_only(data, urgent):
        payload.setdefault("title", title)
        payload.setdefault("body", body)
        return messaging.MulticastMessage(
            tokens=tokens,
            data=payload,
            android=messaging.AndroidConfig(priority="high"),
            apns=messaging.APNSConfig(
                headers={"apns-priority": "5", "apns-push-type": "background"},
                payload=messaging.APNSPayload(aps=messaging.Aps(content_available=True)),
            ),
        )

    channel = PUSH_CHANNEL_URGENT if urgent else PUSH_CHANNEL_DEFAULT
    return messaging.MulticastMessage(
        tokens=tokens,
        notification=messaging.Notification(title=title, body=body),
        data=payload,
        android=messaging.AndroidConfig(
            priority="high" if urgent else "normal",
            notification=messaging.AndroidNotification(
                channel_id=channel,
                sound=channel,
                priority="max" if urgent else "default",
                default_sound=not urgent,
            ),
        ),
    )


class PushDispatcher:
    """Sends notifications to device tokens through FCM."""

    def __init__(
        self,
        send_multicast: Optional[Callable[[messaging.MulticastMessage], Any]] = None,
        app_getter: Callable[[], Any] = get_firebase_app,
    ):
        self._send_multicast = send_multicast
        self._app_getter = app_getter

    def _resolve_sender(self) -> Optional[Callable[[messaging.MulticastMessage], Any]]:
        if self._send_multicast is not None:
            return self._send_multicast

        app = self._app_getter()
        if app is None:
            return None
        return lambda message: messaging.send_each_for_multicast(message, app=app)

    async def send(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        urgent: bool = False
    ) -> PushResult:
        """
        Deliver one payload to a set of device tokens.

        Args:
            tokens: FCM registration tokens (empty/None entries are dropped)
            title: Notification title
            body: Notification body
            data: Extra key/values for the client
            urgent: High priority delivery on the urgent channel

        Returns:
            PushResult with per-token failures

        Raises:
            PushDispatchError: if the provider rejects the whole request
        """
        tokens = [t for t in (tokens or []) if t]
        if not tokens:
            return PushResult(skipped=True)

        sender = self._resolve_sender()
        if sender is None:
            logger.warning(f"[Push] Push disabled, dropping '{title}' for {len(tokens)} token(s)")
            return PushResult(skipped=True)

        message = build_message(tokens, title, body, data, urgent)

        try:
            response = await asyncio.to_thread(sender, message)
        except FirebaseError as e:
            logger.error(f"[Push] FCM rejected batch '{title}': {e}")
            raise PushDispatchError(str(e)) from e

        result = PushResult()
        for token, resp in zip(tokens, response.responses):
            if resp.success:
                result.success_count += 1
            else:
                result.failure_count += 1
                result.failed_tokens.append(token)
                logger.error(f"[Push] Failure sending to token {token}: {resp.exception}")

        if result.failed_tokens:
            logger.warning(f"[Push] Failed tokens: {result.failed_tokens}")
        logger.info(f"[Push] '{title}' sent: {result.success_count} ok, {result.failure_count} failed")
        return result


# Singleton instance
push_dispatcher = PushDispatcher()
