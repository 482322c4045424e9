"""Outbound side effects: form-copy emails and realtime comment broadcasts.

Both are best-effort. Callers invoke them after their transaction has
committed and only log failures.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

import resend

from surveyhub.config import get_settings

logger = logging.getLogger(__name__)


class EmailSender:
    """Email dispatch interface."""

    def send(self, to: str, subject: str, body: str) -> None:
        raise NotImplementedError


class LogEmailSender(EmailSender):
    """Fallback used when no email provider is configured; records the message."""

    def __init__(self):
        self.sent: List[Dict[str, str]] = []

    def send(self, to: str, subject: str, body: str) -> None:
        self.sent.append({"to": to, "subject": subject, "body": body})
        logger.info("Email not sent (no provider configured): to=%s subject=%r", to, subject)


class ResendEmailSender(EmailSender):
    """Sends plain-text email through the Resend API."""

    def __init__(self, api_key: str, sender: str):
        self.api_key = api_key
        self.sender = sender

    def send(self, to: str, subject: str, body: str) -> None:
        resend.api_key = self.api_key
        params = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "text": body,
        }
        response = resend.Emails.send(params)
        provider_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info("Email sent: to=%s provider_id=%s", to, provider_id)


def get_email_sender() -> EmailSender:
    """Dependency returning the configured email sender."""
    settings = get_settings()
    if settings.resend_api_key:
        return ResendEmailSender(settings.resend_api_key, settings.email_from)
    return LogEmailSender()


Subscriber = Callable[[str, Dict[str, Any]], None]


class Broadcaster:
    """Realtime publish interface; rooms are named ``template_<id>``."""

    def publish(self, room: str, event: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError

    def subscribe(self, room: str, callback: Subscriber) -> None:
        raise NotImplementedError

    def unsubscribe(self, room: str, callback: Subscriber) -> None:
        raise NotImplementedError


class InMemoryBroadcaster(Broadcaster):
    """Process-local fan-out to subscriber callbacks, e.g. websocket senders."""

    def __init__(self):
        self._rooms: Dict[str, List[Subscriber]] = defaultdict(list)

    def subscribe(self, room: str, callback: Subscriber) -> None:
        self._rooms[room].append(callback)

    def unsubscribe(self, room: str, callback: Subscriber) -> None:
        if callback in self._rooms.get(room, []):
            self._rooms[room].remove(callback)

    def publish(self, room: str, event: str, payload: Dict[str, Any]) -> None:
        for callback in list(self._rooms.get(room, [])):
            callback(event, payload)


_broadcaster: Optional[InMemoryBroadcaster] = None


def get_broadcaster() -> Broadcaster:
    """Dependency returning the process-wide broadcaster."""
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = InMemoryBroadcaster()
    return _broadcaster
