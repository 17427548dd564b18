# medaccess/app/services/messaging.py
"""
Outbound SMS used for phone verification codes.

Senders never raise on delivery problems; they return a failed Result
(kind MESSAGE_NOT_SENT) and the caller decides what to do with it.
"""
import logging
from typing import Any, Optional, Protocol

import httpx

from medaccess.app.core import result as r
from medaccess.app.core.config import Settings

logger = logging.getLogger(__name__)


class MessageSender(Protocol):
    async def send(self, body: str, target: str) -> r.Result[Any]: ...


class LogMessageSender:
    """Development sender: writes the message to the log instead of a phone."""

    async def send(self, body: str, target: str) -> r.Result[Any]:
        if not target:
            return r.fail(r.MESSAGE_NOT_SENT, "No phone number on this account")
        logger.info("SMS to %s: %s", target, body)
        return r.ok()


class HttpSmsSender:
    """Posts ``{from, to, body}`` as JSON to an SMS gateway."""

    def __init__(self, url: str, token: str = "", sender: str = "", timeout: float = 10.0,
                 client: Optional[httpx.AsyncClient] = None) -> None:
        self._url = url
        self._sender = sender
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = client or httpx.AsyncClient(timeout=timeout, headers=headers)

    async def send(self, body: str, target: str) -> r.Result[Any]:
        if not target:
            return r.fail(r.MESSAGE_NOT_SENT, "No phone number on this account")
        try:
            response = await self._client.post(
                self._url,
                json={"from": self._sender, "to": target, "body": body},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("SMS gateway error for %s: %s", target, e)
            return r.fail(r.MESSAGE_NOT_SENT, "Verification message could not be sent")
        return r.ok()

    async def aclose(self) -> None:
        await self._client.aclose()


def create_message_sender(settings: Settings) -> MessageSender:
    if settings.SMS_GATEWAY_URL:
        return HttpSmsSender(
            settings.SMS_GATEWAY_URL,
            token=settings.SMS_GATEWAY_TOKEN,
            sender=settings.SMS_SENDER,
        )
    return LogMessageSender()


_sender: Optional[MessageSender] = None


def get_message_sender(settings: Settings) -> MessageSender:
    """Process-wide sender sharing one HTTP connection pool."""
    global _sender
    if _sender is None:
        _sender = create_message_sender(settings)
    return _sender


async def close_message_sender() -> None:
    global _sender
    if isinstance(_sender, HttpSmsSender):
        await _sender.aclose()
    _sender = None
