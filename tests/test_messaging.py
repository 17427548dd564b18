import json

import httpx
import pytest

from medaccess.app.core import result as r
from medaccess.app.services.messaging import (
    HttpSmsSender,
    LogMessageSender,
    close_message_sender,
    create_message_sender,
    get_message_sender,
)
from tests.conftest import make_settings


def _sender(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpSmsSender("https://sms.example/send", sender="MedAccess", client=client)


@pytest.mark.asyncio
async def test_posts_message_to_gateway():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(202)

    result = await _sender(handler).send(body="Your verification code is 123456", target="+33612345678")

    assert result.success
    assert seen == [{"from": "MedAccess", "to": "+33612345678", "body": "Your verification code is 123456"}]


@pytest.mark.asyncio
async def test_gateway_error_is_a_failed_result():
    result = await _sender(lambda request: httpx.Response(503)).send(body="hi", target="+33612345678")
    assert result.kind == r.MESSAGE_NOT_SENT


@pytest.mark.asyncio
async def test_missing_phone_number():
    assert (await LogMessageSender().send(body="hi", target=None)).kind == r.MESSAGE_NOT_SENT


def test_sender_selection():
    assert isinstance(create_message_sender(make_settings()), LogMessageSender)
    assert isinstance(
        create_message_sender(make_settings(SMS_GATEWAY_URL="https://sms.example/send")),
        HttpSmsSender,
    )


@pytest.mark.asyncio
async def test_shared_sender_is_closed_on_shutdown():
    sender = get_message_sender(make_settings(SMS_GATEWAY_URL="https://sms.example/send"))
    assert get_message_sender(make_settings()) is sender

    await close_message_sender()

    assert sender._client.is_closed
    assert isinstance(get_message_sender(make_settings()), LogMessageSender)
    await close_message_sender()
