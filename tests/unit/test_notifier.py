"""Unit tests for the notification webhook client"""

import httpx
import json
import pytest
from billing_gateway.infrastructure.clients.notifier import NotificationClient

PAYLOAD = {"event": "payment_recorded", "contract_id": "c-1"}


def make_client(handler) -> NotificationClient:
    client = NotificationClient(webhook_url="http://notifications.test/hook", transport=httpx.MockTransport(handler))
    client.backoff_base = 0
    return client


@pytest.mark.asyncio
async def test_send_event_posts_payload():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(202)

    await make_client(handler).send_event(PAYLOAD)

    assert len(received) == 1
    assert received[0].url == "http://notifications.test/hook"
    assert json.loads(received[0].content) == PAYLOAD


@pytest.mark.asyncio
async def test_send_event_retries_server_errors():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503) if len(calls) < 3 else httpx.Response(200)

    await make_client(handler).send_event(PAYLOAD)

    assert len(calls) == 3


@pytest.mark.asyncio
async def test_send_event_gives_up_after_max_retries():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    client = make_client(handler)
    with pytest.raises(httpx.HTTPStatusError):
        await client.send_event(PAYLOAD)

    assert len(calls) == client.max_retries


@pytest.mark.asyncio
async def test_send_event_does_not_retry_client_errors():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(422)

    with pytest.raises(httpx.HTTPStatusError):
        await make_client(handler).send_event(PAYLOAD)

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_send_event_retries_network_errors():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200)

    await make_client(handler).send_event(PAYLOAD)

    assert len(calls) == 2
