import asyncio
import json

import httpx
import pytest

from wadesk.services.waha_client import (
    ChatType,
    WahaClient,
    WahaError,
    determine_chat_type,
    serialized_chat_id,
)


@pytest.mark.parametrize(
    "chat_id, expected",
    [
        ("15551234567@c.us", ChatType.PERSONAL),
        ("120363000000000000@g.us", ChatType.GROUP),
        ("status@broadcast", ChatType.BROADCAST),
        ("120363000000000001@newsletter", ChatType.CHANNEL),
        ("15551234567@lid", ChatType.UNKNOWN),
    ],
)
def test_determine_chat_type(chat_id, expected):
    assert determine_chat_type(chat_id) is expected


def test_serialized_chat_id_accepts_both_shapes():
    assert serialized_chat_id({"id": "1@c.us"}) == "1@c.us"
    assert serialized_chat_id({"id": {"user": "1", "_serialized": "1@c.us"}}) == "1@c.us"
    assert serialized_chat_id({}) == ""


def recording_client(status_code=200, payload=None):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, json=payload if payload is not None else {})

    client = WahaClient(
        base_url="http://waha.test/", api_key="", transport=httpx.MockTransport(handler)
    )
    return client, seen


def test_messages_are_routed_by_chat_type():
    client, seen = recording_client(payload=[])

    async def run():
        await client.get_messages("default", "1@c.us", limit=5, offset=10)
        await client.get_messages("default", "status@broadcast")
        await client.get_messages("default", "9@newsletter")
        await client.close()

    asyncio.run(run())
    assert [r.url.path for r in seen] == [
        "/api/default/chats/1@c.us/messages",
        "/api/default/broadcasts/status@broadcast/messages",
        "/api/default/channels/9@newsletter/messages",
    ]
    assert seen[0].url.params["limit"] == "5"
    assert seen[0].url.params["offset"] == "10"
    assert "X-Api-Key" not in seen[0].headers


def test_send_text_routes_channels_to_posts():
    client, seen = recording_client(payload={"id": "x"})

    async def run():
        await client.send_text("default", "1@g.us", "hello group")
        await client.send_text("default", "9@newsletter", "hello channel")
        await client.close()

    asyncio.run(run())
    assert seen[0].url.path == "/api/sendText"
    assert json.loads(seen[0].content) == {
        "session": "default", "chatId": "1@g.us", "text": "hello group",
    }
    assert seen[1].url.path == "/api/default/channels/9@newsletter/posts"
    assert json.loads(seen[1].content) == {"text": "hello channel"}


def test_http_errors_become_waha_error():
    client, _ = recording_client(status_code=404)

    async def run():
        try:
            await client.get_session("missing")
        finally:
            await client.close()

    with pytest.raises(WahaError) as info:
        asyncio.run(run())
    assert info.value.status_code == 404


def test_unreachable_gateway():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = WahaClient(base_url="http://waha.test", transport=httpx.MockTransport(handler))

    async def run():
        running, error = await client.ping()
        with pytest.raises(WahaError) as info:
            await client.list_sessions()
        await client.close()
        return running, error, info.value.status_code

    running, error, status_code = asyncio.run(run())
    assert running is False
    assert "connection refused" in error
    assert status_code is None


def test_qr_reads_raw_value():
    client, seen = recording_client(payload={"mimetype": "text/plain", "value": "2@abc"})

    async def run():
        qr = await client.get_qr("default")
        await client.close()
        return qr

    assert asyncio.run(run()) == "2@abc"
    assert seen[0].url.params["format"] == "raw"
