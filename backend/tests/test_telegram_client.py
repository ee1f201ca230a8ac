"""
Tests for TelegramClient, with httpx.MockTransport standing in for the
Bot API.
"""

import json

import httpx
import pytest

from services.telegram_client import TelegramClient, TransportError


def client_for(handler):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TelegramClient(token="123:abc", api_url="https://bot.test/", http=http)


@pytest.mark.asyncio
async def test_send_message_posts_payload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={'ok': True, 'result': {'message_id': 5}})

    client = client_for(handler)
    result = await client.send_message(42, "hi", parse_mode='Markdown')
    await client.close()

    assert result == {'message_id': 5}
    assert str(seen[0].url) == "https://bot.test/bot123:abc/sendMessage"
    assert json.loads(seen[0].content) == {'chat_id': 42, 'text': "hi", 'parse_mode': 'Markdown'}


@pytest.mark.asyncio
async def test_optional_fields_are_omitted():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={'ok': True, 'result': True})

    client = client_for(handler)
    await client.answer_callback_query("cb-1")
    await client.set_webhook("https://example.org/telegram/webhook", secret_token="s3cret",
                             allowed_updates=['message'])
    await client.close()

    assert bodies[0] == {'callback_query_id': "cb-1"}
    assert bodies[1] == {
        'url': "https://example.org/telegram/webhook",
        'secret_token': "s3cret",
        'allowed_updates': ['message'],
    }


@pytest.mark.asyncio
async def test_forward_message():
    bodies = []

    def handler(request):
        bodies.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={'ok': True, 'result': {'message_id': 9}})

    client = client_for(handler)
    await client.forward_message("1000", 42, 7)
    await client.close()

    assert bodies == [
        ("/bot123:abc/forwardMessage", {'chat_id': "1000", 'from_chat_id': 42, 'message_id': 7}),
    ]


class TestFailures:

    @pytest.mark.asyncio
    async def test_api_rejection(self):
        def handler(request):
            return httpx.Response(400, json={'ok': False, 'description': "Bad Request: chat not found"})

        client = client_for(handler)

        with pytest.raises(TransportError) as exc:
            await client.send_message(1, "hi")

        assert "chat not found" in str(exc.value)

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        client = client_for(handler)

        with pytest.raises(TransportError):
            await client.send_message(1, "hi")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request):
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        client = client_for(handler)

        with pytest.raises(TransportError):
            await client.send_message(1, "hi")
