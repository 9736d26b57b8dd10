"""Unit tests for SSE parsing and the streaming chat client."""
import json

import httpx
import pytest

from app.services.chat.client import ChatClient, ChatServiceError
from app.services.chat.stream import iter_sse_deltas


def chunk(content):
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]})


async def lines_of(*lines):
    for line in lines:
        yield line


async def collect(lines):
    return [delta async for delta in iter_sse_deltas(lines)]


class TestIterSseDeltas:
    """Test event stream parsing."""

    @pytest.mark.asyncio
    async def test_deltas_in_order(self):
        deltas = await collect(lines_of(chunk('{"type":'), "", chunk('"expense"}'), "", "data: [DONE]"))
        assert deltas == ['{"type":', '"expense"}']

    @pytest.mark.asyncio
    async def test_stops_at_done(self):
        deltas = await collect(lines_of(chunk("a"), "data: [DONE]", chunk("b")))
        assert deltas == ["a"]

    @pytest.mark.asyncio
    async def test_ignores_comments_and_other_fields(self):
        deltas = await collect(
            lines_of(": keep-alive", "event: message", "id: 7", chunk("hi"), "retry: 100")
        )
        assert deltas == ["hi"]

    @pytest.mark.asyncio
    async def test_tolerates_crlf(self):
        deltas = await collect(lines_of(chunk("a") + "\r\n", "\r\n", "data: [DONE]\r\n"))
        assert deltas == ["a"]

    @pytest.mark.asyncio
    async def test_skips_malformed_payloads(self):
        deltas = await collect(lines_of('data: {"choices": [', chunk("ok")))
        assert deltas == ["ok"]

    @pytest.mark.asyncio
    async def test_skips_chunks_without_content(self):
        role_only = "data: " + json.dumps({"choices": [{"delta": {"role": "assistant"}}]})
        no_choices = "data: " + json.dumps({"choices": []})
        deltas = await collect(lines_of(role_only, no_choices, chunk("x")))
        assert deltas == ["x"]

    @pytest.mark.asyncio
    async def test_ends_without_done(self):
        deltas = await collect(lines_of(chunk("a"), chunk("b")))
        assert deltas == ["a", "b"]


def sse_body(*parts):
    return ("\n\n".join([chunk(part) for part in parts] + ["data: [DONE]"]) + "\n\n").encode()


class TestChatClient:
    """Test the chat function client."""

    @pytest.mark.asyncio
    async def test_streams_deltas(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(
                200,
                content=sse_body("Hello", " there"),
                headers={"content-type": "text/event-stream"},
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = ChatClient(
                base_url="https://functions.test/functions/v1/",
                api_key="anon-key",
                http_client=http_client,
            )
            messages = [{"role": "user", "content": "500 tk lunch"}]
            deltas = [delta async for delta in client.stream(messages)]

        assert deltas == ["Hello", " there"]
        assert seen["url"] == "https://functions.test/functions/v1/chat"
        assert seen["body"] == {"messages": messages}
        assert seen["auth"] == "Bearer anon-key"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [429, 402, 500])
    async def test_error_status_carries_server_message(self, status):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"error": "Try again later."})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = ChatClient(base_url="https://functions.test", http_client=http_client)
            with pytest.raises(ChatServiceError) as exc_info:
                async for _ in client.stream([{"role": "user", "content": "hi"}]):
                    pass

        assert exc_info.value.status_code == status
        assert exc_info.value.message == "Try again later."

    @pytest.mark.asyncio
    async def test_error_without_json_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="Service Unavailable")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = ChatClient(base_url="https://functions.test", http_client=http_client)
            with pytest.raises(ChatServiceError) as exc_info:
                async for _ in client.stream([]):
                    pass

        assert exc_info.value.message == "Chat service error (503)"

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = ChatClient(base_url="https://functions.test", http_client=http_client)
            with pytest.raises(ChatServiceError) as exc_info:
                async for _ in client.stream([]):
                    pass

        assert exc_info.value.status_code is None
