"""
Halapi SDK - Client Tests
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import RecordingTransport, json_response, make_response, sse
from halapi import (
    AsyncHalapi,
    ChatStreamResult,
    EventType,
    HalapiConfig,
    MusicAlbum,
    MusicTrackItem,
    static_config,
)
from halapi.errors import (
    AuthenticationError,
    ConfigurationError,
    HalapiError,
    InvalidRequestError,
    RateLimitError,
    StreamError,
)
from halapi.transport import TransportResponse


METADATA = {"requestId": "req_1", "timestamp": "2024-01-15T10:30:00Z"}


class TestClientCreation:
    """Tests for AsyncHalapi construction and configuration."""

    def test_transport_and_http_client_are_exclusive(self, config, transport):
        with pytest.raises(ValueError):
            AsyncHalapi(static_config(config), transport=transport, http_client=object())

    @pytest.mark.asyncio
    async def test_missing_token_fails_before_any_request(self, transport):
        client = AsyncHalapi(
            static_config(HalapiConfig(api_url="https://api.example.com", api_token="")),
            transport=transport,
        )

        with pytest.raises(ConfigurationError, match="API token not configured"):
            await client.chat_stream("Hello")

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_async_config_provider(self, transport):
        async def provider():
            return HalapiConfig(api_url="https://async.example.com/", api_token="async_token")

        transport.responses.append(json_response({"success": True, "conversations": []}))
        client = AsyncHalapi(provider, transport=transport)

        await client.get_conversations()

        assert transport.last_request.url == "https://async.example.com/api/halap/conversations"
        assert transport.last_request.headers["Authorization"] == "Bearer async_token"

    @pytest.mark.asyncio
    async def test_config_is_resolved_on_every_call(self, transport):
        tokens = iter(["first", "second"])
        client = AsyncHalapi(
            lambda: HalapiConfig(api_url="https://api.example.com", api_token=next(tokens)),
            transport=transport,
        )
        transport.responses.extend([
            json_response({"success": True, "conversations": []}),
            json_response({"success": True, "conversations": []}),
        ])

        await client.get_conversations()
        await client.get_conversations()

        assert [r.headers["Authorization"] for r in transport.requests] == [
            "Bearer first",
            "Bearer second",
        ]

    @pytest.mark.asyncio
    async def test_aclose_closes_transport(self, config):
        transport = RecordingTransport()
        transport.aclose = AsyncMock()

        async with AsyncHalapi(static_config(config), transport=transport):
            pass

        transport.aclose.assert_awaited_once()


class TestChatStream:
    """Tests for the streaming chat call."""

    @pytest.mark.asyncio
    async def test_request_shape(self, client, transport):
        transport.responses.append(make_response([]))

        stream = await client.chat_stream("Hello", metadata={"source": "tests"})
        await stream.collect()

        request = transport.last_request
        assert request.method == "POST"
        assert request.url == "https://api.example.com/api/halap/chat/stream"
        assert request.headers["Authorization"] == "Bearer test_token"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["User-Agent"].startswith("halapi-python/")
        assert request.json == {
            "query": "Hello",
            "externalUserId": "sdk-user",
            "metadata": {"source": "tests"},
        }

    @pytest.mark.asyncio
    async def test_request_with_conversation(self, client, transport):
        transport.responses.append(make_response([]))

        stream = await client.chat_stream("More", conversation_id="c1", external_user_id="u42")
        await stream.collect()

        assert transport.last_request.json == {
            "query": "More",
            "externalUserId": "u42",
            "conversationId": "c1",
        }

    @pytest.mark.asyncio
    async def test_full_reply(self, client, transport):
        transport.responses.append(make_response(
            [
                sse("text-delta", {"delta": "Try "}),
                sse("tool-call", {"toolName": "search", "toolCallId": "t1", "args": {"q": "jazz"}}),
                sse("tool-result", {"toolCallId": "t1", "result": {"hits": 2}, "success": True}),
                sse("artifacts", {
                    "books": [],
                    "music": [
                        {"type": "album", "title": "Kind of Blue", "artist": "Miles Davis"},
                        {"type": "track", "title": "So What", "artist": "Miles Davis"},
                    ],
                }),
                sse("text-delta", {"delta": "these."}),
                sse("done", {
                    "messageId": "m1",
                    "conversationId": "c1",
                    "totalTokens": {"input": 10, "output": 20},
                    "executionTimeMs": 1200,
                    "modelUsed": "model-x",
                }),
            ],
            headers={"X-Conversation-Id": "c1", "X-Message-Id": "m1"},
        ))

        stream = await client.chat_stream("Recommend jazz")
        events = [event async for event in stream]

        assert [e.type for e in events] == [
            EventType.TEXT_DELTA,
            EventType.TOOL_CALL,
            EventType.TOOL_RESULT,
            EventType.ARTIFACTS,
            EventType.TEXT_DELTA,
            EventType.DONE,
        ]
        text = "".join(e.delta for e in events if e.type is EventType.TEXT_DELTA)
        assert text == "Try these."

        assert events[1].as_tool_call().args == {"q": "jazz"}
        assert events[2].as_tool_result().success is True

        music = events[3].as_artifacts().music
        assert isinstance(music[0], MusicAlbum)
        assert isinstance(music[1], MusicTrackItem)

        done = events[5].as_done()
        assert done.total_tokens.total == 30
        assert done.model_used == "model-x"

        assert stream.result == ChatStreamResult(conversation_id="c1", message_id="m1")

    @pytest.mark.asyncio
    async def test_error_status_uses_api_message(self, client, transport):
        transport.responses.append(json_response(
            {"success": False, "error": {"code": "bad_query", "message": "Query too long"}, "metadata": METADATA},
            status_code=400,
        ))

        with pytest.raises(HalapiError) as exc_info:
            await client.chat_stream("x" * 10000)

        assert exc_info.value.message == "Chat stream failed: Query too long"
        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "bad_query"
        assert exc_info.value.request_id == "req_1"

    @pytest.mark.asyncio
    async def test_error_status_without_json(self, client, transport):
        response = make_response([b"<html>Bad Gateway</html>"], status_code=502)
        transport.responses.append(response)

        with pytest.raises(HalapiError) as exc_info:
            await client.chat_stream("Hello")

        assert exc_info.value.message == "Chat stream failed: HTTP 502"
        assert exc_info.value.status_code == 502
        assert response.is_closed

    @pytest.mark.asyncio
    async def test_unauthorized_maps_to_authentication_error(self, client, transport):
        transport.responses.append(json_response({"error": {"message": "Invalid token"}}, status_code=401))

        with pytest.raises(AuthenticationError, match="Invalid token"):
            await client.chat_stream("Hello")

    @pytest.mark.asyncio
    async def test_rate_limit_reads_retry_after(self, client, transport):
        transport.responses.append(make_response([b""], status_code=429, headers={"Retry-After": "7"}))

        with pytest.raises(RateLimitError) as exc_info:
            await client.chat_stream("Hello")

        assert exc_info.value.retry_after == 7
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_missing_body_fails_before_events(self, client, transport):
        closed = []

        async def on_close():
            closed.append(True)

        transport.responses.append(TransportResponse(200, {}, None, on_close=on_close))

        with pytest.raises(StreamError, match="Response body is not readable"):
            await client.chat_stream("Hello")

        assert closed == [True]

    @pytest.mark.asyncio
    async def test_signal_interrupts_stream(self, client, transport):
        signal = asyncio.Event()
        response = make_response([sse("text-delta", {"delta": str(i)}) for i in range(3)])
        transport.responses.append(response)

        stream = await client.chat_stream("Hello", signal=signal)
        async for event in stream:
            signal.set()

        assert stream.interrupted
        assert stream.events_received == 1
        assert response._on_close.calls == 1
        assert transport.last_request.signal is signal


class TestConversations:
    """Tests for conversation accessors."""

    @pytest.mark.asyncio
    async def test_list_conversations(self, client, transport):
        transport.responses.append(json_response({
            "success": True,
            "conversations": [{
                "id": "c1",
                "createdAt": 1700000000,
                "updatedAt": 1700000100,
                "messageCount": 4,
                "externalUserId": "u1",
            }],
            "metadata": {**METADATA, "count": 1, "hasMore": False},
        }))

        response = await client.get_conversations(external_user_id="u1", limit=5)

        request = transport.last_request
        assert request.method == "GET"
        assert request.url == "https://api.example.com/api/halap/conversations"
        assert request.params == {"limit": "5", "externalUserId": "u1"}
        assert "Content-Type" not in request.headers
        assert response.conversations[0].id == "c1"
        assert response.conversations[0].message_count == 4
        assert response.metadata.count == 1
        assert response.metadata.has_more is False

    @pytest.mark.asyncio
    async def test_default_limit(self, client, transport):
        transport.responses.append(json_response({"success": True, "conversations": []}))

        await client.get_conversations()

        assert transport.last_request.params == {"limit": "20"}

    @pytest.mark.asyncio
    async def test_empty_body_is_empty_list(self, client, transport):
        transport.responses.append(make_response([b"  \n"]))

        response = await client.get_conversations()

        assert response.success is True
        assert response.conversations == []
        assert response.metadata.count == 0
        assert response.metadata.has_more is False
        assert response.metadata.timestamp

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, client, transport):
        transport.responses.append(make_response([b"{oops"]))

        with pytest.raises(HalapiError, match="Invalid JSON response from API"):
            await client.get_conversations()

    @pytest.mark.asyncio
    async def test_get_conversation(self, client, transport):
        transport.responses.append(json_response({
            "success": True,
            "conversation": {"id": "c1", "createdAt": 1, "updatedAt": 2, "messageCount": 2},
            "messages": [
                {"id": "m1", "conversationId": "c1", "role": "user", "content": "Hi", "createdAt": 1},
                {
                    "id": "m2",
                    "conversationId": "c1",
                    "role": "assistant",
                    "content": "Hello",
                    "createdAt": 2,
                    "artifacts": {"books": [{"title": "Dune", "author": "Frank Herbert"}], "music": []},
                    "toolCalls": [{"toolCallId": "t1", "toolName": "search", "status": "success"}],
                },
            ],
            "metadata": METADATA,
        }))

        response = await client.get_conversation("c1")

        assert transport.last_request.url == "https://api.example.com/api/halap/conversations/c1"
        assert response.conversation.id == "c1"
        assert [m.role for m in response.messages] == ["user", "assistant"]
        assert response.messages[1].artifacts.books[0].title == "Dune"
        assert response.messages[1].tool_calls[0].status == "success"

    @pytest.mark.asyncio
    async def test_get_conversation_not_found(self, client, transport):
        transport.responses.append(json_response(
            {"success": False, "error": {"code": "not_found", "message": "Conversation not found"}},
            status_code=404,
        ))

        with pytest.raises(HalapiError) as exc_info:
            await client.get_conversation("missing")

        assert str(exc_info.value) == "Failed to fetch conversation: Conversation not found"
        assert exc_info.value.status_code == 404


class TestArtifacts:
    """Tests for artifact accessors."""

    @pytest.mark.asyncio
    async def test_book_artifacts(self, client, transport):
        transport.responses.append(json_response({
            "success": True,
            "messageId": "m1",
            "books": [{"title": "Dune", "author": "Frank Herbert", "isbn": "9780441013593", "coverUrl": "https://x/c.jpg"}],
            "metadata": {**METADATA, "count": 1},
        }))

        response = await client.get_book_artifacts("m1")

        assert transport.last_request.url == "https://api.example.com/api/halap/artifacts/books/m1"
        assert response.message_id == "m1"
        assert response.books[0].cover_url == "https://x/c.jpg"

    @pytest.mark.asyncio
    async def test_music_artifacts(self, client, transport):
        transport.responses.append(json_response({
            "success": True,
            "messageId": "m1",
            "music": [
                {"type": "album", "album": "Blue Train", "artist_name": "John Coltrane",
                 "tracks": [{"title": "Moment's Notice", "duration": 550}]},
                {"type": "track", "title": "Naima", "artist": "John Coltrane", "num_track": 3},
            ],
            "metadata": METADATA,
        }))

        response = await client.get_music_artifacts("m1")

        assert transport.last_request.url == "https://api.example.com/api/halap/artifacts/music/m1"
        album, track = response.music
        assert album.display_title == "Blue Train"
        assert album.display_artist == "John Coltrane"
        assert album.tracks[0].duration == 550
        assert track.num_track == 3

    @pytest.mark.asyncio
    async def test_artifacts_error(self, client, transport):
        transport.responses.append(make_response([b""], status_code=500))

        with pytest.raises(HalapiError, match="Failed to fetch music artifacts: HTTP 500"):
            await client.get_music_artifacts("m1")


class TestBookPresentations:
    """Tests for the ISBN batch lookup."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, 101])
    async def test_out_of_range_fails_without_request(self, client, transport, count):
        isbns = [f"978000000{i:04d}" for i in range(count)]

        with pytest.raises(InvalidRequestError):
            await client.get_book_presentations(isbns)

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_empty_message(self, client):
        with pytest.raises(InvalidRequestError, match="At least one ISBN-13 is required"):
            await client.get_book_presentations([])

    @pytest.mark.asyncio
    async def test_too_many_message(self, client):
        with pytest.raises(InvalidRequestError, match="Maximum 100 ISBN-13s allowed per request"):
            await client.get_book_presentations(["9780000000000"] * 101)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [1, 100])
    async def test_bounds_are_inclusive(self, client, transport, count):
        isbns = ["9780441013593"] * count
        transport.responses.append(json_response({"success": True, "presentations": [], "metadata": METADATA}))

        response = await client.get_book_presentations(isbns)

        request = transport.last_request
        assert request.method == "POST"
        assert request.url == "https://api.example.com/api/halap/books/presentations"
        assert request.json == {"isbn13s": isbns}
        assert response.success is True
        assert response.data["presentations"] == []
