"""
Halapi SDK - Async Client

Streaming chat plus conversation and artifact lookups.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional

import httpx

from .config import ConfigProvider, HalapiConfig, resolve_config
from .errors import HalapiError, InvalidRequestError, StreamError
from .logging import get_logger
from .models import (
    BookArtifactsResponse,
    BookPresentationsResponse,
    ConversationDetailResponse,
    ConversationsListResponse,
    MusicArtifactsResponse,
)
from .streaming import ChatStream
from .transport import HttpxTransport, Transport, TransportRequest, TransportResponse


__version__ = "1.0.0"

logger = get_logger("halapi.client")

DEFAULT_EXTERNAL_USER_ID = "sdk-user"
MAX_ISBNS_PER_REQUEST = 100


class AsyncHalapi:
    """
    Halapi async Python client.

    Configuration is fetched from the provider on every call, so the
    provider may rotate tokens or URLs at any time.

    Args:
        config_provider: Zero-argument callable returning a HalapiConfig
            (or an awaitable of one). See halapi.config for adapters.
        transport: Custom transport. Defaults to HttpxTransport.
        http_client: Preconfigured httpx.AsyncClient for the default
            transport (custom headers, event hooks, mock transports).
        timeout: Request timeout in seconds for the default transport.

    Example:
        >>> client = AsyncHalapi(static_config(HalapiConfig(
        ...     api_url="https://api.example.com", api_token="your-token")))
        >>> stream = await client.chat_stream("Hello!")
        >>> async for event in stream:
        ...     if event.type is EventType.TEXT_DELTA:
        ...         print(event.delta, end="")
    """

    def __init__(
        self,
        config_provider: ConfigProvider,
        transport: Optional[Transport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0
    ):
        if transport is not None and http_client is not None:
            raise ValueError("Pass either transport or http_client, not both")

        self._config_provider = config_provider
        self._transport = transport or HttpxTransport(http_client, timeout=timeout)

    async def chat_stream(
        self,
        query: str,
        conversation_id: Optional[str] = None,
        external_user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        signal: Optional[asyncio.Event] = None
    ) -> ChatStream:
        """
        Send a chat query and stream the reply.

        The request is sent and its status checked before this returns;
        events are then read lazily as the stream is iterated.

        Args:
            query: The user's message.
            conversation_id: Continue an existing conversation.
            external_user_id: External user identifier for tracking.
            metadata: Additional metadata to attach to the request.
            signal: Cancellation flag; setting it stops the stream.

        Returns:
            ChatStream yielding StreamEvents; its `result` carries the
            conversation and message ids once iteration ends.

        Raises:
            ConfigurationError: If no API token is configured.
            HalapiError: If the API answers with a non-2xx status.
            StreamError: If the response body cannot be read.
        """
        payload: Dict[str, Any] = {
            "query": query,
            "externalUserId": external_user_id or DEFAULT_EXTERNAL_USER_ID,
        }
        if conversation_id is not None:
            payload["conversationId"] = conversation_id
        if metadata is not None:
            payload["metadata"] = metadata

        response = await self._send(
            "POST", "/api/halap/chat/stream", "Chat stream failed",
            json=payload, signal=signal
        )
        if response.body is None:
            await response.aclose()
            raise StreamError("Response body is not readable")

        logger.debug(
            "Chat stream opened",
            conversation_id=response.headers.get("X-Conversation-Id"),
            message_id=response.headers.get("X-Message-Id"),
        )
        return ChatStream(response, signal=signal)

    async def get_conversations(
        self,
        external_user_id: Optional[str] = None,
        limit: int = 20
    ) -> ConversationsListResponse:
        """
        List conversations.

        Args:
            external_user_id: Only conversations of this external user.
            limit: Maximum number of conversations to return.

        Returns:
            ConversationsListResponse. An empty body from the API is
            returned as an empty successful list.
        """
        params = {"limit": str(limit)}
        if external_user_id:
            params["externalUserId"] = external_user_id

        response = await self._send(
            "GET",
            "/api/halap/conversations",
            "Failed to fetch conversations",
            params=params,
        )
        text = await response.text()
        if not text.strip():
            return ConversationsListResponse.empty()

        return ConversationsListResponse.from_dict(_parse_json(text, "conversations"))

    async def get_conversation(self, conversation_id: str) -> ConversationDetailResponse:
        """Get a conversation with its full message history."""
        response = await self._send(
            "GET",
            f"/api/halap/conversations/{conversation_id}",
            "Failed to fetch conversation",
        )
        text = await response.text()
        return ConversationDetailResponse.from_dict(_parse_json(text, "conversation"))

    async def get_book_artifacts(self, message_id: str) -> BookArtifactsResponse:
        """Get the book artifacts attached to a message."""
        data = await self._request_json(
            "GET",
            f"/api/halap/artifacts/books/{message_id}",
            "Failed to fetch book artifacts",
        )
        return BookArtifactsResponse.from_dict(data)

    async def get_music_artifacts(self, message_id: str) -> MusicArtifactsResponse:
        """Get the music artifacts attached to a message."""
        data = await self._request_json(
            "GET",
            f"/api/halap/artifacts/music/{message_id}",
            "Failed to fetch music artifacts",
        )
        return MusicArtifactsResponse.from_dict(data)

    async def get_book_presentations(self, isbn13s: List[str]) -> BookPresentationsResponse:
        """
        Get presentations for several books at once.

        Args:
            isbn13s: Between 1 and 100 ISBN-13 strings.

        Raises:
            InvalidRequestError: If the list is empty or too long. No
                request is sent in that case.
        """
        if not isbn13s:
            raise InvalidRequestError("At least one ISBN-13 is required", param="isbn13s")
        if len(isbn13s) > MAX_ISBNS_PER_REQUEST:
            raise InvalidRequestError(
                f"Maximum {MAX_ISBNS_PER_REQUEST} ISBN-13s allowed per request",
                param="isbn13s",
            )

        data = await self._request_json(
            "POST",
            "/api/halap/books/presentations",
            "Failed to fetch book presentations",
            json={"isbn13s": list(isbn13s)},
        )
        return BookPresentationsResponse.from_dict(data)

    # ============================================================
    # Private methods
    # ============================================================

    def _headers(self, config: HalapiConfig, with_body: bool) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {config.api_token}",
            "User-Agent": f"halapi-python/{__version__}",
        }
        if with_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        context: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, str]] = None,
        signal: Optional[asyncio.Event] = None
    ) -> TransportResponse:
        """Send a request and fail on non-2xx statuses."""
        config = await resolve_config(self._config_provider)
        request = TransportRequest(
            method=method,
            url=f"{config.api_url}{path}",
            headers=self._headers(config, with_body=json is not None),
            json=json,
            params=params,
            signal=signal,
        )

        response = await self._transport.send(request)
        if not response.ok:
            await raise_for_response(response, context)
        return response

    async def _request_json(self, method: str, path: str, context: str, **kwargs) -> Any:
        response = await self._send(method, path, context, **kwargs)
        return _parse_json(await response.text(), context)

    async def aclose(self) -> None:
        """Close the underlying transport, if it can be closed."""
        aclose = getattr(self._transport, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> AsyncHalapi:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()


async def raise_for_response(response: TransportResponse, context: str) -> None:
    """
    Raise the HalapiError matching a non-2xx response.

    The body is read (and the response closed) to pick up the API's own
    error message when it sent one.
    """
    error_data: Any = None
    try:
        error_data = await response.json()
    except (ValueError, HalapiError):
        pass

    retry_after = None
    if response.headers.get("Retry-After", "").isdigit():
        retry_after = int(response.headers["Retry-After"])

    error = HalapiError.from_response(
        error_data, response.status_code, context, retry_after=retry_after
    )
    logger.debug("Request failed", status_code=response.status_code, error=error.message)
    raise error


def _parse_json(text: str, context: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as e:
        logger.error("Failed to parse response", context=context, body=text[:200])
        raise HalapiError(f"Invalid JSON response from API: {e}", code="invalid_response")
