"""
Halapi SDK - Transport

The client talks to the network only through a Transport: something
that takes a TransportRequest and returns a TransportResponse whose
body can be read chunk by chunk. HttpxTransport is the default.

To inject headers, interceptors or a mock server, hand the client a
preconfigured httpx.AsyncClient (or a Transport of your own):

    http_client = httpx.AsyncClient(headers={"X-Token-Hash": "abc123"})
    client = AsyncHalapi(env_config(), http_client=http_client)
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Mapping,
    Optional,
    Protocol,
    runtime_checkable,
)

import httpx

from .errors import ConnectionError, StreamError, TimeoutError


@dataclass
class TransportRequest:
    """A request as the client wants it sent."""
    method: str
    url: str
    headers: Dict[str, str]
    json: Optional[Any] = None
    params: Optional[Dict[str, str]] = None
    # Once set, pending body reads stop and the body ends early
    signal: Optional[asyncio.Event] = None


class TransportResponse:
    """
    Response handed back by a transport.

    The body is an async iterator of raw byte chunks, or None when
    the transport has nothing readable. Closing is idempotent.
    """

    def __init__(
        self,
        status_code: int,
        headers: Mapping[str, str],
        body: Optional[AsyncIterator[bytes]],
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.status_code = status_code
        self.headers = httpx.Headers(headers)
        self.body = body
        self._on_close = on_close
        self._closed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def aread(self) -> bytes:
        """Read the whole body and close the response."""
        try:
            if self.body is None:
                return b""
            return b"".join([chunk async for chunk in self.body])
        finally:
            await self.aclose()

    async def text(self) -> str:
        return (await self.aread()).decode("utf-8", errors="replace")

    async def json(self) -> Any:
        return json.loads(await self.text())

    async def aclose(self) -> None:
        """Release the body. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        aclose_body = getattr(self.body, "aclose", None)
        try:
            if aclose_body is not None:
                await aclose_body()
        finally:
            if self._on_close is not None:
                await self._on_close()


@runtime_checkable
class Transport(Protocol):
    """Anything that can send a TransportRequest."""

    async def send(self, request: TransportRequest) -> TransportResponse:
        ...


class HttpxTransport:
    """
    Transport backed by httpx.AsyncClient.

    Responses are always opened in streaming mode; the caller decides
    whether to read the body whole or chunk by chunk.

    Args:
        client: Preconfigured client. When omitted one is created lazily
            and owned (closed by aclose()).
        timeout: Timeout in seconds for an owned client.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0
    ):
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or (self._owns_client and self._client.is_closed):
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def send(self, request: TransportRequest) -> TransportResponse:
        client = self._get_client()
        http_request = client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            json=request.json,
            params=request.params,
        )

        try:
            response = await client.send(http_request, stream=True)
        except httpx.TimeoutException:
            raise TimeoutError("Request timed out")
        except httpx.ConnectError:
            raise ConnectionError("Failed to connect to API")
        except httpx.RequestError as e:
            raise ConnectionError(f"Request failed: {e}")

        return TransportResponse(
            status_code=response.status_code,
            headers=response.headers,
            body=_iter_body(response, request.signal),
            on_close=response.aclose,
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()


async def _next_chunk(body: AsyncIterator[bytes]) -> Optional[bytes]:
    try:
        return await body.__anext__()
    except StopAsyncIteration:
        return None


async def read_chunk(
    body: AsyncIterator[bytes],
    *signals: Optional[asyncio.Event]
) -> Optional[bytes]:
    """
    Read the next chunk of a body, racing it against cancellation flags.

    Returns None once the body is exhausted or any of `signals` is set.
    A read still pending when a flag is set is cancelled, so a quiet
    connection cannot hold the caller past cancellation.
    """
    flags = [s for s in signals if s is not None]
    if any(flag.is_set() for flag in flags):
        return None
    if not flags:
        return await _next_chunk(body)

    read = asyncio.ensure_future(_next_chunk(body))
    waiters = [asyncio.ensure_future(flag.wait()) for flag in flags]
    try:
        await asyncio.wait([read, *waiters], return_when=asyncio.FIRST_COMPLETED)
    finally:
        pending = [task for task in (read, *waiters) if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)

    if any(flag.is_set() for flag in flags):
        if not read.cancelled():
            # Retrieve it so a failed read is not reported as unhandled
            read.exception()
        return None
    return read.result()


async def _iter_body(
    response: httpx.Response,
    signal: Optional[asyncio.Event] = None
) -> AsyncIterator[bytes]:
    """Yield decoded body chunks, mapping httpx failures to SDK errors."""
    chunks = response.aiter_bytes().__aiter__()
    try:
        while True:
            chunk = await read_chunk(chunks, signal)
            if chunk is None:
                return
            yield chunk
    except httpx.TimeoutException:
        raise TimeoutError("Timed out while reading the response body")
    except httpx.TransportError as e:
        raise StreamError(f"Failed to read response body: {e}")
