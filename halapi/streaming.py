"""
Halapi SDK - Chat Stream Decoding

Turns the byte stream of a chat response into StreamEvents.

The body is newline-delimited server-sent events. Each record the SDK
cares about is a single line:

    data: {"type": "text-delta", "data": {"delta": "Hi"}}

Chunk boundaries from the network do not line up with records (or even
with UTF-8 characters), so text is decoded incrementally and buffered
until a newline completes a line. A record that fails to parse is
logged and skipped; the rest of the stream is unaffected. A trailing
line with no newline when the body ends is dropped.
"""

from __future__ import annotations

import asyncio
import codecs
import json
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Optional

from .errors import HalapiError, StreamError
from .events import StreamEvent, UnknownEventType
from .logging import get_logger
from .transport import TransportResponse, read_chunk

logger = get_logger("halapi.streaming")

DATA_PREFIX = "data: "

CONVERSATION_ID_HEADER = "X-Conversation-Id"
MESSAGE_ID_HEADER = "X-Message-Id"


@dataclass(frozen=True)
class ChatStreamResult:
    """Identifiers reported by the response headers of a chat stream."""
    conversation_id: Optional[str]
    message_id: Optional[str]


def parse_sse_line(line: str) -> Optional[StreamEvent]:
    """
    Decode one complete line of the stream.

    Returns None for lines that are not `data: ` records (comments,
    keep-alives, blank separators) and for records that fail to parse.
    """
    if not line.startswith(DATA_PREFIX):
        return None

    try:
        return StreamEvent.from_dict(json.loads(line[len(DATA_PREFIX):]))
    except UnknownEventType as e:
        # Newer servers may send types this SDK predates
        logger.info("Skipping SSE event of unknown type", event_type=e.event_type)
        return None
    except ValueError as e:
        logger.warning("Failed to parse SSE event", line=line, error=str(e))
        return None


async def decode_sse_events(chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
    """
    Yield events from an async iterable of raw byte chunks, in order.

    The source is closed (if it supports aclose()) on every exit path:
    exhaustion, error, or the consumer closing this generator early.
    """
    source = chunks.__aiter__()
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""

    try:
        async for chunk in source:
            buffer += decoder.decode(chunk)
            lines = buffer.split("\n")
            buffer = lines.pop()

            for line in lines:
                event = parse_sse_line(line)
                if event is not None:
                    yield event
    finally:
        aclose = getattr(source, "aclose", None)
        if aclose is not None:
            await aclose()


class ChatStream:
    """
    Events of one chat reply, consumed with `async for`.

    Once iteration ends, `result` holds the conversation and message ids
    taken from the response headers. A stream can be consumed once.

    Example:
        >>> async with await client.chat_stream("Tell me a story") as stream:
        ...     async for event in stream:
        ...         if event.type is EventType.TEXT_DELTA:
        ...             print(event.delta, end="", flush=True)
        >>> print(stream.result.conversation_id)

    Args:
        response: Successful transport response whose body carries the events.
        signal: Optional cancellation flag. Setting it stops the stream,
            including a read that is already waiting on the network; the
            body is released and iteration ends without raising, with
            `interrupted` True.

    Raises:
        StreamError: If the response has no readable body.
    """

    def __init__(
        self,
        response: TransportResponse,
        signal: Optional[asyncio.Event] = None
    ):
        if response.body is None:
            raise StreamError("Response body is not readable")

        self._response = response
        self._signal = signal
        self._conversation_id = response.headers.get(CONVERSATION_ID_HEADER)
        self._message_id = response.headers.get(MESSAGE_ID_HEADER)
        self._result: Optional[ChatStreamResult] = None
        self._released = False
        self._events = self._iterate()
        # Created on first use, inside the running event loop
        self._stop: Optional[asyncio.Event] = None
        self._idle: Optional[asyncio.Event] = None
        self.events_received = 0
        self.interrupted = False

    @property
    def conversation_id(self) -> Optional[str]:
        return self._conversation_id

    @property
    def message_id(self) -> Optional[str]:
        return self._message_id

    @property
    def result(self) -> ChatStreamResult:
        """
        Final value of the stream.

        Raises:
            HalapiError: If the stream has not been fully consumed yet.
        """
        if self._result is None:
            raise HalapiError("Chat stream has not finished yet")
        return self._result

    @property
    def is_finished(self) -> bool:
        return self._result is not None

    def __aiter__(self) -> ChatStream:
        return self

    async def __anext__(self) -> StreamEvent:
        self._prepare()
        self._idle.clear()
        try:
            return await self._events.__anext__()
        finally:
            self._idle.set()

    async def collect(self) -> ChatStreamResult:
        """Drain the remaining events and return the result."""
        async for _ in self:
            pass
        return self.result

    async def aclose(self) -> None:
        """
        Stop the stream and release the response body.

        May be called from another task while a read is pending; that
        read is cancelled and the waiting consumer sees the stream end.
        """
        if self._idle is not None and not self._idle.is_set():
            self._stop.set()
            await self._idle.wait()
        try:
            await self._events.aclose()
        finally:
            await self._release()

    async def __aenter__(self) -> ChatStream:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    def _prepare(self) -> None:
        if self._idle is None:
            self._stop = asyncio.Event()
            self._idle = asyncio.Event()
            self._idle.set()

    def _check_stopped(self) -> bool:
        """Record and report whether the caller asked the stream to stop."""
        for flag in (self._signal, self._stop):
            if flag is not None and flag.is_set():
                self.interrupted = True
        return self.interrupted

    async def _chunks(self) -> AsyncIterator[bytes]:
        body = self._response.body.__aiter__()
        while True:
            chunk = await read_chunk(body, self._signal, self._stop)
            if chunk is None:
                self._check_stopped()
                return
            yield chunk

    async def _iterate(self) -> AsyncIterator[StreamEvent]:
        events = decode_sse_events(self._chunks())
        try:
            async for event in events:
                if self._check_stopped():
                    break
                self.events_received += 1
                yield event

            self._result = ChatStreamResult(
                conversation_id=self._conversation_id,
                message_id=self._message_id,
            )
            logger.debug(
                "Chat stream finished",
                events=self.events_received,
                interrupted=self.interrupted,
                conversation_id=self._conversation_id,
            )
        finally:
            await events.aclose()
            await self._release()

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        await self._response.aclose()
