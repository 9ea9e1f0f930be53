"""
Halapi Python SDK

An async client for the Halapi API with streaming support.

Quick Start:
    from halapi import AsyncHalapi, EventType, env_config

    client = AsyncHalapi(env_config())  # HALAPI_URL / HALAPI_TOKEN

    stream = await client.chat_stream("Recommend me a jazz album")
    async with stream:
        async for event in stream:
            if event.type is EventType.TEXT_DELTA:
                print(event.delta, end="", flush=True)
            elif event.type is EventType.ARTIFACTS:
                artifacts = event.as_artifacts()

    print(stream.result.conversation_id)
"""

from .client import AsyncHalapi
from .config import (
    HalapiConfig,
    ConfigProvider,
    static_config,
    env_config,
    is_config_valid,
)
from .events import (
    EventType,
    StreamEvent,
    UnknownEventType,
    TextDelta,
    ToolCallStarted,
    ToolCallResult,
    StreamDone,
    StreamErrorInfo,
)
from .models import (
    Book,
    MusicTrack,
    MusicAlbum,
    MusicTrackItem,
    Music,
    parse_music,
    Suggestion,
    Artifacts,
    ToolCall,
    CostBreakdown,
    CostSummary,
    TokenUsage,
    Message,
    Conversation,
    ResponseMetadata,
    ConversationsListResponse,
    ConversationDetailResponse,
    BookArtifactsResponse,
    MusicArtifactsResponse,
    BookPresentationsResponse,
)
from .errors import (
    HalapiError,
    ConfigurationError,
    AuthenticationError,
    RateLimitError,
    InvalidRequestError,
    TimeoutError,
    ConnectionError,
    StreamError,
)
from .streaming import ChatStream, ChatStreamResult, decode_sse_events
from .transport import HttpxTransport, Transport, TransportRequest, TransportResponse
from .utils import generate_uuid

__version__ = "1.0.0"
__all__ = [
    # Client
    "AsyncHalapi",
    "ChatStream",
    "ChatStreamResult",
    "decode_sse_events",
    # Configuration
    "HalapiConfig",
    "ConfigProvider",
    "static_config",
    "env_config",
    "is_config_valid",
    # Transport
    "Transport",
    "TransportRequest",
    "TransportResponse",
    "HttpxTransport",
    # Events
    "EventType",
    "StreamEvent",
    "UnknownEventType",
    "TextDelta",
    "ToolCallStarted",
    "ToolCallResult",
    "StreamDone",
    "StreamErrorInfo",
    # Models
    "Book",
    "MusicTrack",
    "MusicAlbum",
    "MusicTrackItem",
    "Music",
    "parse_music",
    "Suggestion",
    "Artifacts",
    "ToolCall",
    "CostBreakdown",
    "CostSummary",
    "TokenUsage",
    "Message",
    "Conversation",
    "ResponseMetadata",
    "ConversationsListResponse",
    "ConversationDetailResponse",
    "BookArtifactsResponse",
    "MusicArtifactsResponse",
    "BookPresentationsResponse",
    # Errors
    "HalapiError",
    "ConfigurationError",
    "AuthenticationError",
    "RateLimitError",
    "InvalidRequestError",
    "TimeoutError",
    "ConnectionError",
    "StreamError",
    # Utilities
    "generate_uuid",
]
