"""
Halapi SDK - Data Models

Dataclasses for artifacts, messages, conversations and API responses.
Wire names are camelCase; attributes are snake_case. Required fields
that are missing raise HalapiError; optional ones default to None.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from .errors import HalapiError


def _require(data: Any, key: str, record: str) -> Any:
    """Fetch a required field or fail with a descriptive error."""
    if not isinstance(data, dict):
        raise HalapiError(f"{record} payload must be an object", code="invalid_response")
    value = data.get(key)
    if value is None:
        raise HalapiError(
            f"{record} is missing required field '{key}'",
            code="invalid_response",
        )
    return value


# ============================================================
# Artifacts
# ============================================================

@dataclass(frozen=True)
class Book:
    """Book recommendation."""
    title: str
    author: str
    isbn: Optional[str] = None
    year: Optional[int] = None
    cover_url: Optional[str] = None
    description: Optional[str] = None
    subjects: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Book:
        return cls(
            title=_require(data, "title", "Book"),
            author=_require(data, "author", "Book"),
            isbn=data.get("isbn"),
            year=data.get("year"),
            cover_url=data.get("coverUrl"),
            description=data.get("description"),
            subjects=list(data.get("subjects") or []),
        )


@dataclass(frozen=True)
class MusicTrack:
    """Track listed inside an album."""
    title: str
    duration: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MusicTrack:
        return cls(
            title=_require(data, "title", "MusicTrack"),
            duration=data.get("duration"),
        )


@dataclass(frozen=True)
class MusicAlbum:
    """Album recommendation."""
    cb: Optional[str] = None
    title: Optional[str] = None
    album: Optional[str] = None
    artist: Optional[str] = None
    artist_name: Optional[str] = None
    artiste: Optional[str] = None
    year: Optional[int] = None
    label: Optional[str] = None
    street_date: Optional[str] = None
    cover_url: Optional[str] = None
    image_url: Optional[str] = None
    album_image_url: Optional[str] = None
    tracks: List[MusicTrack] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)

    type: str = field(default="album", init=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MusicAlbum:
        return cls(
            cb=data.get("cb"),
            title=data.get("title"),
            album=data.get("album"),
            artist=data.get("artist"),
            artist_name=data.get("artist_name"),
            artiste=data.get("artiste"),
            year=data.get("year"),
            label=data.get("label"),
            street_date=data.get("street_date"),
            cover_url=data.get("coverUrl"),
            image_url=data.get("imageUrl"),
            album_image_url=data.get("albumImageUrl"),
            tracks=[MusicTrack.from_dict(t) for t in data.get("tracks") or []],
            genres=list(data.get("genres") or []),
        )

    @property
    def display_title(self) -> Optional[str]:
        return self.title or self.album

    @property
    def display_artist(self) -> Optional[str]:
        return self.artist or self.artist_name or self.artiste


@dataclass(frozen=True)
class MusicTrackItem:
    """Single track recommendation."""
    title: str
    artist: str
    cb: Optional[str] = None
    cb_track_id: Optional[str] = None
    track: Optional[str] = None
    artist_name: Optional[str] = None
    artiste: Optional[str] = None
    album: Optional[str] = None
    album_name: Optional[str] = None
    year: Optional[int] = None
    duration: Optional[int] = None
    timing: Optional[int] = None
    num_disc: Optional[int] = None
    num_track: Optional[int] = None
    scoring: Optional[float] = None
    label: Optional[str] = None
    street_date: Optional[str] = None
    cover_url: Optional[str] = None
    image_url: Optional[str] = None
    album_image_url: Optional[str] = None

    type: str = field(default="track", init=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MusicTrackItem:
        return cls(
            title=_require(data, "title", "MusicTrackItem"),
            artist=_require(data, "artist", "MusicTrackItem"),
            cb=data.get("cb"),
            cb_track_id=data.get("cb_track_id"),
            track=data.get("track"),
            artist_name=data.get("artist_name"),
            artiste=data.get("artiste"),
            album=data.get("album"),
            album_name=data.get("album_name"),
            year=data.get("year"),
            duration=data.get("duration"),
            timing=data.get("timing"),
            num_disc=data.get("num_disc"),
            num_track=data.get("num_track"),
            scoring=data.get("scoring"),
            label=data.get("label"),
            street_date=data.get("street_date"),
            cover_url=data.get("coverUrl"),
            image_url=data.get("imageUrl"),
            album_image_url=data.get("albumImageUrl"),
        )


Music = Union[MusicAlbum, MusicTrackItem]

_MUSIC_TYPES = {
    "album": MusicAlbum,
    "track": MusicTrackItem,
}


def parse_music(data: Dict[str, Any]) -> Music:
    """
    Build the album or track record named by the `type` field.

    Raises:
        HalapiError: If `type` is neither "album" nor "track".
    """
    music_type = _require(data, "type", "Music")
    music_class = _MUSIC_TYPES.get(music_type)
    if music_class is None:
        raise HalapiError(f"Unknown music type: {music_type!r}", code="invalid_response")
    return music_class.from_dict(data)


@dataclass(frozen=True)
class Suggestion:
    """Suggested follow-up query."""
    query: str
    label: str
    icon: Optional[str] = None
    type: str = "suggestion"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Suggestion:
        return cls(
            query=_require(data, "query", "Suggestion"),
            label=_require(data, "label", "Suggestion"),
            icon=data.get("icon"),
            type=data.get("type", "suggestion"),
        )


@dataclass(frozen=True)
class Artifacts:
    """Books, music and follow-up suggestions attached to a reply."""
    books: List[Book] = field(default_factory=list)
    music: List[Music] = field(default_factory=list)
    suggestions: List[Suggestion] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Artifacts:
        if not isinstance(data, dict):
            raise HalapiError("Artifacts payload must be an object", code="invalid_response")
        return cls(
            books=[Book.from_dict(b) for b in data.get("books") or []],
            music=[parse_music(m) for m in data.get("music") or []],
            suggestions=[Suggestion.from_dict(s) for s in data.get("suggestions") or []],
        )

    @property
    def is_empty(self) -> bool:
        return not (self.books or self.music or self.suggestions)


# ============================================================
# Usage and cost
# ============================================================

@dataclass(frozen=True)
class ToolCall:
    """Tool call recorded on a message."""
    tool_call_id: str
    tool_name: str
    status: str  # pending, success, error

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ToolCall:
        return cls(
            tool_call_id=_require(data, "toolCallId", "ToolCall"),
            tool_name=_require(data, "toolName", "ToolCall"),
            status=data.get("status", "pending"),
        )


@dataclass(frozen=True)
class CostBreakdown:
    base_cost: float = 0.0
    with_margin: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> CostBreakdown:
        data = data or {}
        return cls(
            base_cost=data.get("baseCost", 0.0),
            with_margin=data.get("withMargin", 0.0),
        )


@dataclass(frozen=True)
class CostSummary:
    """Cost breakdown for one reply."""
    llm: CostBreakdown
    total: CostBreakdown

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CostSummary:
        return cls(
            llm=CostBreakdown.from_dict(_require(data, "llm", "CostSummary")),
            total=CostBreakdown.from_dict(_require(data, "total", "CostSummary")),
        )


@dataclass(frozen=True)
class TokenUsage:
    input: int = 0
    output: int = 0

    @property
    def total(self) -> int:
        return self.input + self.output

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> TokenUsage:
        data = data or {}
        return cls(input=data.get("input", 0), output=data.get("output", 0))


# ============================================================
# Conversations
# ============================================================

@dataclass(frozen=True)
class Message:
    """A chat message from conversation history."""
    id: str
    conversation_id: str
    role: str  # user, assistant
    content: str
    created_at: int
    artifacts: Optional[Artifacts] = None
    is_streaming: Optional[bool] = None
    cost_summary: Optional[CostSummary] = None
    agent_used: Optional[str] = None
    model_used: Optional[str] = None
    tokens_input: Optional[int] = None
    tokens_output: Optional[int] = None
    execution_time_ms: Optional[int] = None
    tool_calls: List[ToolCall] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Message:
        artifacts = data.get("artifacts")
        cost_summary = data.get("costSummary")
        return cls(
            id=_require(data, "id", "Message"),
            conversation_id=_require(data, "conversationId", "Message"),
            role=_require(data, "role", "Message"),
            content=data.get("content") or "",
            created_at=_require(data, "createdAt", "Message"),
            artifacts=Artifacts.from_dict(artifacts) if artifacts else None,
            is_streaming=data.get("isStreaming"),
            cost_summary=CostSummary.from_dict(cost_summary) if cost_summary else None,
            agent_used=data.get("agentUsed"),
            model_used=data.get("modelUsed"),
            tokens_input=data.get("tokensInput"),
            tokens_output=data.get("tokensOutput"),
            execution_time_ms=data.get("executionTimeMs"),
            tool_calls=[ToolCall.from_dict(tc) for tc in data.get("toolCalls") or []],
        )


@dataclass(frozen=True)
class Conversation:
    """Conversation metadata."""
    id: str
    created_at: int
    updated_at: int
    message_count: int = 0
    organization_id: Optional[str] = None
    external_user_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Conversation:
        return cls(
            id=_require(data, "id", "Conversation"),
            created_at=_require(data, "createdAt", "Conversation"),
            updated_at=_require(data, "updatedAt", "Conversation"),
            message_count=data.get("messageCount", 0),
            organization_id=data.get("organizationId"),
            external_user_id=data.get("externalUserId"),
            metadata=dict(data.get("metadata") or {}),
        )


# ============================================================
# API responses
# ============================================================

@dataclass(frozen=True)
class ResponseMetadata:
    """Envelope metadata the API attaches to every response."""
    request_id: str = ""
    timestamp: str = ""
    count: Optional[int] = None
    has_more: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> ResponseMetadata:
        data = data or {}
        return cls(
            request_id=data.get("requestId", ""),
            timestamp=data.get("timestamp", ""),
            count=data.get("count"),
            has_more=data.get("hasMore"),
        )

    @classmethod
    def empty_list(cls) -> ResponseMetadata:
        """Metadata for a list the API answered with an empty body."""
        return cls(
            request_id="",
            timestamp=datetime.now(timezone.utc).isoformat(),
            count=0,
            has_more=False,
        )


@dataclass(frozen=True)
class ConversationsListResponse:
    """Response from GET /conversations."""
    success: bool
    conversations: List[Conversation]
    metadata: ResponseMetadata

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ConversationsListResponse:
        return cls(
            success=data.get("success", True),
            conversations=[Conversation.from_dict(c) for c in data.get("conversations") or []],
            metadata=ResponseMetadata.from_dict(data.get("metadata")),
        )

    @classmethod
    def empty(cls) -> ConversationsListResponse:
        return cls(success=True, conversations=[], metadata=ResponseMetadata.empty_list())


@dataclass(frozen=True)
class ConversationDetailResponse:
    """Response from GET /conversations/{id}."""
    success: bool
    conversation: Conversation
    messages: List[Message]
    metadata: ResponseMetadata

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ConversationDetailResponse:
        return cls(
            success=data.get("success", True),
            conversation=Conversation.from_dict(
                _require(data, "conversation", "ConversationDetailResponse")
            ),
            messages=[Message.from_dict(m) for m in data.get("messages") or []],
            metadata=ResponseMetadata.from_dict(data.get("metadata")),
        )


@dataclass(frozen=True)
class BookArtifactsResponse:
    """Response from GET /artifacts/books/{messageId}."""
    success: bool
    message_id: str
    books: List[Book]
    metadata: ResponseMetadata

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BookArtifactsResponse:
        return cls(
            success=data.get("success", True),
            message_id=_require(data, "messageId", "BookArtifactsResponse"),
            books=[Book.from_dict(b) for b in data.get("books") or []],
            metadata=ResponseMetadata.from_dict(data.get("metadata")),
        )


@dataclass(frozen=True)
class MusicArtifactsResponse:
    """Response from GET /artifacts/music/{messageId}."""
    success: bool
    message_id: str
    music: List[Music]
    metadata: ResponseMetadata

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MusicArtifactsResponse:
        return cls(
            success=data.get("success", True),
            message_id=_require(data, "messageId", "MusicArtifactsResponse"),
            music=[parse_music(m) for m in data.get("music") or []],
            metadata=ResponseMetadata.from_dict(data.get("metadata")),
        )


@dataclass(frozen=True)
class BookPresentationsResponse:
    """
    Response from POST /books/presentations.

    The per-ISBN entries are kept as the API sent them in `data`.
    """
    success: bool
    metadata: ResponseMetadata
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BookPresentationsResponse:
        if not isinstance(data, dict):
            raise HalapiError(
                "BookPresentationsResponse payload must be an object",
                code="invalid_response",
            )
        return cls(
            success=data.get("success", True),
            metadata=ResponseMetadata.from_dict(data.get("metadata")),
            data=dict(data),
        )
