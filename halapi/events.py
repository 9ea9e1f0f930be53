"""
Halapi SDK - Stream Events

Every record of a chat stream decodes to a StreamEvent: a `type` tag
from a closed set plus the `data` payload exactly as the server sent
it. Typed views (as_done(), as_artifacts(), ...) are built on demand,
so a payload the SDK does not fully understand never breaks the stream.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .errors import HalapiError
from .models import Artifacts, CostSummary, TokenUsage, _require


class EventType(str, Enum):
    """Types of chat stream events."""
    TEXT_DELTA = "text-delta"    # Incremental reply text
    TOOL_CALL = "tool-call"      # Tool invocation started
    TOOL_RESULT = "tool-result"  # Tool invocation completed
    ARTIFACTS = "artifacts"      # Books, music, suggestions
    COST = "cost"                # Cost accounting
    DONE = "done"                # Stream completed
    ERROR = "error"              # Server-side error


class UnknownEventType(ValueError):
    """A well-formed record whose `type` is not one the SDK knows."""

    def __init__(self, event_type: str):
        super().__init__(f"unknown event type: {event_type!r}")
        self.event_type = event_type


# ============================================================
# Payload views
# ============================================================

@dataclass(frozen=True)
class TextDelta:
    delta: str


@dataclass(frozen=True)
class ToolCallStarted:
    tool_name: str
    tool_call_id: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolCallResult:
    tool_call_id: str
    result: Any
    success: bool


@dataclass(frozen=True)
class StreamDone:
    """Completion marker sent once the reply is fully generated."""
    message_id: str
    conversation_id: str
    total_tokens: TokenUsage
    execution_time_ms: int
    agent_used: Optional[str] = None
    model_used: Optional[str] = None


@dataclass(frozen=True)
class StreamErrorInfo:
    """Error reported by the server inside the stream."""
    code: str
    message: str


# ============================================================
# Event
# ============================================================

@dataclass(frozen=True)
class StreamEvent:
    """One decoded record of a chat stream."""
    type: EventType
    data: Any = None

    @classmethod
    def from_dict(cls, payload: Any) -> StreamEvent:
        """
        Build an event from a decoded `{type, data}` object.

        Raises:
            UnknownEventType: If `type` is a string outside the known set.
            ValueError: If the payload is not an object or has no usable `type`.
        """
        if not isinstance(payload, dict):
            raise ValueError("event payload must be a JSON object")
        if "type" not in payload:
            raise ValueError("event payload has no 'type'")
        try:
            event_type = EventType(payload["type"])
        except (ValueError, TypeError):
            if isinstance(payload["type"], str):
                raise UnknownEventType(payload["type"]) from None
            raise ValueError(f"invalid event type: {payload['type']!r}") from None
        return cls(type=event_type, data=payload.get("data"))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "data": self.data}

    def to_sse(self) -> str:
        """Convert to SSE format string."""
        return f"data: {json.dumps(self.to_dict())}\n\n"

    # Typed views

    def _expect(self, event_type: EventType) -> Dict[str, Any]:
        if self.type is not event_type:
            raise HalapiError(
                f"Cannot read a {event_type.value} payload from a {self.type.value} event"
            )
        if not isinstance(self.data, dict):
            raise HalapiError(
                f"{event_type.value} event data must be an object",
                code="invalid_response",
            )
        return self.data

    @property
    def delta(self) -> str:
        """Text of a text-delta event."""
        return self.as_text_delta().delta

    def as_text_delta(self) -> TextDelta:
        data = self._expect(EventType.TEXT_DELTA)
        return TextDelta(delta=_require(data, "delta", "text-delta"))

    def as_tool_call(self) -> ToolCallStarted:
        data = self._expect(EventType.TOOL_CALL)
        return ToolCallStarted(
            tool_name=_require(data, "toolName", "tool-call"),
            tool_call_id=_require(data, "toolCallId", "tool-call"),
            args=dict(data.get("args") or {}),
        )

    def as_tool_result(self) -> ToolCallResult:
        data = self._expect(EventType.TOOL_RESULT)
        return ToolCallResult(
            tool_call_id=_require(data, "toolCallId", "tool-result"),
            result=data.get("result"),
            success=bool(data.get("success", False)),
        )

    def as_artifacts(self) -> Artifacts:
        return Artifacts.from_dict(self._expect(EventType.ARTIFACTS))

    def as_cost(self) -> CostSummary:
        data = self._expect(EventType.COST)
        return CostSummary.from_dict(_require(data, "costSummary", "cost"))

    def as_done(self) -> StreamDone:
        data = self._expect(EventType.DONE)
        return StreamDone(
            message_id=_require(data, "messageId", "done"),
            conversation_id=_require(data, "conversationId", "done"),
            total_tokens=TokenUsage.from_dict(data.get("totalTokens")),
            execution_time_ms=data.get("executionTimeMs", 0),
            agent_used=data.get("agentUsed"),
            model_used=data.get("modelUsed"),
        )

    def as_error(self) -> StreamErrorInfo:
        data = self._expect(EventType.ERROR)
        return StreamErrorInfo(
            code=data.get("code", "unknown"),
            message=_require(data, "message", "error"),
        )
