"""
Halapi SDK - Pytest Configuration

Configures:
- Integration test markers (skip by default)
- Fake transports and SSE body builders for unit tests
"""

import json
import os
from typing import Any, Dict, Iterable, List, Optional

import pytest

from halapi import AsyncHalapi, HalapiConfig, static_config
from halapi.transport import TransportRequest, TransportResponse


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires RUN_INTEGRATION=1)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )
    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)


# ============================================================
# SSE helpers
# ============================================================

def sse(event_type: str, data: Any) -> bytes:
    """Encode one newline-terminated `data: ` record."""
    return f"data: {json.dumps({'type': event_type, 'data': data}, ensure_ascii=False)}\n".encode("utf-8")


class FakeBody:
    """
    Async byte source that records how it was consumed.

    Attributes:
        reads: Number of chunks handed out
        close_calls: Number of times aclose() was awaited
    """

    def __init__(self, chunks: Iterable[bytes], error: Optional[Exception] = None):
        self._chunks = list(chunks)
        self._error = error
        self.reads = 0
        self.close_calls = 0

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        if self.reads < len(self._chunks):
            chunk = self._chunks[self.reads]
            self.reads += 1
            return chunk
        if self._error is not None:
            raise self._error
        raise StopAsyncIteration

    async def aclose(self) -> None:
        self.close_calls += 1


class ClosingCounter:
    """on_close callback that counts invocations."""

    def __init__(self):
        self.calls = 0

    async def __call__(self) -> None:
        self.calls += 1


def make_response(
    chunks: Iterable[bytes] = (),
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None,
    error: Optional[Exception] = None,
) -> TransportResponse:
    """Build a TransportResponse over a FakeBody; see .body and ._on_close."""
    return TransportResponse(
        status_code=status_code,
        headers=headers or {},
        body=FakeBody(chunks, error=error),
        on_close=ClosingCounter(),
    )


def json_response(data: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None) -> TransportResponse:
    return make_response([json.dumps(data).encode("utf-8")], status_code=status_code, headers=headers)


class RecordingTransport:
    """Transport that records requests and replays queued responses."""

    def __init__(self, *responses: TransportResponse):
        self.responses: List[TransportResponse] = list(responses)
        self.requests: List[TransportRequest] = []

    async def send(self, request: TransportRequest) -> TransportResponse:
        self.requests.append(request)
        return self.responses.pop(0)

    @property
    def last_request(self) -> TransportRequest:
        return self.requests[-1]


# ============================================================
# Fixtures
# ============================================================

@pytest.fixture
def config():
    return HalapiConfig(api_url="https://api.example.com", api_token="test_token")


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def client(config, transport):
    return AsyncHalapi(static_config(config), transport=transport)
