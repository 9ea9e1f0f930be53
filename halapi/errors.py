"""
Halapi SDK - Error Classes

Every error the caller is meant to see is a HalapiError.
"""

from typing import Optional, Dict, Any


class HalapiError(Exception):
    """
    Base exception for the Halapi SDK.

    All SDK errors inherit from this class.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code if applicable
        code: Error code for programmatic handling
        request_id: Request ID reported by the API, if any
        details: Additional error details
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: str = "unknown",
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.request_id = request_id
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"status_code={self.status_code})"
        )

    @classmethod
    def from_response(
        cls,
        response_data: Any,
        status_code: int,
        context: str,
        retry_after: Optional[int] = None,
    ) -> "HalapiError":
        """
        Create an error from an API error body.

        The message is "{context}: {error.message}" when the body carries one,
        otherwise "{context}: HTTP {status_code}".
        """
        error: Dict[str, Any] = {}
        metadata: Dict[str, Any] = {}
        if isinstance(response_data, dict):
            if isinstance(response_data.get("error"), dict):
                error = response_data["error"]
            if isinstance(response_data.get("metadata"), dict):
                metadata = response_data["metadata"]

        message = f"{context}: HTTP {status_code}"
        if error.get("message"):
            message = f"{context}: {error['message']}"

        kwargs: Dict[str, Any] = {
            "status_code": status_code,
            "code": error.get("code") or "http_error",
            "request_id": metadata.get("requestId"),
        }

        if status_code in (401, 403):
            return AuthenticationError(message, **kwargs)
        if status_code == 429:
            if error.get("retryAfter") is not None:
                retry_after = int(error["retryAfter"])
            return RateLimitError(message, retry_after=retry_after, **kwargs)
        return cls(message, **kwargs)


class ConfigurationError(HalapiError):
    """
    Client configuration is unusable.

    Raised before any network call when the config provider
    returns no API token.
    """

    def __init__(self, message: str = "API token not configured", **kwargs):
        kwargs.pop("code", None)
        super().__init__(message, code="configuration_error", **kwargs)


class AuthenticationError(HalapiError):
    """API token was rejected (401/403)."""


class RateLimitError(HalapiError):
    """
    Rate limit exceeded.

    Attributes:
        retry_after: Seconds the API asked us to wait, when it said so
    """

    def __init__(self, message: str, retry_after: Optional[int] = None, **kwargs):
        kwargs.setdefault("status_code", 429)
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class InvalidRequestError(HalapiError):
    """
    Request parameters are invalid.

    Raised locally, no request is sent.

    Attributes:
        param: The parameter that caused the error
    """

    def __init__(self, message: str, param: Optional[str] = None, **kwargs):
        kwargs.pop("code", None)
        super().__init__(message, code="invalid_request", **kwargs)
        self.param = param


class TimeoutError(HalapiError):
    """Request timed out."""

    def __init__(self, message: str = "Request timed out", **kwargs):
        kwargs.pop("code", None)
        super().__init__(message, code="timeout", **kwargs)


class ConnectionError(HalapiError):
    """Failed to connect to the API."""

    def __init__(self, message: str = "Failed to connect to API", **kwargs):
        kwargs.pop("code", None)
        super().__init__(message, code="connection_error", **kwargs)


class StreamError(HalapiError):
    """
    Error during a streaming response.

    Raised when the response body cannot be read at all, or when
    the transport fails while the stream is being consumed.
    """

    def __init__(self, message: str = "Stream interrupted", **kwargs):
        kwargs.pop("code", None)
        super().__init__(message, code="stream_error", **kwargs)
