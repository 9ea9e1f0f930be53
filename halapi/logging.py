"""
Halapi SDK - Logging

The SDK logs through stdlib loggers under the "halapi" namespace and
never installs handlers on import. Applications that want the SDK's
own output format opt in once at startup:

    from halapi.logging import setup_logging
    setup_logging(level="DEBUG")  # or HALAPI_LOG_LEVEL=DEBUG

Output (json_output=True):
    {"timestamp": "2024-01-15T10:30:00+00:00", "level": "WARNING",
     "logger": "halapi.streaming", "message": "Failed to parse SSE event",
     "line": "data: {not json}"}
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

ROOT_LOGGER_NAME = "halapi"

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename",
    "funcName", "levelname", "levelno", "lineno",
    "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "stack_info",
    "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName",
}


class JSONFormatter(logging.Formatter):
    """JSON log formatter, one object per line."""

    # Fields to redact from logs
    SENSITIVE_FIELDS = {
        "token", "api_token", "authorization", "secret", "password",
    }

    def __init__(self, include_location: bool = False, redact_sensitive: bool = True):
        super().__init__()
        self.include_location = include_location
        self.redact_sensitive = redact_sensitive

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_location:
            log_data["location"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            if self.redact_sensitive and self._is_sensitive(key):
                value = "[REDACTED]"
            log_data[key] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)

    def _is_sensitive(self, field_name: str) -> bool:
        field_lower = field_name.lower()
        return any(sensitive in field_lower for sensitive in self.SENSITIVE_FIELDS)


class StructuredLogger:
    """
    Thin wrapper that turns keyword arguments into `extra` fields.

        logger.warning("Failed to parse SSE event", line=line)
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, *args, **kwargs):
        extra = kwargs.pop("extra", {})
        for key in list(kwargs):
            if key not in {"exc_info", "stack_info", "stacklevel"}:
                extra[key] = kwargs.pop(key)
        kwargs["extra"] = extra
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)


def setup_logging(
    level: Optional[Union[str, int]] = None,
    json_output: Optional[bool] = None,
    include_location: bool = False,
) -> logging.Logger:
    """
    Attach a stdout handler to the "halapi" logger.

    Calling it again replaces the previous handler.

    Args:
        level: Log level. Defaults to HALAPI_LOG_LEVEL, then WARNING.
        json_output: JSON lines (True) or plain text (False).
            Defaults to HALAPI_LOG_FORMAT == "json".
        include_location: Include filename:lineno in JSON output.
    """
    if level is None:
        level = os.getenv("HALAPI_LOG_LEVEL", "WARNING")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)
    if json_output is None:
        json_output = os.getenv("HALAPI_LOG_FORMAT", "text").lower() == "json"

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_output:
        handler.setFormatter(JSONFormatter(include_location=include_location))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
    logger.addHandler(handler)

    return logger


def get_logger(name: str) -> StructuredLogger:
    """
    Get a logger under the "halapi" namespace.

    Args:
        name: Logger name, "streaming" or "halapi.streaming" alike.
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return StructuredLogger(logging.getLogger(name))
