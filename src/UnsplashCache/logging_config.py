"""
Structured Logging Utilities

Console logging setup for the image cache: secret masking, JSON log lines and
the ``debug_logging`` switch on the package logger.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Dict, Optional, TextIO

PACKAGE_LOGGER = "UnsplashCache"

_SENSITIVE_KEYS = {"client_id", "authorization", "api_key", "apikey", "token", "secret"}
_CLIENT_ID_PATTERN = re.compile(r"(client_id=)[^&\s]+")


def mask_sensitive_data(payload: Dict[str, object]) -> Dict[str, object]:
    """Remove secrets from structured payloads prior to logging.

    Args:
        payload: Arbitrary key-value pairs that may contain the API client id.

    Returns:
        Copy of the payload with secret fields replaced by ``***masked***``
        and ``client_id=`` query values masked inside strings.

    Examples:
        >>> mask_sensitive_data({"client_id": "abc", "status": "ok"})
        {'client_id': '***masked***', 'status': 'ok'}
    """
    masked: Dict[str, object] = {}
    for key, value in payload.items():
        if key.lower() in _SENSITIVE_KEYS:
            masked[key] = "***masked***"
        elif isinstance(value, str):
            masked[key] = _CLIENT_ID_PATTERN.sub(r"\1***", value)
        else:
            masked[key] = value
    return masked


class JSONFormatter(logging.Formatter):
    """Formatter emitting JSON structured logs.

    Examples:
        >>> formatter = JSONFormatter()
        >>> isinstance(formatter.format(logging.makeLogRecord({'msg': 'test'})), str)
        True
    """

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        log_obj = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }
        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            log_obj.update(record.extra_fields)
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(log_obj))


def set_debug_logging(enabled: bool) -> None:
    """Switch the package logger between DEBUG and WARNING."""
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if enabled else logging.WARNING)


def configure_logging(
    verbose: bool = False, json_logs: bool = False, stream: Optional[TextIO] = None
) -> logging.Logger:
    """Install a console handler on the package logger.

    Args:
        verbose: Log at DEBUG instead of WARNING.
        json_logs: Emit one JSON object per line instead of plain text.
        stream: Output stream (defaults to stderr).

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    set_debug_logging(verbose)

    for handler in list(logger.handlers):
        if getattr(handler, "_unsplash_cache_managed", False):
            logger.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    handler._unsplash_cache_managed = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = True
    return logger


__all__ = [
    "PACKAGE_LOGGER",
    "JSONFormatter",
    "configure_logging",
    "mask_sensitive_data",
    "set_debug_logging",
]
