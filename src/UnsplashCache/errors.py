# === NAVMAP v1 ===
# {
#   "module": "UnsplashCache.errors",
#   "purpose": "Error taxonomy and actionable messages for the image cache.",
#   "sections": [
#     {
#       "id": "unsplashcacheerror",
#       "name": "UnsplashCacheError",
#       "anchor": "class-unsplashcacheerror",
#       "kind": "class"
#     },
#     {
#       "id": "transporterror",
#       "name": "TransportError",
#       "anchor": "class-transporterror",
#       "kind": "class"
#     },
#     {
#       "id": "formaterror",
#       "name": "FormatError",
#       "anchor": "class-formaterror",
#       "kind": "class"
#     },
#     {
#       "id": "notfound",
#       "name": "NotFound",
#       "anchor": "class-notfound",
#       "kind": "class"
#     },
#     {
#       "id": "get-actionable-error-message",
#       "name": "get_actionable_error_message",
#       "anchor": "function-get-actionable-error-message",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Error taxonomy and actionable messages for the image cache.

Responsibilities
----------------
- Define the exception types raised by the remote catalog (``TransportError``,
  ``FormatError``), the ledger (``RecordNotFoundError``, ``LedgerError``) and
  the blob store (``BlobNotFoundError``, ``BlobIOError``).
- Keep enough metadata on each exception (URL, HTTP status, record id) for the
  status channel and CLI to describe the failure without re-parsing messages.
- Translate HTTP status codes into remediation hints via
  :func:`get_actionable_error_message`.

Design Notes
------------
- All errors share :class:`UnsplashCacheError` so callers can catch the whole
  family in one clause.
- ``NotFound`` is shared by ledger and blob lookups; callers that only care
  about "missing" do not need to know which store answered.
"""

from __future__ import annotations

from typing import Any

__all__ = (
    "UnsplashCacheError",
    "TransportError",
    "FormatError",
    "NotFound",
    "RecordNotFoundError",
    "BlobNotFoundError",
    "BlobIOError",
    "LedgerError",
    "get_actionable_error_message",
)


class UnsplashCacheError(Exception):
    """Base class for every error raised by the cache."""


class TransportError(UnsplashCacheError):
    """Raised when a request fails at the network or HTTP level."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.retryable = retryable
        self.details = details or {}


class FormatError(UnsplashCacheError):
    """Raised when a remote payload does not have the expected shape."""

    def __init__(self, message: str, *, index: int | None = None, key: str | None = None):
        super().__init__(message)
        self.index = index
        self.key = key


class NotFound(UnsplashCacheError, LookupError):
    """Raised when a ledger or blob lookup misses."""

    def __init__(self, message: str, *, record_id: str | None = None):
        super().__init__(message)
        self.record_id = record_id


class RecordNotFoundError(NotFound):
    """No ledger record exists for the requested id."""


class BlobNotFoundError(NotFound):
    """No blob exists for the requested id."""


class BlobIOError(UnsplashCacheError):
    """Raised when reading or writing a blob fails for a reason other than absence."""

    def __init__(self, message: str, *, record_id: str | None = None, path: str | None = None):
        super().__init__(message)
        self.record_id = record_id
        self.path = path


class LedgerError(UnsplashCacheError):
    """Raised when the ledger database rejects an operation."""


def get_actionable_error_message(status_code: int | None) -> tuple[str, str | None]:
    """Return a short description and an optional hint for an HTTP status.

    Args:
        status_code: HTTP status returned by the remote API, or None when the
            request never produced a response.

    Returns:
        Tuple of (message, suggestion) where suggestion may be None.

    Examples:
        >>> get_actionable_error_message(401)[0]
        'Authentication failed (HTTP 401)'
    """
    if status_code is None:
        return (
            "Network failure before a response was received",
            "Check connectivity to the Unsplash API",
        )
    if status_code == 401:
        return (
            "Authentication failed (HTTP 401)",
            "Check that client_id is a valid Unsplash access key",
        )
    if status_code == 403:
        return (
            "Access forbidden (HTTP 403)",
            "The access key may be rate limited for the hour or lack permissions",
        )
    if status_code == 404:
        return (
            "Resource not found (HTTP 404)",
            "Check the endpoint and the collection ids passed in collections",
        )
    if status_code == 429:
        return (
            "Rate limited (HTTP 429)",
            "Lower the refill frequency or wait for the hourly quota to reset",
        )
    if 500 <= status_code < 600:
        return (f"Server error (HTTP {status_code})", "The remote service failed; retry later")
    return (f"Unexpected HTTP status {status_code}", None)
