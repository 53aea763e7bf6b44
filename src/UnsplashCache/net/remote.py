# === NAVMAP v1 ===
# {
#   "module": "UnsplashCache.net.remote",
#   "purpose": "Random-photo API client: candidate metadata and asset bytes",
#   "sections": [
#     {"id": "imagemeta", "name": "ImageMeta", "anchor": "class-imagemeta", "kind": "class"},
#     {"id": "publishermeta", "name": "PublisherMeta", "anchor": "class-publishermeta", "kind": "class"},
#     {"id": "parse-candidates", "name": "parse_candidates", "anchor": "function-parse-candidates", "kind": "function"},
#     {"id": "remotecatalog", "name": "RemoteCatalog", "anchor": "class-remotecatalog", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Random-photo API client.

**Contract**
------------
- :meth:`RemoteCatalog.fetch` asks the API for ``count`` random photos and
  returns one :class:`Candidate` per element. Parsing is all-or-nothing: a
  single element without ``id`` or ``urls.full`` fails the whole batch with
  :class:`FormatError`.
- :meth:`RemoteCatalog.download_asset` returns the bytes behind an asset URL.
- Non-2xx statuses and network failures raise :class:`TransportError`.

**Retries**
-----------
Network errors and the statuses listed in ``RetryPolicy.retry_statuses`` are
retried with exponential backoff through Tenacity; other failures surface on
the first attempt.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from UnsplashCache.config.models import UnsplashCacheConfig, join_collections
from UnsplashCache.errors import FormatError, TransportError, get_actionable_error_message
from UnsplashCache.net.client import get_http_client, redact_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageMeta:
    """Photo fields the cache keeps."""

    id: str
    url: str
    title: Optional[str] = None


@dataclass(frozen=True)
class PublisherMeta:
    """Photographer attribution fields."""

    username: Optional[str] = None
    name_first: Optional[str] = None
    name_last: Optional[str] = None
    portfolio_url: Optional[str] = None


@dataclass(frozen=True)
class Candidate:
    """One element of a fetched batch."""

    image: ImageMeta
    publisher: PublisherMeta

    @property
    def id(self) -> str:
        return self.image.id


def _optional_str(container: Any, key: str) -> Optional[str]:
    if not isinstance(container, dict):
        return None
    value = container.get(key)
    return value if isinstance(value, str) else None


def parse_candidates(payload: Any) -> List[Candidate]:
    """Turn a decoded API response into candidates.

    Raises:
        FormatError: If the payload is not a list of objects, or any element
            lacks a string ``id`` or ``urls.full``
    """
    if not isinstance(payload, list):
        raise FormatError(f"Expected a JSON array, got {type(payload).__name__}")

    candidates: List[Candidate] = []
    for index, element in enumerate(payload):
        if not isinstance(element, dict):
            raise FormatError(f"Element {index} is not an object", index=index)

        photo_id = element.get("id")
        if not isinstance(photo_id, str) or not photo_id:
            raise FormatError(f"Element {index} is missing 'id'", index=index, key="id")

        full_url = _optional_str(element.get("urls"), "full")
        if not full_url:
            raise FormatError(
                f"Element {index} ({photo_id}) is missing 'urls.full'", index=index, key="urls.full"
            )

        user = element.get("user")
        candidates.append(
            Candidate(
                image=ImageMeta(
                    id=photo_id,
                    url=full_url,
                    title=_optional_str(element.get("location"), "title"),
                ),
                publisher=PublisherMeta(
                    username=_optional_str(user, "username"),
                    name_first=_optional_str(user, "first_name"),
                    name_last=_optional_str(user, "last_name"),
                    portfolio_url=_optional_str(user, "portfolio_url"),
                ),
            )
        )
    return candidates


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, TransportError) and exc.retryable


class RemoteCatalog:
    """Client for the random-photo endpoint.

    Args:
        config: Cache configuration (endpoint, client id, retry policy)
        client: HTTPX client to use; defaults to the process-wide singleton
    """

    def __init__(self, config: UnsplashCacheConfig, client: Optional[httpx.Client] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = get_http_client(self.config)
        return self._client

    def request_url(self, count: int, collections: Optional[Sequence[str]] = None) -> str:
        """Full request URL including query parameters."""
        params = {"client_id": self.config.client_id, "count": str(count)}
        joined = join_collections(collections)
        if joined:
            params["collections"] = joined
        return str(httpx.URL(self.config.http.endpoint, params=params))

    def fetch(
        self, count: int, collections: Optional[Sequence[str]] = None
    ) -> List[Candidate]:
        """Fetch ``count`` random photos, optionally limited to ``collections``.

        Raises:
            TransportError: On network failure or a non-2xx response
            FormatError: If the response body is not the expected shape
        """
        url = self.request_url(count, collections)
        response = self._get(url)

        try:
            payload = json.loads(response.content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise FormatError(f"Response is not valid JSON: {e}") from e

        candidates = parse_candidates(payload)
        logger.debug(f"Fetched {len(candidates)} candidates")
        return candidates

    def download_asset(self, url: str) -> bytes:
        """Download the bytes behind an asset URL.

        Raises:
            TransportError: On network failure or a non-2xx response
            FormatError: If the response body is empty
        """
        response = self._get(url)
        if not response.content:
            raise FormatError(f"Empty body for asset {redact_url(url)}")
        return response.content

    def _get(self, url: str) -> httpx.Response:
        policy = self.config.http.retry
        retrying = Retrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_exponential(
                multiplier=policy.base_delay_ms / 1000.0,
                max=policy.max_delay_ms / 1000.0,
            ),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return self._get_once(url)
        raise AssertionError("unreachable")  # pragma: no cover - Retrying reraises

    def _get_once(self, url: str) -> httpx.Response:
        shown = redact_url(url)
        try:
            response = self.client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(
                f"Request to {shown} failed: {e}", url=shown, retryable=True
            ) from e
        except RuntimeError as e:
            # httpx refuses to send once the client is closed
            raise TransportError(
                f"Request to {shown} failed: {e}", url=shown, retryable=False
            ) from e

        if not response.is_success:
            message, suggestion = get_actionable_error_message(response.status_code)
            detail = f"{message} for {shown}"
            if suggestion:
                detail += f" ({suggestion})"
            raise TransportError(
                detail,
                url=shown,
                status_code=response.status_code,
                retryable=response.status_code in self.config.http.retry.retry_statuses,
            )
        return response
