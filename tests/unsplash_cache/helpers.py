"""Builders and fakes shared by the image cache tests."""

from __future__ import annotations

import threading
from typing import List, Optional, Sequence

from UnsplashCache.catalog import CacheRecord
from UnsplashCache.errors import TransportError
from UnsplashCache.net.remote import Candidate, ImageMeta, PublisherMeta


def photo_json(
    photo_id: str,
    *,
    title: Optional[str] = None,
    username: Optional[str] = "jdoe",
    url: Optional[str] = None,
) -> dict:
    """One element of a random-photo response."""
    element: dict = {
        "id": photo_id,
        "urls": {"full": url or f"https://images.example.org/{photo_id}.jpg"},
        "user": {
            "username": username,
            "first_name": "Jane",
            "last_name": "Doe",
            "portfolio_url": "https://jane.example.org",
        },
    }
    if title is not None:
        element["location"] = {"title": title}
    return element


def make_candidate(photo_id: str, title: Optional[str] = None) -> Candidate:
    return Candidate(
        image=ImageMeta(id=photo_id, url=f"https://images.example.org/{photo_id}.jpg", title=title),
        publisher=PublisherMeta(username="jdoe", name_first="Jane", name_last="Doe"),
    )


def make_record(photo_id: str, **kwargs) -> CacheRecord:
    return CacheRecord(
        id=photo_id, full_image_url=f"https://images.example.org/{photo_id}.jpg", **kwargs
    )


class FakeCatalog:
    """In-memory stand-in for RemoteCatalog.

    Args:
        batches: Candidates returned by successive ``fetch`` calls
        fetch_error: Raised by ``fetch`` instead of returning a batch
        failing_downloads: Ids whose download raises TransportError
    """

    def __init__(
        self,
        batches: Sequence[Sequence[Candidate]] = (),
        *,
        fetch_error: Optional[Exception] = None,
        failing_downloads: Sequence[str] = (),
    ):
        self.batches = [list(batch) for batch in batches]
        self.fetch_error = fetch_error
        self.failing_downloads = set(failing_downloads)
        self.fetch_calls: List[int] = []
        self.download_calls: List[str] = []
        self._lock = threading.Lock()

    def request_url(self, count: int, collections=None) -> str:
        return f"https://api.example.org/photos/random?count={count}"

    def fetch(self, count: int, collections=None) -> List[Candidate]:
        self.fetch_calls.append(count)
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.batches.pop(0) if self.batches else []

    def download_asset(self, url: str) -> bytes:
        photo_id = url.rsplit("/", 1)[-1].split(".", 1)[0]
        with self._lock:
            self.download_calls.append(photo_id)
        if photo_id in self.failing_downloads:
            raise TransportError(f"Server error (HTTP 500) for {url}", url=url, status_code=500)
        return f"bytes-of-{photo_id}".encode()
