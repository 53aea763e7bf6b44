"""Shared fixtures for the image cache tests."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

import httpx
import pytest

from tests.unsplash_cache.helpers import make_record
from UnsplashCache.catalog import AssetBlobStore, CacheRecord, SQLiteLedger
from UnsplashCache.config import UnsplashCacheConfig
from UnsplashCache.net.client import build_http_client
from UnsplashCache.net.remote import RemoteCatalog
from UnsplashCache.status import StatusChannel, StatusEvent


@pytest.fixture
def config(tmp_path) -> UnsplashCacheConfig:
    return UnsplashCacheConfig(
        client_id="test-key",
        target_unused_count=2,
        storage={"root_dir": str(tmp_path / "images")},
        ledger={"path": str(tmp_path / "ledger.sqlite"), "wal_mode": False},
        http={
            "endpoint": "https://api.example.org/photos/random",
            "retry": {"max_attempts": 1, "base_delay_ms": 0, "max_delay_ms": 0},
        },
    )


@pytest.fixture
def ledger():
    store = SQLiteLedger(":memory:")
    yield store
    store.close()


@pytest.fixture
def blobs(tmp_path) -> AssetBlobStore:
    return AssetBlobStore(tmp_path / "images")


@pytest.fixture
def channel() -> StatusChannel:
    return StatusChannel()


@pytest.fixture
def events(channel) -> List[StatusEvent]:
    received: List[StatusEvent] = []
    channel.subscribe(received.append)
    return received


@pytest.fixture
def mock_catalog(config):
    """Build a RemoteCatalog whose HTTP client is served by ``handler``."""
    clients: List[httpx.Client] = []

    def _factory(
        handler: Callable[[httpx.Request], httpx.Response],
        cfg: Optional[UnsplashCacheConfig] = None,
    ) -> RemoteCatalog:
        cfg = cfg or config
        client = build_http_client(cfg, transport=httpx.MockTransport(handler))
        clients.append(client)
        return RemoteCatalog(cfg, client=client)

    yield _factory
    for client in clients:
        client.close()


@pytest.fixture
def seeded(ledger, blobs) -> Callable[..., Dict[str, CacheRecord]]:
    """Store records (and, when downloaded, their blobs) for the given ids."""

    def _seed(*photo_ids: str, downloaded: bool = True) -> Dict[str, CacheRecord]:
        stored = {}
        for photo_id in photo_ids:
            ledger.upsert(make_record(photo_id))
            if downloaded:
                blobs.put(photo_id, f"bytes-of-{photo_id}".encode())
                stored[photo_id] = ledger.mark_downloaded(photo_id)
            else:
                stored[photo_id] = ledger.get(photo_id)
        return stored

    return _seed
