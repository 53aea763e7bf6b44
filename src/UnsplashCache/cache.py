# === NAVMAP v1 ===
# {
#   "module": "UnsplashCache.cache",
#   "purpose": "Public facade wiring ledger, blob store, remote catalog, refill and selection",
#   "sections": [
#     {"id": "unsplashimagecache", "name": "UnsplashImageCache", "anchor": "#class-unsplashimagecache", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""
Image cache facade.

Typical use::

    cache = UnsplashImageCache(client_id="...", target_unused_count=10)
    cache.status.subscribe(print)
    cache.pre_cache(image_count=3)      # background refill, returns a Future
    selection = cache.random_element()  # least recently shown image, or None
"""

from __future__ import annotations

import logging
from concurrent import futures
from typing import List, Optional, Sequence

import httpx

from UnsplashCache.catalog import (
    AssetBlobStore,
    CacheRecord,
    ConsistencyChecker,
    ConsistencyReport,
    RecordLedger,
    SQLiteLedger,
)
from UnsplashCache.config import UnsplashCacheConfig
from UnsplashCache.logging_config import set_debug_logging
from UnsplashCache.net import RemoteCatalog, build_http_client
from UnsplashCache.pipeline import RefillPipeline, RefillResult
from UnsplashCache.selection import Selection, SelectionService
from UnsplashCache.status import StatusChannel

logger = logging.getLogger(__name__)


class UnsplashImageCache:
    """Local cache of random Unsplash photos with background refills.

    Args:
        client_id: Unsplash access key (ignored when ``config`` is given)
        collections: Optional collection filter
        debug_logging: Log cache activity at DEBUG level
        target_unused_count: Refill only while fewer downloaded-unseen images exist
        config: Full configuration; overrides the individual arguments
        client: HTTPX client to use; when omitted the cache builds and owns one
        ledger: Ledger to use instead of the configured SQLite file
        blobs: Blob store to use instead of the configured directory
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        collections: Optional[Sequence[str]] = None,
        debug_logging: bool = False,
        target_unused_count: int = 10,
        *,
        config: Optional[UnsplashCacheConfig] = None,
        client: Optional[httpx.Client] = None,
        ledger: Optional[RecordLedger] = None,
        blobs: Optional[AssetBlobStore] = None,
    ):
        if config is None:
            if not client_id:
                raise ValueError("client_id is required when no config is given")
            config = UnsplashCacheConfig(
                client_id=client_id,
                collections=list(collections) if collections else None,
                debug_logging=debug_logging,
                target_unused_count=target_unused_count,
            )
        self.config = config
        set_debug_logging(config.debug_logging)

        self.status = StatusChannel()
        self.ledger = ledger or SQLiteLedger(config.ledger.path, wal_mode=config.ledger.wal_mode)
        self.blobs = blobs or AssetBlobStore(config.storage.root_dir)
        self._owns_client = client is None
        self.http_client = client if client is not None else build_http_client(config)
        self.catalog = RemoteCatalog(config, client=self.http_client)

        self.pipeline = RefillPipeline(
            self.ledger,
            self.blobs,
            self.catalog,
            self.status,
            target_unused_count=config.target_unused_count,
            collections=config.collections,
            max_workers=config.download.max_workers,
        )
        self.selection = SelectionService(self.ledger, self.blobs, self.status)
        self._background = futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="unsplash-cache-refill"
        )

    @classmethod
    def from_config(cls, config: UnsplashCacheConfig, **kwargs) -> "UnsplashImageCache":
        return cls(config=config, **kwargs)

    # ------------------------------------------------------------------
    # Refill
    # ------------------------------------------------------------------

    def pre_cache(self, image_count: Optional[int] = None) -> "futures.Future[RefillResult]":
        """Start a refill on the background thread.

        Refills queue behind each other; progress arrives on :attr:`status`.

        Raises:
            ValueError: If ``image_count`` is negative
        """
        count = self.config.image_count if image_count is None else image_count
        if count < 0:
            raise ValueError(f"image_count must be >= 0, got {count}")
        return self._background.submit(self.pipeline.run, count)

    def refill(self, image_count: Optional[int] = None) -> RefillResult:
        """Run a refill on the calling thread."""
        count = self.config.image_count if image_count is None else image_count
        return self.pipeline.run(count)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_unseen(self) -> Optional[Selection]:
        return self.selection.select_unseen()

    def random_element(self) -> Optional[Selection]:
        """Least recently shown image; the name is kept for familiarity."""
        return self.select_unseen()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def debug_list_elements(self) -> List[CacheRecord]:
        """Log one line per ledger record and return the records."""
        records = self.ledger.all_records()
        for record in records:
            seen = "never" if record.is_unseen else record.last_seen.isoformat()
            logger.info(
                f"{record.id} downloaded={record.downloaded} last_seen={seen} "
                f"title={record.title!r} publisher={record.publisher_display_name!r}"
            )
        logger.info(f"{len(records)} records")
        return records

    def check_consistency(self, repair: bool = False) -> ConsistencyReport:
        checker = ConsistencyChecker(self.ledger, self.blobs)
        return checker.repair() if repair else checker.check()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Wait for queued refills, then release the ledger and HTTP client."""
        self._background.shutdown(wait=True)
        self.ledger.close()
        if self._owns_client:
            self.http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
