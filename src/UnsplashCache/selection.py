"""Least-recently-seen selection over downloaded records."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from UnsplashCache.catalog.blobs import AssetBlobStore
from UnsplashCache.catalog.models import CacheRecord, normalize_timestamp
from UnsplashCache.catalog.store import RecordLedger
from UnsplashCache.errors import BlobNotFoundError, UnsplashCacheError
from UnsplashCache.status import Error, StatusChannel

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Selection:
    """Image bytes plus the record they belong to (``last_seen`` already updated)."""

    data: bytes
    record: CacheRecord


class SelectionService:
    """Hands out downloaded images in round-robin order by recency.

    Every call picks the downloaded record with the oldest ``last_seen``
    (never-seen first, ties by id) and stamps it with a time strictly later
    than any stamp handed out before, so a record comes back only after every
    other downloaded record has been shown once.
    """

    def __init__(
        self,
        ledger: RecordLedger,
        blobs: AssetBlobStore,
        status: Optional[StatusChannel] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.ledger = ledger
        self.blobs = blobs
        self.status = status
        self.clock = clock
        self._lock = threading.Lock()

    def select_unseen(self) -> Optional[Selection]:
        """Return the next image, or None when nothing usable is cached."""
        with self._lock:
            try:
                candidates = self.ledger.downloaded_records()
                if not candidates:
                    logger.debug("No downloaded records to select from")
                    return None
                chosen = candidates[0]
                record = self.ledger.mark_seen(chosen.id, self._next_stamp())
                data = self.blobs.get(record.id)
            except BlobNotFoundError as e:
                logger.error(f"Ledger says {e.record_id} is downloaded but its blob is missing")
                if self.status is not None:
                    self.status.emit(Error(description=f"Missing image data for {e.record_id}"))
                return None
            except UnsplashCacheError as e:
                logger.warning(f"Selection failed: {e}")
                return None

        logger.debug(f"Selected {record.id} (last_seen={record.last_seen.isoformat()})")
        return Selection(data=data, record=record)

    def _next_stamp(self) -> datetime:
        stamp = normalize_timestamp(self.clock())
        latest = self.ledger.latest_seen()
        if latest is not None and stamp <= latest:
            stamp = latest + _TICK
        return stamp
