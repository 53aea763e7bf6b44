# === NAVMAP v1 ===
# {
#   "module": "UnsplashCache.pipeline",
#   "purpose": "Cache refill: threshold check, fetch, dedup, concurrent download",
#   "sections": [
#     {"id": "refillstate", "name": "RefillState", "anchor": "#class-refillstate", "kind": "enum"},
#     {"id": "refillresult", "name": "RefillResult", "anchor": "#class-refillresult", "kind": "dataclass"},
#     {"id": "refillpipeline", "name": "RefillPipeline", "anchor": "#class-refillpipeline", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Cache refill pipeline.

**State Machine (one refill):**

    CHECKING_THRESHOLD
      ├→ SKIPPED            (downloaded-unseen >= target; no fetch)
      ↓
    FETCHING
      ├→ FAILED             (TransportError / FormatError; no ledger change)
      ↓
    DEDUPLICATING           (register unknown ids, drop downloaded ones)
      ↓
    DOWNLOADING             (thread pool, one task per queued id)
      ↓
    COMPLETED

Every call to :meth:`RefillPipeline.run` ends with exactly one terminal
status event: ``SkipFetchTargetUnseenReached`` for SKIPPED, otherwise
``RequestImagesDone(succeeded)``. Failures never escape ``run``; they are
reported as ``Error`` events first.

Downloads are best effort: a failed item is reported and not counted, and
its siblings still run to completion before the terminal event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from UnsplashCache.catalog.blobs import AssetBlobStore
from UnsplashCache.catalog.models import CacheRecord
from UnsplashCache.catalog.store import RecordLedger
from UnsplashCache.concurrency import create_executor
from UnsplashCache.errors import (
    BlobIOError,
    FormatError,
    LedgerError,
    NotFound,
    TransportError,
)
from UnsplashCache.net.remote import Candidate, RemoteCatalog
from UnsplashCache.status import (
    Error,
    RequestAPISuccess,
    RequestImagesDone,
    Requesting,
    SkipFetchTargetUnseenReached,
    StatusChannel,
)

__all__ = ["RefillPipeline", "RefillResult", "RefillState", "record_from_candidate"]

logger = logging.getLogger(__name__)


class RefillState(str, Enum):
    """Refill lifecycle states."""

    CHECKING_THRESHOLD = "checking_threshold"
    FETCHING = "fetching"
    DEDUPLICATING = "deduplicating"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RefillResult:
    """Outcome of one refill.

    Attributes:
        state: Terminal RefillState
        requested: Number of candidates asked for
        fetched: Candidates returned by the API
        already_cached: Candidates dropped because they were downloaded before
        queued: Candidates that needed a download
        succeeded: Downloads that reached the blob store and the ledger
        failed: Ids whose download or save failed
        error: Fetch-level or unexpected error message, if any
    """

    state: RefillState
    requested: int
    fetched: int = 0
    already_cached: int = 0
    queued: int = 0
    succeeded: int = 0
    failed: Tuple[str, ...] = field(default_factory=tuple)
    error: Optional[str] = None


def record_from_candidate(candidate: Candidate) -> CacheRecord:
    """New ledger record for a candidate (not downloaded, never seen)."""
    return CacheRecord(
        id=candidate.image.id,
        full_image_url=candidate.image.url,
        title=candidate.image.title,
        publisher_username=candidate.publisher.username,
        publisher_name_first=candidate.publisher.name_first,
        publisher_name_last=candidate.publisher.name_last,
        publisher_portfolio_url=candidate.publisher.portfolio_url,
    )


class RefillPipeline:
    """Tops up the cache when the supply of unseen images runs low.

    Args:
        ledger: Record ledger
        blobs: Blob store for image bytes
        catalog: Remote API client
        status: Channel receiving progress events
        target_unused_count: Refill only while fewer downloaded-unseen records exist
        collections: Optional collection filter passed through to the API
        max_workers: Upper bound on concurrent downloads
    """

    def __init__(
        self,
        ledger: RecordLedger,
        blobs: AssetBlobStore,
        catalog: RemoteCatalog,
        status: StatusChannel,
        *,
        target_unused_count: int,
        collections: Optional[Sequence[str]] = None,
        max_workers: int = 4,
    ) -> None:
        self.ledger = ledger
        self.blobs = blobs
        self.catalog = catalog
        self.status = status
        self.target_unused_count = target_unused_count
        self.collections = list(collections) if collections else None
        self.max_workers = max_workers

    def run(self, image_count: int) -> RefillResult:
        """Run one refill and emit its terminal status event.

        Raises:
            ValueError: If ``image_count`` is negative (before any event)
        """
        if image_count < 0:
            raise ValueError(f"image_count must be >= 0, got {image_count}")

        try:
            result = self._run_stages(image_count)
        except Exception as e:
            logger.exception("Refill failed unexpectedly")
            self.status.emit(Error(description=f"Refill failed: {e}"))
            result = RefillResult(state=RefillState.FAILED, requested=image_count, error=str(e))

        if result.state == RefillState.SKIPPED:
            self.status.emit(SkipFetchTargetUnseenReached())
        else:
            self.status.emit(RequestImagesDone(succeeded=result.succeeded))
        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _run_stages(self, image_count: int) -> RefillResult:
        unseen = self.ledger.downloaded_unseen_count()
        logger.debug(f"unseen count: {unseen}")
        if unseen >= self.target_unused_count:
            logger.debug("Unseen count target reached, skip.")
            return RefillResult(state=RefillState.SKIPPED, requested=image_count)

        if image_count == 0:
            logger.debug("Nothing requested, skipping fetch")
            return RefillResult(state=RefillState.COMPLETED, requested=0)

        self.status.emit(Requesting(path=self.catalog.request_url(image_count, self.collections)))
        try:
            candidates = self.catalog.fetch(image_count, self.collections)
        except (TransportError, FormatError) as e:
            logger.debug(f"Fetch failed: {e}")
            self.status.emit(Error(description=str(e)))
            return RefillResult(state=RefillState.FAILED, requested=image_count, error=str(e))
        self.status.emit(RequestAPISuccess())

        queue, already_cached = self._deduplicate(candidates)
        outcomes = self._download_all(queue)

        failed = tuple(record_id for record_id, ok in outcomes if not ok)
        succeeded = len(outcomes) - len(failed)
        logger.debug(f"Refill finished: {succeeded}/{len(queue)} downloads succeeded")
        return RefillResult(
            state=RefillState.COMPLETED,
            requested=image_count,
            fetched=len(candidates),
            already_cached=already_cached,
            queued=len(queue),
            succeeded=succeeded,
            failed=failed,
        )

    def _deduplicate(self, candidates: Sequence[Candidate]) -> Tuple[List[Candidate], int]:
        """Split candidates into the download queue and the already-cached count.

        An id repeated within the batch is only considered once.
        """
        queue: List[Candidate] = []
        batch_ids: set[str] = set()
        already_cached = 0

        for candidate in candidates:
            if candidate.id in batch_ids:
                logger.debug(f"Duplicate id in batch: {candidate.id}")
                continue
            batch_ids.add(candidate.id)

            existing = self.ledger.get(candidate.id)
            if existing is None:
                logger.debug(f"does not have record: {candidate.id}")
                self.ledger.upsert(record_from_candidate(candidate))
                queue.append(candidate)
            elif not existing.downloaded:
                logger.debug(f"has record, not downloaded: {candidate.id}")
                self.ledger.upsert(record_from_candidate(candidate))
                queue.append(candidate)
            else:
                already_cached += 1

        return queue, already_cached

    def _download_all(self, queue: Sequence[Candidate]) -> List[Tuple[str, bool]]:
        if not queue:
            return []

        executor, needs_shutdown = create_executor(min(self.max_workers, len(queue)))
        if executor is None:
            return [(candidate.id, self._download_one(candidate)) for candidate in queue]

        try:
            futures = [(c.id, executor.submit(self._download_one, c)) for c in queue]
            outcomes: List[Tuple[str, bool]] = []
            for record_id, future in futures:
                try:
                    ok = future.result()
                except Exception as e:
                    logger.exception(f"Download task for {record_id} crashed")
                    self.status.emit(Error(description=f"Could not get image {record_id}: {e}"))
                    ok = False
                outcomes.append((record_id, ok))
            return outcomes
        finally:
            if needs_shutdown:
                executor.shutdown(wait=True)

    def _download_one(self, candidate: Candidate) -> bool:
        """Download, store, then mark downloaded. Failures are reported, not raised."""
        record_id = candidate.id
        logger.debug(f"Need to get asset: {record_id}")
        try:
            data = self.catalog.download_asset(candidate.image.url)
        except (TransportError, FormatError) as e:
            self.status.emit(Error(description=f"Could not get image {record_id}: {e}"))
            return False

        try:
            self.blobs.put(record_id, data)
            self.ledger.mark_downloaded(record_id)
        except (BlobIOError, LedgerError, NotFound, ValueError) as e:
            self.status.emit(Error(description=f"Could not save image, error: {e}"))
            return False

        logger.debug(f"Stored asset: {record_id} ({len(data)} bytes)")
        return True
