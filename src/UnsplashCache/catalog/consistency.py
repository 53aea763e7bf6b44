"""Consistency checking between the ledger and the blob store.

Finds:
  - Downloaded records whose blob is missing (the ``downloaded`` invariant
    is broken and the record would never be fetched again)
  - Blobs with no ledger record (orphans)

``repair`` clears the ``downloaded`` flag of records with missing blobs so
the next refill downloads them again. Orphan blobs are only reported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import List

from UnsplashCache.catalog.blobs import AssetBlobStore
from UnsplashCache.catalog.store import RecordLedger
from UnsplashCache.errors import NotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsistencyReport:
    """Result of one consistency pass."""

    checked_records: int
    missing_blobs: List[str] = field(default_factory=list)
    orphan_blobs: List[str] = field(default_factory=list)
    repaired: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing_blobs and not self.orphan_blobs


class ConsistencyChecker:
    """Cross-check ledger records against stored blobs."""

    def __init__(self, ledger: RecordLedger, blobs: AssetBlobStore):
        self.ledger = ledger
        self.blobs = blobs

    def check(self) -> ConsistencyReport:
        logger.info("Checking ledger against blob store...")
        records = self.ledger.all_records()
        known = {record.id for record in records}

        missing = sorted(
            record.id for record in records if record.downloaded and not self.blobs.exists(record.id)
        )
        orphans = [blob_id for blob_id in self.blobs.ids() if blob_id not in known]

        for record_id in missing:
            logger.warning(f"Record {record_id} is marked downloaded but has no blob")
        if orphans:
            logger.info(f"Found {len(orphans)} orphaned blobs")

        return ConsistencyReport(
            checked_records=len(records),
            missing_blobs=missing,
            orphan_blobs=orphans,
        )

    def repair(self) -> ConsistencyReport:
        """Reset ``downloaded`` on records whose blob is gone."""
        report = self.check()
        repaired: List[str] = []
        for record_id in report.missing_blobs:
            try:
                self.ledger.update(record_id, lambda record: replace(record, downloaded=False))
            except NotFound:
                continue
            repaired.append(record_id)

        if repaired:
            logger.info(f"Reset download state for {len(repaired)} records")
        return replace(report, repaired=repaired)
