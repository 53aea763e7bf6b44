# === NAVMAP v1 ===
# {
#   "module": "UnsplashCache.catalog.__init__",
#   "purpose": "Durable cache state: record ledger and blob store.",
#   "sections": []
# }
# === /NAVMAP ===

"""
Durable cache state for UnsplashCache.

The ledger (SQLite) tracks one record per remote photo id with its download
and seen state; the blob store keeps the image bytes in a directory keyed by
the same id. Together they survive restarts.
"""

from __future__ import annotations

from UnsplashCache.catalog.blobs import AssetBlobStore
from UnsplashCache.catalog.consistency import ConsistencyChecker, ConsistencyReport
from UnsplashCache.catalog.models import NEVER_SEEN, CacheRecord
from UnsplashCache.catalog.store import RecordLedger, SQLiteLedger

__all__ = [
    "AssetBlobStore",
    "CacheRecord",
    "ConsistencyChecker",
    "ConsistencyReport",
    "NEVER_SEEN",
    "RecordLedger",
    "SQLiteLedger",
]
