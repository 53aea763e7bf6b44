"""SQLite-based implementation of the record ledger."""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional

from UnsplashCache.catalog.models import NEVER_SEEN, CacheRecord, normalize_timestamp
from UnsplashCache.errors import LedgerError, RecordNotFoundError

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, full_image_url, title, publisher_username, publisher_name_first, "
    "publisher_name_last, publisher_portfolio_url, downloaded, last_seen"
)


def format_timestamp(value: datetime) -> str:
    """Serialise a timestamp so lexical order matches chronological order."""
    return normalize_timestamp(value).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    return normalize_timestamp(datetime.fromisoformat(value))


_NEVER_SEEN_TEXT = format_timestamp(NEVER_SEEN)


class RecordLedger:
    """Protocol-like base class for record ledgers.

    Implementations must make every mutation of a single record atomic with
    respect to other mutations of the same record.
    """

    def upsert(self, record: CacheRecord, *, preserve_state: bool = True) -> CacheRecord:
        """Insert a record or replace the one with the same id.

        Args:
            record: Record to store
            preserve_state: Keep the stored ``downloaded``/``last_seen`` of an
                existing record instead of the values carried by ``record``

        Returns:
            The record as stored after the write
        """
        raise NotImplementedError

    def get(self, record_id: str) -> Optional[CacheRecord]:
        """Return the record for ``record_id`` or None."""
        raise NotImplementedError

    def downloaded_unseen_count(self) -> int:
        """Count records that are downloaded and were never selected."""
        raise NotImplementedError

    def downloaded_records(self) -> List[CacheRecord]:
        """Downloaded records ordered by ``last_seen`` ascending, then id."""
        raise NotImplementedError

    def update(
        self, record_id: str, mutator: Callable[[CacheRecord], CacheRecord]
    ) -> CacheRecord:
        """Apply ``mutator`` to one record as a single transaction.

        Raises:
            RecordNotFoundError: If no record has ``record_id``
            LedgerError: If the backend rejects the write
        """
        raise NotImplementedError

    def mark_downloaded(self, record_id: str) -> CacheRecord:
        return self.update(record_id, lambda record: replace(record, downloaded=True))

    def mark_seen(self, record_id: str, timestamp: datetime) -> CacheRecord:
        stamp = normalize_timestamp(timestamp)
        return self.update(
            record_id, lambda record: replace(record, last_seen=max(record.last_seen, stamp))
        )

    def all_records(self) -> List[CacheRecord]:
        raise NotImplementedError

    def latest_seen(self) -> Optional[datetime]:
        """Most recent ``last_seen`` across all records, or None if nothing was seen."""
        raise NotImplementedError

    def stats(self) -> Dict[str, int]:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


class SQLiteLedger(RecordLedger):
    """SQLite-based implementation of the record ledger.

    One shared connection guarded by a re-entrant lock; every read-modify-write
    runs inside that lock and a single transaction.
    """

    def __init__(self, path: str, wal_mode: bool = True):
        """Initialize SQLite ledger.

        Args:
            path: Path to SQLite database file (``:memory:`` for tests)
            wal_mode: If True, enable WAL mode for better concurrency

        Raises:
            LedgerError: If database initialization fails
        """
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        self.wal_mode = wal_mode
        self._lock = threading.RLock()

        try:
            self.conn = sqlite3.connect(
                str(Path(self.path).expanduser()) if self.path != ":memory:" else self.path,
                check_same_thread=False,
                timeout=30.0,
            )
            self.conn.row_factory = sqlite3.Row
            if wal_mode and self.path != ":memory:":
                self.conn.execute("PRAGMA journal_mode=WAL")
            self._init_schema()
        except sqlite3.Error as e:
            raise LedgerError(f"Failed to open ledger at {self.path}: {e}") from e

        logger.info(f"Initialized SQLite ledger at {self.path}")

    def _init_schema(self) -> None:
        """Load and execute schema.sql."""
        schema_path = Path(__file__).parent / "schema.sql"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema file not found: {schema_path}")

        self.conn.executescript(schema_path.read_text())
        self.conn.commit()
        logger.debug("Schema initialized successfully")

    def upsert(self, record: CacheRecord, *, preserve_state: bool = True) -> CacheRecord:
        """Insert or replace a record.

        Uses ``INSERT ... ON CONFLICT(id) DO UPDATE``. With ``preserve_state``
        the conflict branch only refreshes metadata columns, so an existing
        record keeps its download and seen state.
        """
        if preserve_state:
            conflict_sets = ""
        else:
            conflict_sets = ", downloaded = excluded.downloaded, last_seen = excluded.last_seen"

        with self._lock:
            now = format_timestamp(datetime.now(timezone.utc))
            try:
                self.conn.execute(
                    f"""
                    INSERT INTO records
                    (id, full_image_url, title, publisher_username, publisher_name_first,
                     publisher_name_last, publisher_portfolio_url, downloaded, last_seen,
                     created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        full_image_url = excluded.full_image_url,
                        title = excluded.title,
                        publisher_username = excluded.publisher_username,
                        publisher_name_first = excluded.publisher_name_first,
                        publisher_name_last = excluded.publisher_name_last,
                        publisher_portfolio_url = excluded.publisher_portfolio_url,
                        updated_at = excluded.updated_at{conflict_sets}
                    """,
                    (
                        record.id,
                        record.full_image_url,
                        record.title,
                        record.publisher_username,
                        record.publisher_name_first,
                        record.publisher_name_last,
                        record.publisher_portfolio_url,
                        int(record.downloaded),
                        format_timestamp(record.last_seen),
                        now,
                        now,
                    ),
                )
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                logger.error(f"Failed to upsert record {record.id}: {e}")
                raise LedgerError(f"Failed to upsert record {record.id}: {e}") from e

            stored = self._fetch_one(record.id)
            if stored is None:
                raise LedgerError(f"Record {record.id} missing right after upsert")
            return stored

    def get(self, record_id: str) -> Optional[CacheRecord]:
        with self._lock:
            return self._fetch_one(record_id)

    def downloaded_unseen_count(self) -> int:
        with self._lock:
            rows = self._select(
                "SELECT COUNT(*) FROM records WHERE downloaded = 1 AND last_seen = ?",
                (_NEVER_SEEN_TEXT,),
                what="count unseen records",
            )
            return int(rows[0][0])

    def downloaded_records(self) -> List[CacheRecord]:
        with self._lock:
            rows = self._select(
                f"""
                SELECT {_COLUMNS}
                FROM records
                WHERE downloaded = 1
                ORDER BY last_seen ASC, id ASC
                """,
                what="list downloaded records",
            )
            return [self._row_to_record(row) for row in rows]

    def all_records(self) -> List[CacheRecord]:
        with self._lock:
            rows = self._select(
                f"SELECT {_COLUMNS} FROM records ORDER BY created_at ASC, id ASC",
                what="list records",
            )
            return [self._row_to_record(row) for row in rows]

    def latest_seen(self) -> Optional[datetime]:
        with self._lock:
            rows = self._select(
                "SELECT MAX(last_seen) FROM records WHERE last_seen != ?",
                (_NEVER_SEEN_TEXT,),
                what="read latest seen timestamp",
            )
            value = rows[0][0]
            return parse_timestamp(value) if value else None

    def update(
        self, record_id: str, mutator: Callable[[CacheRecord], CacheRecord]
    ) -> CacheRecord:
        """Read, mutate and write back one record under the ledger lock.

        ``last_seen`` never moves backwards, whatever the mutator returns.
        """
        with self._lock:
            current = self._fetch_one(record_id)
            if current is None:
                raise RecordNotFoundError(f"No record with id {record_id}", record_id=record_id)

            updated = mutator(current)
            if updated.id != record_id:
                raise ValueError(f"Mutator changed record id {record_id} -> {updated.id}")
            if updated.last_seen < current.last_seen:
                logger.debug(f"Ignoring backwards last_seen for {record_id}")
                updated = replace(updated, last_seen=current.last_seen)

            try:
                self.conn.execute(
                    """
                    UPDATE records SET
                        full_image_url = ?, title = ?, publisher_username = ?,
                        publisher_name_first = ?, publisher_name_last = ?,
                        publisher_portfolio_url = ?, downloaded = ?, last_seen = ?,
                        updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        updated.full_image_url,
                        updated.title,
                        updated.publisher_username,
                        updated.publisher_name_first,
                        updated.publisher_name_last,
                        updated.publisher_portfolio_url,
                        int(updated.downloaded),
                        format_timestamp(updated.last_seen),
                        format_timestamp(datetime.now(timezone.utc)),
                        record_id,
                    ),
                )
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                logger.error(f"Failed to update record {record_id}: {e}")
                raise LedgerError(f"Failed to update record {record_id}: {e}") from e

            return updated

    def stats(self) -> Dict[str, int]:
        """Return ledger statistics."""
        with self._lock:
            rows = self._select(
                """
                SELECT COUNT(*),
                       COALESCE(SUM(downloaded), 0),
                       COALESCE(SUM(CASE WHEN downloaded = 1 AND last_seen = ? THEN 1 ELSE 0 END), 0)
                FROM records
                """,
                (_NEVER_SEEN_TEXT,),
                what="compute ledger stats",
            )
            total, downloaded, unseen = rows[0]
            return {
                "total_records": int(total),
                "downloaded": int(downloaded),
                "downloaded_unseen": int(unseen),
                "pending_download": int(total) - int(downloaded),
            }

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self.conn:
                self.conn.close()
                logger.debug("Ledger connection closed")

    def _select(self, sql: str, params: tuple = (), *, what: str) -> List[sqlite3.Row]:
        """Run a read query, converting driver failures to LedgerError."""
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to {what}: {e}")
            raise LedgerError(f"Failed to {what}: {e}") from e

    def _fetch_one(self, record_id: str) -> Optional[CacheRecord]:
        rows = self._select(
            f"SELECT {_COLUMNS} FROM records WHERE id = ?",
            (record_id,),
            what=f"read record {record_id}",
        )
        return self._row_to_record(rows[0]) if rows else None

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> CacheRecord:
        """Convert a database row to a CacheRecord."""
        return CacheRecord(
            id=row["id"],
            full_image_url=row["full_image_url"],
            title=row["title"],
            publisher_username=row["publisher_username"],
            publisher_name_first=row["publisher_name_first"],
            publisher_name_last=row["publisher_name_last"],
            publisher_portfolio_url=row["publisher_portfolio_url"],
            downloaded=bool(row["downloaded"]),
            last_seen=parse_timestamp(row["last_seen"]),
        )

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
