"""Tests for the SQLite record ledger.

Covers idempotent upserts, state preservation, ordering of downloaded records,
forward-only ``last_seen`` and thread safety of ``update``.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from tests.unsplash_cache.helpers import make_record
from UnsplashCache.catalog import NEVER_SEEN, SQLiteLedger
from UnsplashCache.catalog.store import format_timestamp, parse_timestamp
from UnsplashCache.errors import LedgerError, NotFound, RecordNotFoundError

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestUpsert:
    """Insert-or-replace semantics."""

    def test_new_record_is_pending_and_unseen(self, ledger):
        stored = ledger.upsert(make_record("A", title="Lisbon"))

        assert stored.id == "A"
        assert stored.title == "Lisbon"
        assert stored.downloaded is False
        assert stored.last_seen == NEVER_SEEN
        assert stored.is_unseen
        assert ledger.get("A") == stored

    def test_get_missing_returns_none(self, ledger):
        assert ledger.get("nope") is None

    def test_reupsert_keeps_download_and_seen_state(self, ledger):
        ledger.upsert(make_record("A", title="old"))
        ledger.mark_downloaded("A")
        ledger.mark_seen("A", T0)

        stored = ledger.upsert(make_record("A", title="new"))

        assert stored.title == "new"
        assert stored.downloaded is True
        assert stored.last_seen == T0
        assert len(ledger.all_records()) == 1

    def test_reupsert_without_preserve_state_overwrites(self, ledger):
        ledger.upsert(make_record("A"))
        ledger.mark_downloaded("A")

        stored = ledger.upsert(make_record("A"), preserve_state=False)

        assert stored.downloaded is False


class TestQueries:
    """Counting and ordering."""

    def test_downloaded_unseen_count(self, ledger):
        for photo_id in ("A", "B", "C"):
            ledger.upsert(make_record(photo_id))
        ledger.mark_downloaded("A")
        ledger.mark_downloaded("B")
        ledger.mark_seen("B", T0)

        assert ledger.downloaded_unseen_count() == 1

    def test_downloaded_records_order_by_last_seen_then_id(self, ledger):
        for photo_id in ("D", "C", "B", "A"):
            ledger.upsert(make_record(photo_id))
            ledger.mark_downloaded(photo_id)
        ledger.upsert(make_record("pending"))
        ledger.mark_seen("A", T0 + timedelta(seconds=5))
        ledger.mark_seen("B", T0)

        ordered = [record.id for record in ledger.downloaded_records()]

        assert ordered == ["C", "D", "B", "A"]

    def test_latest_seen(self, ledger):
        ledger.upsert(make_record("A"))
        ledger.upsert(make_record("B"))
        assert ledger.latest_seen() is None

        ledger.mark_seen("A", T0)
        ledger.mark_seen("B", T0 + timedelta(minutes=1))

        assert ledger.latest_seen() == T0 + timedelta(minutes=1)

    def test_stats(self, ledger):
        for photo_id in ("A", "B", "C"):
            ledger.upsert(make_record(photo_id))
        ledger.mark_downloaded("A")
        ledger.mark_downloaded("B")
        ledger.mark_seen("A", T0)

        assert ledger.stats() == {
            "total_records": 3,
            "downloaded": 2,
            "downloaded_unseen": 1,
            "pending_download": 1,
        }

    @pytest.mark.parametrize(
        "read",
        [
            lambda ledger: ledger.get("A"),
            lambda ledger: ledger.downloaded_unseen_count(),
            lambda ledger: ledger.downloaded_records(),
            lambda ledger: ledger.all_records(),
            lambda ledger: ledger.latest_seen(),
            lambda ledger: ledger.stats(),
        ],
    )
    def test_read_failures_raise_ledger_error(self, ledger, read):
        ledger.upsert(make_record("A"))
        ledger.conn.execute("DROP TABLE records")

        with pytest.raises(LedgerError):
            read(ledger)


class TestUpdate:
    """Transactional read-modify-write."""

    def test_missing_id_raises_not_found(self, ledger):
        with pytest.raises(RecordNotFoundError) as excinfo:
            ledger.mark_downloaded("ghost")

        assert isinstance(excinfo.value, NotFound)
        assert excinfo.value.record_id == "ghost"

    def test_mark_seen_never_moves_backwards(self, ledger):
        ledger.upsert(make_record("A"))
        ledger.mark_seen("A", T0)

        stored = ledger.mark_seen("A", T0 - timedelta(days=1))

        assert stored.last_seen == T0
        assert ledger.get("A").last_seen == T0

    def test_mutator_cannot_rewind_last_seen(self, ledger):
        ledger.upsert(make_record("A"))
        ledger.mark_seen("A", T0)

        stored = ledger.update("A", lambda record: replace(record, last_seen=NEVER_SEEN))

        assert stored.last_seen == T0

    def test_mutator_cannot_change_id(self, ledger):
        ledger.upsert(make_record("A"))

        with pytest.raises(ValueError):
            ledger.update("A", lambda record: replace(record, id="B"))

    def test_naive_timestamps_are_taken_as_utc(self, ledger):
        ledger.upsert(make_record("A"))

        stored = ledger.mark_seen("A", datetime(2024, 5, 1, 12, 0))

        assert stored.last_seen == T0

    def test_concurrent_updates_do_not_lose_writes(self, ledger):
        ids = [f"img-{i}" for i in range(20)]
        for photo_id in ids:
            ledger.upsert(make_record(photo_id))

        threads = [threading.Thread(target=ledger.mark_downloaded, args=(i,)) for i in ids]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(record.downloaded for record in ledger.all_records())


def test_timestamps_sort_lexically():
    stamps = [NEVER_SEEN, T0, T0 + timedelta(microseconds=1), T0 + timedelta(days=400)]
    texts = [format_timestamp(stamp) for stamp in stamps]

    assert texts == sorted(texts)
    assert [parse_timestamp(text) for text in texts] == stamps


def test_ledger_persists_across_reopen(tmp_path):
    path = tmp_path / "nested" / "ledger.sqlite"
    with SQLiteLedger(str(path)) as first:
        first.upsert(make_record("A"))
        first.mark_downloaded("A")

    with SQLiteLedger(str(path)) as second:
        record = second.get("A")

    assert record is not None
    assert record.downloaded is True
