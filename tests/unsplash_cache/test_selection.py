"""Selection service: round-robin by recency and failure handling."""

from __future__ import annotations

from datetime import datetime, timezone

from hypothesis import given, settings
from hypothesis import strategies as st

from tests.unsplash_cache.helpers import make_record
from UnsplashCache.catalog import AssetBlobStore, SQLiteLedger
from UnsplashCache.errors import LedgerError
from UnsplashCache.selection import SelectionService
from UnsplashCache.status import Error

FROZEN = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_empty_cache_returns_none(ledger, blobs):
    assert SelectionService(ledger, blobs).select_unseen() is None


def test_pending_records_are_never_selected(ledger, blobs, seeded):
    seeded("A", downloaded=False)

    assert SelectionService(ledger, blobs).select_unseen() is None


def test_selection_marks_seen_and_returns_bytes(ledger, blobs, seeded):
    seeded("A")
    service = SelectionService(ledger, blobs, clock=lambda: FROZEN)

    selection = service.select_unseen()

    assert selection.record.id == "A"
    assert selection.data == b"bytes-of-A"
    assert selection.record.last_seen == FROZEN
    assert ledger.get("A").last_seen == FROZEN
    assert ledger.downloaded_unseen_count() == 0


def test_unseen_records_come_first_then_oldest(ledger, blobs, seeded):
    seeded("B", "A", "C")
    service = SelectionService(ledger, blobs)

    picked = [service.select_unseen().record.id for _ in range(6)]

    assert picked == ["A", "B", "C", "A", "B", "C"]


def test_frozen_clock_still_rotates(ledger, blobs, seeded):
    seeded("A", "B")
    service = SelectionService(ledger, blobs, clock=lambda: FROZEN)

    first = service.select_unseen().record
    second = service.select_unseen().record
    third = service.select_unseen().record

    assert [first.id, second.id, third.id] == ["A", "B", "A"]
    assert first.last_seen < second.last_seen < third.last_seen


def test_single_record_repeats(ledger, blobs, seeded):
    seeded("A")
    service = SelectionService(ledger, blobs)

    assert service.select_unseen().record.id == "A"
    assert service.select_unseen().record.id == "A"


def test_missing_blob_is_reported_and_returns_none(ledger, blobs, seeded, channel, events):
    seeded("A")
    blobs.delete("A")

    result = SelectionService(ledger, blobs, channel).select_unseen()

    assert result is None
    assert events == [Error(description="Missing image data for A")]


def test_ledger_failure_returns_none(ledger, blobs, seeded, monkeypatch):
    seeded("A")

    def _broken():
        raise LedgerError("disk I/O error")

    monkeypatch.setattr(ledger, "downloaded_records", _broken)

    assert SelectionService(ledger, blobs).select_unseen() is None


def test_dropped_table_returns_none(ledger, blobs, seeded):
    seeded("A")
    ledger.conn.execute("DROP TABLE records")

    assert SelectionService(ledger, blobs).select_unseen() is None


@settings(max_examples=25, deadline=None)
@given(
    ids=st.lists(
        st.text(alphabet="abcdefghij0123456789", min_size=1, max_size=6),
        min_size=1,
        max_size=6,
        unique=True,
    ),
    rounds=st.integers(min_value=1, max_value=3),
)
def test_every_record_shown_once_per_round(tmp_path_factory, ids, rounds):
    root = tmp_path_factory.mktemp("blobs")
    ledger = SQLiteLedger(":memory:")
    blobs = AssetBlobStore(root)
    try:
        for photo_id in ids:
            ledger.upsert(make_record(photo_id))
            blobs.put(photo_id, photo_id.encode())
            ledger.mark_downloaded(photo_id)

        service = SelectionService(ledger, blobs, clock=lambda: FROZEN)
        picked = [service.select_unseen().record.id for _ in range(len(ids) * rounds)]

        for start in range(0, len(picked), len(ids)):
            assert sorted(picked[start : start + len(ids)]) == sorted(ids)
        if len(ids) > 1:
            assert all(a != b for a, b in zip(picked, picked[1:]))
    finally:
        ledger.close()
