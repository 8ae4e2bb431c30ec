"""Tests for merging parsed bookmarks into the store."""

from datetime import datetime, timezone

import pytest

from bird_archive.errors import ExternalToolError, StoreError
from bird_archive.ingest import merge_bookmarks, run_ingestion
from bird_archive.parser import parse_bookmarks, parse_entry

from conftest import make_record


class FakeClient:
    command = "bird"

    def __init__(self, output: str = "", error: Exception | None = None):
        self.output = output
        self.error = error
        self.calls: list[int] = []

    def fetch_bookmarks(self, count: int = 50) -> str:
        self.calls.append(count)
        if self.error:
            raise self.error
        return self.output


class FailingStore:
    """Accepts `fail_after` inserts, then raises a StoreError."""

    def __init__(self, fail_after: int):
        self.fail_after = fail_after
        self.inserted: list[str] = []

    def insert_if_absent(self, record, bookmarked_at=None) -> bool:
        if len(self.inserted) >= self.fail_after:
            raise StoreError("disk I/O error")
        self.inserted.append(record.id)
        return True


class TestMergeBookmarks:
    def test_overlapping_batches(self, store):
        first = merge_bookmarks([make_record("1"), make_record("2")], store)
        assert (first.added, first.skipped, first.total) == (2, 0, 2)

        second = merge_bookmarks([make_record("2"), make_record("3")], store)
        assert (second.added, second.skipped, second.total) == (1, 1, 2)
        assert store.count() == 3

    def test_repeated_merge_is_idempotent(self, store, sample_records):
        first = merge_bookmarks(sample_records, store)
        second = merge_bookmarks(sample_records, store)

        assert (first.added, first.skipped) == (3, 0)
        assert (second.added, second.skipped) == (0, 3)
        assert store.count() == 3

    def test_remerge_leaves_stored_fields_untouched(self, store):
        merge_bookmarks([make_record("1", content="first seen")], store)
        store.add_tag("1", "keep")

        merge_bookmarks([make_record("1", content="edited later")], store)

        saved = store.get("1")
        assert saved.record.content == "first seen"
        assert saved.tags == ["keep"]

    def test_empty_batch(self, store):
        summary = merge_bookmarks([], store)
        assert (summary.added, summary.skipped, summary.total) == (0, 0, 0)

    def test_accepts_generator(self, store, bird_output):
        summary = merge_bookmarks(parse_bookmarks(bird_output), store)
        assert (summary.added, summary.total) == (3, 3)

    def test_rejected_record_does_not_abort_batch(self, store):
        records = [make_record("1"), make_record("2", like_count=-1), make_record("3")]

        summary = merge_bookmarks(records, store)

        assert summary.added == 2
        assert summary.skipped == 0
        assert summary.total == 3
        assert [bookmark_id for bookmark_id, _ in summary.failures] == ["2"]
        assert store.get("3") is not None

    def test_store_error_propagates(self):
        failing = FailingStore(fail_after=1)
        with pytest.raises(StoreError, match="disk I/O"):
            merge_bookmarks([make_record("1"), make_record("2")], failing)
        # Earlier inserts are not rolled back
        assert failing.inserted == ["1"]

    def test_synthesized_ids_are_not_deduplicated_across_runs(self, store):
        text = "@nolink (No Link):\nhello\n🔗 https://example.com/post\n"
        run_1 = parse_entry(text, now=datetime(2024, 1, 1, tzinfo=timezone.utc))
        run_2 = parse_entry(text, now=datetime(2024, 1, 2, tzinfo=timezone.utc))

        assert merge_bookmarks([run_1], store).added == 1
        assert merge_bookmarks([run_2], store).added == 1
        assert store.count() == 2

    def test_summary_to_dict(self, store):
        summary = merge_bookmarks([make_record("1"), make_record("2", like_count=-1)], store)
        data = summary.to_dict()
        assert data["added"] == 1
        assert data["total"] == 2
        assert data["failures"][0]["id"] == "2"


class TestRunIngestion:
    def test_fetch_parse_merge(self, store, bird_output):
        client = FakeClient(bird_output)

        summary = run_ingestion(client, store, count=20)

        assert client.calls == [20]
        assert (summary.added, summary.skipped, summary.total) == (3, 0, 3)
        assert store.get("67890").record.author == "Bob the Builder"

    def test_second_run_skips_everything(self, store, bird_output):
        client = FakeClient(bird_output)
        run_ingestion(client, store)
        summary = run_ingestion(client, store)
        assert (summary.added, summary.skipped) == (0, 3)

    def test_external_failure_is_fatal(self, store):
        client = FakeClient(error=ExternalToolError("bird exploded", reason="exit"))

        with pytest.raises(ExternalToolError, match="bird exploded"):
            run_ingestion(client, store)
        assert store.count() == 0
