"""Merge parsed bookmarks into the store.

Merging is insert-if-absent: a candidate whose id is already stored is
skipped and the stored row is left untouched. Re-running ingestion over
overlapping bird output therefore only adds what is new.

Ids synthesized from handle + timestamp (entries without a status URL) differ
on every run, so those entries are re-added each time.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable

from .client import BirdClient
from .errors import RecordRejected
from .models import BookmarkRecord, MergeSummary
from .parser import parse_bookmarks
from .store import BookmarkStore

logger = logging.getLogger(__name__)


def merge_bookmarks(
    candidates: Iterable[BookmarkRecord], store: BookmarkStore
) -> MergeSummary:
    """Insert each candidate the store does not already hold.

    Records the store rejects are collected in `failures` and the batch
    continues. Any other StoreError propagates; rows inserted before it
    stay inserted.
    """
    summary = MergeSummary()
    # One instant per batch keeps the batch in source order when listing
    batch_time = datetime.now(timezone.utc)

    for record in candidates:
        summary.total += 1
        try:
            inserted = store.insert_if_absent(record, bookmarked_at=batch_time)
        except RecordRejected as e:
            logger.warning("Could not store bookmark %s: %s", record.id, e.reason)
            summary.failures.append((record.id, e.reason))
            continue

        if inserted:
            summary.added += 1
        else:
            logger.debug("Bookmark %s already stored, skipping", record.id)
            summary.skipped += 1

    logger.info(
        "Merged %d bookmarks: %d added, %d skipped, %d failed",
        summary.total,
        summary.added,
        summary.skipped,
        len(summary.failures),
    )
    return summary


def run_ingestion(
    client: BirdClient, store: BookmarkStore, count: int = 50
) -> MergeSummary:
    """Fetch the latest bookmarks from bird, parse them, and merge them.

    Raises:
        ExternalToolError: bird failed or timed out. Nothing is merged.
        StoreError: A persistence failure other than a rejected record.
    """
    raw_text = client.fetch_bookmarks(count)
    logger.info("Received %d characters from %s", len(raw_text), client.command)
    return merge_bookmarks(parse_bookmarks(raw_text), store)
