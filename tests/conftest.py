"""Shared test fixtures."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from bird_archive.models import BookmarkRecord
from bird_archive.parser import ENTRY_SEPARATOR
from bird_archive.store import BookmarkStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def bird_output() -> str:
    """Sample `bird bookmarks` output: 3 bookmarks, a warning block and a URL-less entry."""
    return (FIXTURES_DIR / "bird_bookmarks.txt").read_text(encoding="utf-8")


@pytest.fixture
def separator() -> str:
    return ENTRY_SEPARATOR


@pytest.fixture
def store(tmp_path):
    with BookmarkStore(tmp_path / "bookmarks.db") as s:
        yield s


def make_record(bookmark_id: str = "1234567890", **overrides) -> BookmarkRecord:
    fields = {
        "id": bookmark_id,
        "author": "Test User",
        "author_handle": "testuser",
        "content": f"Tweet number {bookmark_id}",
        "url": f"https://x.com/testuser/status/{bookmark_id}",
        "created_at": datetime(2025, 2, 10, 18, 30, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return BookmarkRecord(**fields)


@pytest.fixture
def sample_records() -> list[BookmarkRecord]:
    """A list of sample BookmarkRecord objects for testing."""
    return [
        make_record(
            "1234567890",
            content="This is a test tweet about Python packaging",
        ),
        make_record(
            "9876543210",
            author="Photo User",
            author_handle="photouser",
            content="Check out this image",
            url="https://x.com/photouser/status/9876543210",
            created_at=datetime(2025, 2, 9, 12, 0, 0, tzinfo=timezone.utc),
            media_urls=["https://pbs.twimg.com/media/test123.jpg"],
        ),
        make_record(
            "5555555555",
            author="The Quoter",
            author_handle="quoter",
            content="Great take on this topic",
            url="https://x.com/quoter/status/5555555555",
            created_at=datetime(2025, 2, 8, 9, 0, 0, tzinfo=timezone.utc),
        ),
    ]
