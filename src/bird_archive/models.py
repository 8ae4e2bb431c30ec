"""Data models for parsed and stored bookmark data."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class BookmarkRecord:
    id: str  # tweet id from the URL, or "{handle}_{epoch_millis}" fallback
    author: str  # display name
    author_handle: str  # handle without @
    content: str
    url: str
    created_at: datetime
    media_urls: list[str] = field(default_factory=list)
    reply_count: int = 0
    retweet_count: int = 0
    like_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "author": self.author,
            "author_handle": self.author_handle,
            "content": self.content,
            "url": self.url,
            "created_at": self.created_at.isoformat(),
            "media_urls": list(self.media_urls),
            "reply_count": self.reply_count,
            "retweet_count": self.retweet_count,
            "like_count": self.like_count,
        }


@dataclass
class SavedBookmark:
    """A stored bookmark with its tags."""

    record: BookmarkRecord
    bookmarked_at: datetime
    tags: list[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.record.id

    def to_dict(self) -> dict:
        data = self.record.to_dict()
        data["bookmarked_at"] = self.bookmarked_at.isoformat()
        data["tags"] = list(self.tags)
        return data


@dataclass
class BookmarkPage:
    bookmarks: list[SavedBookmark]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit)  # ceil

    def to_dict(self) -> dict:
        return {
            "bookmarks": [b.to_dict() for b in self.bookmarks],
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "total_pages": self.total_pages,
            },
        }


@dataclass
class TagCount:
    tag: str
    count: int


@dataclass
class MergeSummary:
    """Outcome of merging one batch of candidates into the store."""

    added: int = 0
    skipped: int = 0
    total: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)  # (id, reason)

    def to_dict(self) -> dict:
        return {
            "added": self.added,
            "skipped": self.skipped,
            "total": self.total,
            "failures": [
                {"id": bookmark_id, "reason": reason}
                for bookmark_id, reason in self.failures
            ],
        }
