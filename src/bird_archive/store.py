"""SQLite-backed bookmark store.

The store is an explicit object: construct it with a path, open() it on
startup and close() it on shutdown (or use it as a context manager), and pass
it to whatever needs persistence.

Duplicate detection relies on the bookmarks PRIMARY KEY, so concurrent
ingestion batches cannot create duplicate rows.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Callable

from .errors import BookmarkNotFound, RecordRejected, StoreError
from .models import BookmarkPage, BookmarkRecord, SavedBookmark, TagCount

logger = logging.getLogger(__name__)

_CREATE_BOOKMARKS = """
CREATE TABLE IF NOT EXISTS bookmarks (
    id              TEXT PRIMARY KEY,
    author          TEXT NOT NULL,
    author_handle   TEXT,
    content         TEXT NOT NULL,
    url             TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    bookmarked_at   TEXT NOT NULL,
    media_urls      TEXT,
    reply_count     INTEGER NOT NULL DEFAULT 0 CHECK (reply_count >= 0),
    retweet_count   INTEGER NOT NULL DEFAULT 0 CHECK (retweet_count >= 0),
    like_count      INTEGER NOT NULL DEFAULT 0 CHECK (like_count >= 0)
)
"""

_CREATE_TAGS = """
CREATE TABLE IF NOT EXISTS tags (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    bookmark_id     TEXT NOT NULL REFERENCES bookmarks(id) ON DELETE CASCADE,
    tag             TEXT NOT NULL,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    UNIQUE (bookmark_id, tag)
)
"""

_CREATE_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_bookmarks_author ON bookmarks(author)",
    "CREATE INDEX IF NOT EXISTS idx_bookmarks_bookmarked_at ON bookmarks(bookmarked_at)",
    "CREATE INDEX IF NOT EXISTS idx_tags_bookmark ON tags(bookmark_id)",
    "CREATE INDEX IF NOT EXISTS idx_tags_tag ON tags(tag)",
)

_BOOKMARK_COLUMNS = (
    "id, author, author_handle, content, url, created_at, bookmarked_at, "
    "media_urls, reply_count, retweet_count, like_count"
)


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


def _timestamp(value: datetime) -> str:
    # Fixed-width so that text ordering matches chronological ordering
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _store_errors(function: Callable) -> Callable:
    """Re-raise sqlite3 errors as StoreError."""

    @wraps(function)
    def wrapper(*args, **kwargs):
        try:
            return function(*args, **kwargs)
        except sqlite3.Error as e:
            raise StoreError(f"{function.__name__} failed: {e}") from e

    return wrapper


class BookmarkStore:
    """Persistent bookmarks and tags."""

    def __init__(self, db_path: Path | str):
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        self._conn: sqlite3.Connection | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "BookmarkStore":
        """Open the connection and create the schema if needed (idempotent)."""
        if self._conn is not None:
            return self
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute(_CREATE_BOOKMARKS)
            conn.execute(_CREATE_TAGS)
            for statement in _CREATE_INDEXES:
                conn.execute(statement)
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Could not open database {self.db_path}: {e}") from e
        self._conn = conn
        logger.debug("Opened bookmark store at %s", self.db_path)
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("Closed bookmark store at %s", self.db_path)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def __enter__(self):
        return self.open()

    def __exit__(self, *args):
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError("Bookmark store is not open")
        return self._conn

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    def insert_if_absent(
        self, record: BookmarkRecord, bookmarked_at: datetime | None = None
    ) -> bool:
        """Insert a record unless its id already exists.

        Existing rows are never modified.

        Returns:
            True if the row was inserted, False if the id was already stored.

        Raises:
            RecordRejected: The record violated another constraint.
            StoreError: Any other database failure.
        """
        conn = self.conn
        bookmarked_at = bookmarked_at or datetime.now(timezone.utc)
        try:
            cur = conn.execute(
                f"""
                INSERT INTO bookmarks ({_BOOKMARK_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO NOTHING
                """,
                (
                    record.id,
                    record.author,
                    record.author_handle,
                    record.content,
                    record.url,
                    _timestamp(record.created_at),
                    _timestamp(bookmarked_at),
                    json.dumps(record.media_urls) if record.media_urls else None,
                    record.reply_count,
                    record.retweet_count,
                    record.like_count,
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise RecordRejected(record.id, str(e)) from e
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Insert of bookmark {record.id} failed: {e}") from e
        return cur.rowcount > 0

    @_store_errors
    def get(self, bookmark_id: str) -> SavedBookmark | None:
        row = self.conn.execute(
            f"SELECT {_BOOKMARK_COLUMNS} FROM bookmarks WHERE id = ?",
            (bookmark_id,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_saved(row, self.tags_for(bookmark_id))

    @_store_errors
    def delete(self, bookmark_id: str) -> bool:
        """Delete a bookmark and its tags. Returns False if it did not exist."""
        cur = self.conn.execute("DELETE FROM bookmarks WHERE id = ?", (bookmark_id,))
        self.conn.commit()
        return cur.rowcount > 0

    @_store_errors
    def count(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM bookmarks").fetchone()[0]

    @_store_errors
    def query(
        self, search: str = "", tag: str = "", page: int = 1, limit: int = 20
    ) -> BookmarkPage:
        """Return one page of bookmarks, newest bookmarked first.

        Args:
            search: Case-insensitive substring of author, handle, or content.
            tag: Only bookmarks carrying this tag (normalized before matching).
            page: 1-based page number.
            limit: Page size.
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")

        conditions: list[str] = []
        params: list = []

        search = search.strip()
        if search:
            pattern = "%" + _escape_like(search) + "%"
            conditions.append(
                "(author LIKE ? ESCAPE '\\' OR author_handle LIKE ? ESCAPE '\\' "
                "OR content LIKE ? ESCAPE '\\')"
            )
            params.extend([pattern, pattern, pattern])

        tag = normalize_tag(tag)
        if tag:
            conditions.append(
                "EXISTS (SELECT 1 FROM tags WHERE tags.bookmark_id = bookmarks.id "
                "AND tags.tag = ?)"
            )
            params.append(tag)

        where = f" WHERE {' AND '.join(conditions)}" if conditions else ""

        total = self.conn.execute(
            f"SELECT COUNT(*) FROM bookmarks{where}", params
        ).fetchone()[0]
        rows = self.conn.execute(
            f"SELECT {_BOOKMARK_COLUMNS} FROM bookmarks{where} "
            "ORDER BY bookmarked_at DESC, rowid ASC LIMIT ? OFFSET ?",
            [*params, limit, (page - 1) * limit],
        ).fetchall()

        return BookmarkPage(
            bookmarks=[_row_to_saved(r, self.tags_for(r["id"])) for r in rows],
            page=page,
            limit=limit,
            total=total,
        )

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    @_store_errors
    def tags_for(self, bookmark_id: str) -> list[str]:
        rows = self.conn.execute(
            "SELECT tag FROM tags WHERE bookmark_id = ? ORDER BY tag",
            (bookmark_id,),
        ).fetchall()
        return [r["tag"] for r in rows]

    @_store_errors
    def add_tag(self, bookmark_id: str, tag: str) -> list[str]:
        """Attach a tag to a bookmark (no-op if already present).

        Returns:
            The bookmark's tags after the change.

        Raises:
            ValueError: The tag is blank.
            BookmarkNotFound: No bookmark with this id.
        """
        normalized = normalize_tag(tag)
        if not normalized:
            raise ValueError("Tag is required")

        exists = self.conn.execute(
            "SELECT 1 FROM bookmarks WHERE id = ?", (bookmark_id,)
        ).fetchone()
        if not exists:
            raise BookmarkNotFound(bookmark_id)

        try:
            self.conn.execute(
                """
                INSERT INTO tags (bookmark_id, tag) VALUES (?, ?)
                ON CONFLICT(bookmark_id, tag) DO NOTHING
                """,
                (bookmark_id, normalized),
            )
            self.conn.commit()
        except sqlite3.IntegrityError as e:
            # Bookmark deleted between the check and the insert
            self.conn.rollback()
            raise BookmarkNotFound(bookmark_id) from e
        return self.tags_for(bookmark_id)

    @_store_errors
    def remove_tag(self, bookmark_id: str, tag: str) -> list[str]:
        """Detach a tag. Missing tags and bookmarks are ignored."""
        self.conn.execute(
            "DELETE FROM tags WHERE bookmark_id = ? AND tag = ?",
            (bookmark_id, normalize_tag(tag)),
        )
        self.conn.commit()
        return self.tags_for(bookmark_id)

    @_store_errors
    def list_tags(self) -> list[TagCount]:
        """All tags with usage counts, most used first."""
        rows = self.conn.execute(
            """
            SELECT tag, COUNT(*) AS count
            FROM tags
            GROUP BY tag
            ORDER BY count DESC, tag ASC
            """
        ).fetchall()
        return [TagCount(tag=r["tag"], count=r["count"]) for r in rows]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_saved(row: sqlite3.Row, tags: list[str]) -> SavedBookmark:
    media = json.loads(row["media_urls"]) if row["media_urls"] else []
    record = BookmarkRecord(
        id=row["id"],
        author=row["author"],
        author_handle=row["author_handle"] or "",
        content=row["content"],
        url=row["url"],
        created_at=datetime.fromisoformat(row["created_at"]),
        media_urls=media,
        reply_count=row["reply_count"],
        retweet_count=row["retweet_count"],
        like_count=row["like_count"],
    )
    return SavedBookmark(
        record=record,
        bookmarked_at=datetime.fromisoformat(row["bookmarked_at"]),
        tags=tags,
    )
