"""Parse the text output of `bird bookmarks` into BookmarkRecord objects.

bird prints one block per bookmark, separated by a long rule of box-drawing
dashes:

    @handle (Display Name):
    Tweet text, possibly
    over several lines
    ┌─ quoted tweet / link preview
    │ ...
    └─
    🖼️ https://pbs.twimg.com/media/abc.jpg
    📅 Wed Jan 15 10:30:00 +0000 2025
    🔗 https://x.com/handle/status/1234567890
    ──────────────────────────────────────────────────

Each block runs through a two-state machine (awaiting header, collecting
body). Body lines are classified by LINE_RULES, first match wins. Blocks that
are not bookmarks (banners, warnings, truncated output) are dropped.
"""

import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator

from .models import BookmarkRecord

logger = logging.getLogger(__name__)

ENTRY_SEPARATOR = "─" * 50
MIN_ENTRY_LINES = 3  # header + content + metadata

HEADER_RE = re.compile(r"^@(\w+)\s*\(([^)]+)\):")
STATUS_ID_RE = re.compile(r"status/(\d+)")
HTTPS_TOKEN_RE = re.compile(r"(https://\S+)")

DATE_GLYPH = "📅"
LINK_GLYPH = "🔗"
FRAME_PREFIXES = ("┌─", "│", "└─", "🖼")
MEDIA_HOSTS = ("pbs.twimg.com", "video_thumb")

# Twitter's date format: "Thu May 14 18:01:35 +0000 2020"
TWITTER_DATE_FORMAT = "%a %b %d %H:%M:%S %z %Y"
FALLBACK_DATE_FORMATS = (
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d, %Y %H:%M",
    "%b %d, %Y, %I:%M %p",
    "%b %d, %Y %I:%M %p",
)  # ISO-8601 is tried last, via datetime.fromisoformat


class LineKind(Enum):
    DATE = "date"
    URL = "url"
    FRAME = "frame"
    CONTENT = "content"


class ParserState(Enum):
    AWAITING_HEADER = "awaiting_header"
    COLLECTING_BODY = "collecting_body"


# Evaluated in order; CONTENT is the fallthrough.
LINE_RULES: tuple[tuple[LineKind, tuple[str, ...]], ...] = (
    (LineKind.DATE, (DATE_GLYPH,)),
    (LineKind.URL, (LINK_GLYPH,)),
    (LineKind.FRAME, FRAME_PREFIXES),
)


def classify_line(line: str) -> LineKind:
    """Classify a trimmed body line by its leading glyph."""
    for kind, prefixes in LINE_RULES:
        if line.startswith(prefixes):
            return kind
    return LineKind.CONTENT


def parse_bookmarks(raw_text: str) -> Iterator[BookmarkRecord]:
    """Lazily parse bird output into bookmark records, in input order.

    Malformed entries are skipped, never raised.
    """
    entries = 0
    parsed = 0
    for chunk in raw_text.split(ENTRY_SEPARATOR):
        if not chunk.strip():
            continue
        entries += 1
        record = parse_entry(chunk)
        if record is None:
            continue
        parsed += 1
        yield record
    logger.info("Parsed %d bookmarks from %d entries", parsed, entries)


def parse_entry(entry: str, now: datetime | None = None) -> BookmarkRecord | None:
    """Parse a single delimited entry, or return None if it is not a bookmark.

    Args:
        entry: Text between two separators.
        now: Instant used for the fallback id and date. Defaults to the
            current UTC time.
    """
    now = now or datetime.now(timezone.utc)
    lines = [line.strip() for line in entry.splitlines() if line.strip()]
    if len(lines) < MIN_ENTRY_LINES:
        logger.debug("Skipping entry with %d lines", len(lines))
        return None

    state = ParserState.AWAITING_HEADER
    handle = ""
    author = ""
    date_line: str | None = None
    url_line: str | None = None
    content_lines: list[str] = []

    for line in lines:
        if state is ParserState.AWAITING_HEADER:
            match = HEADER_RE.match(line)
            if not match:
                logger.debug("Skipping entry without header: %.60r", line)
                return None
            handle = match.group(1).strip()
            author = match.group(2).strip()
            if not author:
                logger.debug("Skipping entry with blank display name: %r", line)
                return None
            state = ParserState.COLLECTING_BODY
            continue

        kind = classify_line(line)
        if kind is LineKind.DATE:
            # First date line wins
            if date_line is None:
                date_line = line
        elif kind is LineKind.URL:
            if url_line is None:
                url_line = line
        elif kind is LineKind.CONTENT:
            content_lines.append(line)

    url = url_line.removeprefix(LINK_GLYPH).strip() if url_line else ""
    if not url:
        logger.debug("Skipping entry from @%s without URL", handle)
        return None

    return BookmarkRecord(
        id=extract_tweet_id(url) or f"{handle}_{int(now.timestamp() * 1000)}",
        author=author,
        author_handle=handle,
        content="\n".join(content_lines).strip(),
        url=url,
        created_at=_parse_date_line(date_line, now),
        media_urls=extract_media_urls(lines),
    )


def extract_tweet_id(url: str) -> str | None:
    """Return the numeric id following `status/` in a tweet URL."""
    match = STATUS_ID_RE.search(url)
    return match.group(1) if match else None


def extract_media_urls(lines: list[str]) -> list[str]:
    """Collect the first https:// token of every line mentioning a media host."""
    media_urls: list[str] = []
    for line in lines:
        if any(host in line for host in MEDIA_HOSTS):
            match = HTTPS_TOKEN_RE.search(line)
            if match:
                media_urls.append(match.group(1))
    return media_urls


def _parse_date_line(date_line: str | None, now: datetime) -> datetime:
    if not date_line:
        return now
    parsed = parse_date(date_line.removeprefix(DATE_GLYPH).strip())
    if parsed is None:
        logger.debug("Unparseable date %r, using current time", date_line)
        return now
    return parsed


def parse_date(text: str) -> datetime | None:
    """Parse a date string from bird output into an aware UTC datetime."""
    if not text:
        return None

    parsed: datetime | None = None
    for fmt in (TWITTER_DATE_FORMAT, *FALLBACK_DATE_FORMATS):
        try:
            parsed = datetime.strptime(text, fmt)
            break
        except ValueError:
            continue
    else:
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        # Offset pushes the instant outside datetime's range
        return None
