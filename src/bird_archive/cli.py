"""CLI interface for bird-archive.

Commands:
    setup    - Write the config file
    refresh  - Fetch bookmarks from bird and merge new ones into the archive
    list     - Search and page through archived bookmarks
    show     - Show one bookmark
    tag      - Add a tag to a bookmark
    untag    - Remove a tag from a bookmark
    tags     - List tags with usage counts
    delete   - Delete a bookmark (and its tags)
    status   - Show bird connectivity and archive size
"""

import json
import sys
from contextlib import contextmanager
from pathlib import Path

import click

from .config import (
    CONFIG_FILE,
    AppConfig,
    BirdConfig,
    config_exists,
    load_config,
    save_config,
)
from .errors import BookmarkNotFound, ExternalToolError, StoreError
from .logging_config import setup_logging


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", type=click.Path(), default=None, help="Config file path")
@click.pass_context
def main(ctx, verbose, config):
    """bird-archive — Archive your Twitter/X bookmarks with tags."""
    setup_logging(debug=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else CONFIG_FILE


def _load(ctx) -> AppConfig:
    try:
        return load_config(ctx.obj["config_path"])
    except ValueError as e:
        click.echo(f"Error: Invalid config {ctx.obj['config_path']}: {e}", err=True)
        sys.exit(1)


@contextmanager
def _open_store(config: AppConfig):
    """Open the archive. Store failures print `Error: ...` and exit 1."""
    from .store import BookmarkStore

    try:
        with BookmarkStore(config.database_path) as store:
            yield store
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _make_client(config: AppConfig):
    from .client import BirdClient

    return BirdClient(
        config.bird.command,
        fetch_timeout=config.bird.fetch_timeout,
        probe_timeout=config.bird.probe_timeout,
    )


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@main.command()
@click.pass_context
def setup(ctx):
    """Write the config file (database location and bird command)."""
    config_path = ctx.obj["config_path"]
    current = _load(ctx)

    click.echo("bird-archive — Setup")
    click.echo("=" * 40)
    click.echo()
    click.echo("Bookmarks are fetched with the `bird` CLI, which must already")
    click.echo("be installed and logged in (check with `bird whoami`).")
    click.echo()

    database_path = click.prompt(
        "Database file", default=str(current.database_path)
    )
    command = click.prompt("bird command", default=current.bird.command)
    count = click.prompt(
        "Bookmarks per refresh",
        default=current.bird.count,
        type=click.IntRange(min=1),
    )

    config = AppConfig(
        database_path=Path(database_path),
        bird=BirdConfig(
            command=command,
            count=count,
            fetch_timeout=current.bird.fetch_timeout,
            probe_timeout=current.bird.probe_timeout,
        ),
    )
    save_config(config, config_path)
    click.echo(f"\nConfig saved to {config_path}")

    status = _make_client(config).test_connection()
    if status.success:
        click.echo(status.message)
        click.echo("Run 'bird-archive refresh' to import your bookmarks.")
    else:
        click.echo(f"Warning: bird is not reachable yet: {status.message}", err=True)


@main.command()
@click.option(
    "-n",
    "--count",
    type=click.IntRange(min=1),
    default=None,
    help="Number of latest bookmarks to fetch (default from config)",
)
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
@click.pass_context
def refresh(ctx, count, as_json):
    """Fetch bookmarks from bird and add the ones not yet archived."""
    from .ingest import run_ingestion

    config = _load(ctx)
    effective_count = count if count is not None else config.bird.count
    client = _make_client(config)

    if not as_json:
        click.echo(f"Fetching {effective_count} bookmarks from {client.command}...")

    with _open_store(config) as store:
        try:
            summary = run_ingestion(client, store, effective_count)
        except ExternalToolError as e:
            click.echo(f"Error (connectivity): {e}", err=True)
            sys.exit(1)
        except StoreError as e:
            click.echo(f"Error (storage): {e}", err=True)
            sys.exit(1)

    if as_json:
        _echo_json(summary.to_dict())
        return

    click.echo(
        f"Added {summary.added}, skipped {summary.skipped} already archived "
        f"({summary.total} parsed)."
    )
    if summary.failures:
        click.echo(f"{len(summary.failures)} bookmarks could not be stored:", err=True)
        for bookmark_id, reason in summary.failures:
            click.echo(f"  {bookmark_id}: {reason}", err=True)


@main.command("list")
@click.option("-s", "--search", default="", help="Match author, handle or text")
@click.option("-t", "--tag", default="", help="Only bookmarks with this tag")
@click.option("--page", type=click.IntRange(min=1), default=1, help="Page number")
@click.option(
    "--limit", type=click.IntRange(min=1), default=20, help="Bookmarks per page"
)
@click.option("--json", "as_json", is_flag=True, help="Print the page as JSON")
@click.pass_context
def list_bookmarks(ctx, search, tag, page, limit, as_json):
    """List archived bookmarks, most recently archived first."""
    config = _load(ctx)
    with _open_store(config) as store:
        result = store.query(search=search, tag=tag, page=page, limit=limit)

    if as_json:
        _echo_json(result.to_dict())
        return

    if not result.bookmarks:
        click.echo("No bookmarks found.")
        return

    for bookmark in result.bookmarks:
        click.echo(_render_summary(bookmark))
        click.echo()
    click.echo(
        f"Page {result.page}/{max(result.total_pages, 1)} "
        f"({result.total} bookmarks)"
    )


@main.command()
@click.argument("bookmark_id")
@click.option("--json", "as_json", is_flag=True, help="Print the bookmark as JSON")
@click.pass_context
def show(ctx, bookmark_id, as_json):
    """Show a single bookmark."""
    config = _load(ctx)
    with _open_store(config) as store:
        bookmark = store.get(bookmark_id)

    if bookmark is None:
        click.echo(f"Error: Bookmark not found: {bookmark_id}", err=True)
        sys.exit(1)

    if as_json:
        _echo_json(bookmark.to_dict())
        return

    record = bookmark.record
    click.echo(f"@{record.author_handle} ({record.author})")
    click.echo()
    for line in record.content.split("\n"):
        click.echo(f"> {line}")
    click.echo()
    click.echo(f"URL:        {record.url}")
    click.echo(f"Date:       {record.created_at.strftime('%Y-%m-%d %H:%M UTC')}")
    click.echo(f"Archived:   {bookmark.bookmarked_at.strftime('%Y-%m-%d %H:%M UTC')}")
    click.echo(f"ID:         {record.id}")
    if record.media_urls:
        click.echo("Media:")
        for url in record.media_urls:
            click.echo(f"  {url}")
    click.echo(f"Tags:       {', '.join(bookmark.tags) if bookmark.tags else '-'}")


@main.command()
@click.argument("bookmark_id")
@click.argument("tag")
@click.pass_context
def tag(ctx, bookmark_id, tag):
    """Add TAG to a bookmark (tags are lower-cased)."""
    config = _load(ctx)
    with _open_store(config) as store:
        try:
            tags = store.add_tag(bookmark_id, tag)
        except (ValueError, BookmarkNotFound) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
    click.echo(f"Tags for {bookmark_id}: {', '.join(tags)}")


@main.command()
@click.argument("bookmark_id")
@click.argument("tag")
@click.pass_context
def untag(ctx, bookmark_id, tag):
    """Remove TAG from a bookmark."""
    config = _load(ctx)
    with _open_store(config) as store:
        tags = store.remove_tag(bookmark_id, tag)
    click.echo(f"Tags for {bookmark_id}: {', '.join(tags) if tags else '-'}")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print tags as JSON")
@click.pass_context
def tags(ctx, as_json):
    """List all tags with the number of bookmarks using them."""
    config = _load(ctx)
    with _open_store(config) as store:
        tag_counts = store.list_tags()

    if as_json:
        _echo_json([{"tag": t.tag, "count": t.count} for t in tag_counts])
        return

    if not tag_counts:
        click.echo("No tags yet.")
        return
    for t in tag_counts:
        click.echo(f"{t.tag} ({t.count})")


@main.command()
@click.argument("bookmark_id")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx, bookmark_id, yes):
    """Delete a bookmark and its tags."""
    config = _load(ctx)
    if not yes:
        click.confirm(f"Delete bookmark {bookmark_id}?", abort=True)
    with _open_store(config) as store:
        deleted = store.delete(bookmark_id)
    if not deleted:
        click.echo(f"Error: Bookmark not found: {bookmark_id}", err=True)
        sys.exit(1)
    click.echo(f"Deleted {bookmark_id}.")


@main.command()
@click.pass_context
def status(ctx):
    """Show bird connectivity and archive status."""
    config_path = ctx.obj["config_path"]
    has_config = config_exists(config_path)

    click.echo("bird-archive — Status")
    click.echo("=" * 40)
    click.echo(
        f"Config: {'Found' if has_config else 'Not found, using defaults'} "
        f"({config_path})"
    )

    config = _load(ctx)

    connection = _make_client(config).test_connection()
    if connection.success:
        click.echo(f"bird CLI: {connection.message}")
    else:
        click.echo(f"bird CLI: Unavailable — {connection.message}")

    click.echo(f"Database: {config.database_path}")
    if not config.database_path.exists():
        click.echo("Bookmarks: Database not yet created")
        return

    from .store import BookmarkStore

    try:
        with BookmarkStore(config.database_path) as store:
            click.echo(f"Bookmarks: {store.count()}")
    except StoreError as e:
        click.echo(f"Bookmarks: Unavailable — {e}")


def _render_summary(bookmark) -> str:
    record = bookmark.record
    first_line = record.content.split("\n", 1)[0] if record.content else ""
    if len(first_line) > 100:
        first_line = first_line[:97] + "..."

    lines = [
        f"[{record.id}] @{record.author_handle} ({record.author}) · "
        f"{record.created_at.strftime('%Y-%m-%d')}"
    ]
    if first_line:
        lines.append(f"  {first_line}")
    lines.append(f"  {record.url}")
    if bookmark.tags:
        lines.append(f"  tags: {', '.join(bookmark.tags)}")
    return "\n".join(lines)
