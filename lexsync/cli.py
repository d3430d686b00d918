#!/usr/bin/env python3
"""CLI commands for the content server and the local cache."""

import asyncio
import json
from pathlib import Path

import click

from lexsync.client.cache_manager import CacheManager, format_bytes
from lexsync.client.config import CacheConfig
from lexsync.client.storage import SqliteStorage

DEFAULT_CACHE_DB = ".data/cache.sqlite3"


@click.group()
def cli():
    """LexSync content server and cache management commands."""
    pass


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8000, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host, port, reload):
    """Run the content API server."""
    import uvicorn

    click.echo(f"Starting LexSync on http://{host}:{port}")
    uvicorn.run("lexsync.main:app", host=host, port=port, reload=reload)


@cli.command()
def snapshot():
    """Show the content store version and collection sizes."""
    from lexsync.content_store.config import create_content_store, resolve_backend_name
    from lexsync.core.config import settings

    async def load():
        store = create_content_store(settings)
        try:
            return await store.load()
        finally:
            await store.close()

    current = asyncio.run(load())
    click.echo("Content Store Status:")
    click.echo(f"  Backend: {resolve_backend_name(settings)}")
    click.echo(f"  Version: {current.version}")
    click.echo(f"  Updated: {current.updated_at}")
    click.echo(f"  Words: {len(current.words)}")
    click.echo(f"  Characters: {len(current.characters)}")


@cli.group()
@click.option(
    "--db",
    default=DEFAULT_CACHE_DB,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Cache database file",
)
@click.option("--prefix", default=CacheConfig().key_prefix, help="Owned key prefix")
@click.pass_context
def cache(ctx, db, prefix):
    """Inspect and maintain a local cache database."""
    storage = SqliteStorage(db)
    ctx.call_on_close(storage.close)
    ctx.obj = CacheManager(storage, CacheConfig(key_prefix=prefix))


@cache.command()
@click.pass_obj
def stats(manager: CacheManager):
    """Show cache size and entry ages."""
    info = manager.stats()
    click.echo("Cache Status:")
    click.echo(f"  Entries: {info['entry_count']}")
    click.echo(f"  Size: {format_bytes(info['total_size'])}")
    click.echo(f"  Oldest entry: {info['oldest_entry']}")
    click.echo(f"  Newest entry: {info['newest_entry']}")
    click.echo(f"  Max age: {info['max_age']}s")
    click.echo(f"  Last cleanup: {manager.last_cleanup}")


@cache.command()
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
def export(manager: CacheManager, output):
    """Export owned entries as JSON."""
    payload = manager.export()
    if output:
        output.write_text(payload, encoding="utf-8")
        click.echo(f"Exported {len(json.loads(payload))} entries to {output}")
    else:
        click.echo(payload)


@cache.command(name="import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def import_cache(manager: CacheManager, source):
    """Import entries from an export file."""
    if not manager.import_(source.read_text(encoding="utf-8")):
        raise click.ClickException(f"Could not import {source}")
    click.echo(f"Imported {source}")


@cache.command()
@click.pass_obj
def clear(manager: CacheManager):
    """Remove every owned entry."""
    removed = manager.clear_all()
    click.echo(f"Removed {removed} entries")


@cache.command()
@click.option("--optimize", is_flag=True, help="Also evict down to the item limit")
@click.pass_obj
def cleanup(manager: CacheManager, optimize):
    """Remove expired and outdated entries."""
    removed = manager.cleanup()
    click.echo(f"Removed {removed} stale entries")
    if optimize:
        click.echo(f"Evicted {manager.optimize()} entries")


if __name__ == "__main__":
    cli()
