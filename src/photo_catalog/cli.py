"""CLI interface for photo-catalog."""

import functools
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click

from . import __version__
from .library.catalog_store import Catalog
from .library.config import CatalogConfig
from .library.errors import PhotoCatalogError
from .library.exif import extract_exif
from .library.imaging import resize_image
from .library.ingest import ingest_directory
from .library.models import MetadataPatch, Photo, PhotoFilter, SORT_FIELDS
from .library.scanner import scan_images
from .library.thumbnails import ThumbnailCache

logger = logging.getLogger(__name__)


def catalog_errors(func):
    """Report catalog errors as a one-line CLI error instead of a traceback."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PhotoCatalogError as e:
            logger.debug("Command failed", exc_info=True)
            raise click.ClickException(str(e)) from e
    return wrapper


def _config(ctx: click.Context) -> CatalogConfig:
    return ctx.obj["config"]


def _open_catalog(ctx: click.Context) -> Catalog:
    return Catalog(_config(ctx).db_path)


def _thumbnail_cache(ctx: click.Context) -> ThumbnailCache:
    config = _config(ctx)
    return ThumbnailCache(
        config.cache_dir,
        max_edge=config.thumbnail_size,
        check_source_mtime=config.thumbnail_check_mtime,
    )


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _echo_photo(photo: Photo) -> None:
    flags = " ★" if photo.is_favorite else ""
    click.echo(f"[{photo.id}] {photo.filename} ({photo.width}x{photo.height}){flags}")
    click.echo(f"   Path: {photo.path}")
    click.echo(f"   Added: {photo.added_at}  Rating: {photo.rating}")
    if photo.capture_date:
        click.echo(f"   Captured: {photo.capture_date}")
    if photo.tags:
        click.echo(f"   Tags: {', '.join(photo.tags)}")
    if photo.description:
        click.echo(f"   Description: {photo.description}")


output_format_option = click.option(
    "--output-format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)


@click.group()
@click.version_option(version=__version__, prog_name="photo-catalog")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--debug", is_flag=True, help="Enable debug mode.")
@click.option("--db-path", help="Catalog database file (or set PHOTO_CATALOG_DB)")
@click.option("--cache-dir", help="Thumbnail cache directory (or set PHOTO_CATALOG_CACHE_DIR)")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file (defaults to ~/.photo-catalog/config.json)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    debug: bool,
    db_path: Optional[str],
    cache_dir: Optional[str],
    config_path: Optional[Path],
) -> None:
    """photo-catalog - local photo catalog with EXIF metadata and thumbnails."""
    # Ensure ctx.obj exists
    if ctx.obj is None:
        ctx.obj = {}

    # Configure logging
    level = logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["config"] = CatalogConfig.load_from_file(
        config_path, db_path=db_path, cache_dir=cache_dir
    )

    if debug:
        logger.debug("Debug mode enabled")
    elif verbose:
        logger.info("Verbose mode enabled")


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Display package information and active configuration."""
    import platform
    click.echo(f"photo-catalog v{__version__}")
    click.echo(f"Python {platform.python_version()} on {platform.system()} {platform.release()}")
    config = _config(ctx)
    click.echo(f"Database: {config.db_path}")
    click.echo(f"Thumbnail cache: {config.cache_dir} (max edge {config.thumbnail_size}px)")


@cli.command()
@click.argument("directory")
@click.option("--recursive/--no-recursive", default=True, help="Scan subdirectories recursively")
@output_format_option
@catalog_errors
def scan(directory, recursive, output_format):
    """List the supported images under DIRECTORY without cataloguing them."""
    images = scan_images(directory, recursive=recursive)
    if output_format == "json":
        _echo_json([image.to_dict() for image in images])
        return
    for image in images:
        click.echo(f"{image.path} ({image.size} bytes)")
    click.echo(f"Found {len(images)} images")


@cli.command()
@click.argument("directory")
@click.option("--recursive/--no-recursive", default=True, help="Scan subdirectories recursively")
@click.option("--thumbnails/--no-thumbnails", default=True, help="Render thumbnails while ingesting")
@click.pass_context
@catalog_errors
def ingest(ctx, directory, recursive, thumbnails):
    """Scan DIRECTORY and add new photos to the catalog."""
    cache = _thumbnail_cache(ctx) if thumbnails else None

    def progress(current: int, total: int, image) -> None:
        if ctx.obj.get("verbose"):
            click.echo(f"Processing [{current}/{total}]: {image.filename}")

    with _open_catalog(ctx) as catalog:
        report = ingest_directory(catalog, cache, directory, recursive=recursive, on_progress=progress)

    click.echo(f"Found {report.found} images")
    click.echo(f"  Added: {len(report.added)}")
    click.echo(f"  Already catalogued: {len(report.skipped)}")
    if report.failed:
        click.echo(f"  Failed: {len(report.failed)}", err=True)
        for path, error in report.failed.items():
            click.echo(f"    {path}: {error}", err=True)


@cli.command()
@click.argument("path")
@output_format_option
@catalog_errors
def exif(path, output_format):
    """Show the EXIF metadata embedded in PATH."""
    data = extract_exif(path)
    if output_format == "json":
        _echo_json(data.to_dict())
        return
    if data.is_empty():
        click.echo("No EXIF metadata found.")
        return
    for key, value in data.to_dict().items():
        if value is not None:
            click.echo(f"{key}: {value}")


@cli.group()
def photos():
    """Browse and edit catalogued photos."""
    pass


@photos.command("list")
@output_format_option
@click.pass_context
@catalog_errors
def list_photos(ctx, output_format):
    """List photos, most recently added first."""
    with _open_catalog(ctx) as catalog:
        results = catalog.list_photos()
    if output_format == "json":
        _echo_json([photo.to_dict() for photo in results])
        return
    if not results:
        click.echo("No photos in catalog.")
        return
    for photo in results:
        _echo_photo(photo)


@photos.command()
@click.option("--keyword", "-k", help="Match filename, description or tags")
@click.option("--tag", "tags", multiple=True, help="Require a tag (repeatable)")
@click.option("--min-rating", type=int, help="Minimum rating")
@click.option("--favorites", is_flag=True, help="Only favorites")
@click.option("--after", help="Captured on or after (YYYY-MM-DD)")
@click.option("--before", help="Captured on or before (YYYY-MM-DD)")
@click.option("--sort-by", type=click.Choice(SORT_FIELDS), default="added_at", help="Sort field")
@click.option("--ascending", is_flag=True, help="Sort ascending")
@click.option("--limit", type=int, help="Maximum results to show")
@output_format_option
@click.pass_context
@catalog_errors
def search(ctx, keyword, tags, min_rating, favorites, after, before, sort_by, ascending, limit, output_format):
    """Search catalogued photos."""
    criteria = PhotoFilter(
        keyword=keyword,
        tags=list(tags),
        min_rating=min_rating,
        favorites_only=favorites,
        captured_after=after,
        captured_before=before,
        sort_by=sort_by,
        descending=not ascending,
        limit=limit,
    )
    with _open_catalog(ctx) as catalog:
        results = catalog.search_photos(criteria)

    if output_format == "json":
        _echo_json([photo.to_dict() for photo in results])
        return
    if not results:
        click.echo("No results found.")
        return
    click.echo(f"Found {len(results)} results:")
    for photo in results:
        _echo_photo(photo)


@photos.command()
@click.argument("photo_id", type=int)
@output_format_option
@click.pass_context
@catalog_errors
def show(ctx, photo_id, output_format):
    """Show one photo."""
    with _open_catalog(ctx) as catalog:
        photo = catalog.get_photo(photo_id)
    if output_format == "json":
        _echo_json(photo.to_dict())
    else:
        _echo_photo(photo)


@photos.command()
@click.argument("photo_id", type=int)
@click.option("--rating", type=int, help="New rating (0-5)")
@click.option("--favorite/--no-favorite", default=None, help="Mark or unmark as favorite")
@click.option("--tag", "tags", multiple=True, help="Replace tags (repeatable)")
@click.option("--clear-tags", is_flag=True, help="Remove all tags")
@click.option("--description", help="New description")
@click.pass_context
@catalog_errors
def update(ctx, photo_id, rating, favorite, tags, clear_tags, description):
    """Update rating, favorite flag, tags or description of a photo."""
    new_tags = [] if clear_tags else (list(tags) if tags else None)
    patch = MetadataPatch(rating=rating, is_favorite=favorite, tags=new_tags, description=description)
    if patch.is_empty():
        click.echo("Nothing to update.")
    with _open_catalog(ctx) as catalog:
        catalog.update_metadata(photo_id, patch)
    if not patch.is_empty():
        click.echo(f"Updated photo {photo_id}: {', '.join(patch.present_fields())}")


@photos.command()
@click.argument("photo_id", type=int)
@click.pass_context
@catalog_errors
def delete(ctx, photo_id):
    """Remove a photo from the catalog (the file is left on disk)."""
    with _open_catalog(ctx) as catalog:
        catalog.delete_photo(photo_id)
    click.echo(f"Deleted photo {photo_id}")


@cli.group()
def collections():
    """Manage collections."""
    pass


@collections.command("list")
@output_format_option
@click.pass_context
@catalog_errors
def list_collections(ctx, output_format):
    """List collections, most recently created first."""
    with _open_catalog(ctx) as catalog:
        results = catalog.list_collections()
    if output_format == "json":
        _echo_json([collection.to_dict() for collection in results])
        return
    if not results:
        click.echo("No collections.")
        return
    for collection in results:
        click.echo(f"[{collection.id}] {collection.name} (created {collection.created_at})")


@collections.command()
@click.argument("name")
@click.pass_context
@catalog_errors
def create(ctx, name):
    """Create a collection called NAME."""
    with _open_catalog(ctx) as catalog:
        collection_id = catalog.create_collection(name)
    click.echo(f"Created collection {collection_id}: {name}")


@collections.command("delete")
@click.argument("collection_id", type=int)
@click.pass_context
@catalog_errors
def delete_collection(ctx, collection_id):
    """Delete a collection; its photos stay in the catalog."""
    with _open_catalog(ctx) as catalog:
        catalog.delete_collection(collection_id)
    click.echo(f"Deleted collection {collection_id}")


@collections.command()
@click.argument("collection_id", type=int)
@click.argument("photo_ids", type=int, nargs=-1, required=True)
@click.pass_context
@catalog_errors
def add(ctx, collection_id, photo_ids):
    """Add photos to a collection."""
    with _open_catalog(ctx) as catalog:
        for photo_id in photo_ids:
            catalog.add_membership(photo_id, collection_id)
    click.echo(f"Added {len(photo_ids)} photo(s) to collection {collection_id}")


@collections.command()
@click.argument("collection_id", type=int)
@click.argument("photo_ids", type=int, nargs=-1, required=True)
@click.pass_context
@catalog_errors
def remove(ctx, collection_id, photo_ids):
    """Remove photos from a collection."""
    with _open_catalog(ctx) as catalog:
        for photo_id in photo_ids:
            catalog.remove_membership(photo_id, collection_id)
    click.echo(f"Removed {len(photo_ids)} photo(s) from collection {collection_id}")


@collections.command("show")
@click.argument("collection_id", type=int)
@output_format_option
@click.pass_context
@catalog_errors
def show_collection(ctx, collection_id, output_format):
    """List the photos of a collection."""
    with _open_catalog(ctx) as catalog:
        results = catalog.list_photos_in_collection(collection_id)
    if output_format == "json":
        _echo_json([photo.to_dict() for photo in results])
        return
    if not results:
        click.echo("Collection is empty.")
        return
    for photo in results:
        _echo_photo(photo)


@cli.command()
@click.argument("path")
@click.pass_context
@catalog_errors
def thumbnail(ctx, path):
    """Render (or fetch from cache) the thumbnail of PATH."""
    result = _thumbnail_cache(ctx).get_thumbnail(path)
    click.echo(f"{result.thumbnail_path} ({result.width}x{result.height})")


@cli.command()
@click.argument("source")
@click.argument("dest")
@click.option("--width", type=click.IntRange(min=1), help="Target width in pixels")
@click.option("--height", type=click.IntRange(min=1), help="Target height in pixels")
@click.option("--preserve-exif", is_flag=True, help="Copy EXIF metadata to the output")
@catalog_errors
def resize(source, dest, width, height, preserve_exif):
    """Write a resized copy of SOURCE to DEST (format from DEST's extension)."""
    dimensions = resize_image(source, dest, width=width, height=height, preserve_exif=preserve_exif)
    click.echo(f"Wrote {dest} ({dimensions.width}x{dimensions.height})")


@cli.group()
def cache():
    """Inspect or clear the thumbnail cache."""
    pass


@cache.command()
@click.pass_context
@catalog_errors
def size(ctx):
    """Show the total size of the thumbnail cache."""
    thumbnails = _thumbnail_cache(ctx)
    click.echo(f"{thumbnails.measure()} bytes in {thumbnails.cache_dir}")


@cache.command()
@click.pass_context
@catalog_errors
def clear(ctx):
    """Delete every cached thumbnail."""
    count = _thumbnail_cache(ctx).evict()
    click.echo(f"Cleared {count} cached thumbnails")


@cli.command()
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write to file instead of stdout")
@click.pass_context
@catalog_errors
def export(ctx, output):
    """Export the whole catalog as JSON."""
    with _open_catalog(ctx) as catalog:
        payload = catalog.export_json()
    if output is None:
        click.echo(payload)
        return
    output.write_text(payload, encoding="utf-8")
    click.echo(f"Exported catalog to {output}")


@cli.command()
@click.pass_context
@catalog_errors
def stats(ctx):
    """Show catalog statistics."""
    config = _config(ctx)
    with _open_catalog(ctx) as catalog:
        catalog_stats = catalog.get_stats()
        tags = catalog.all_tags()

    click.echo("Catalog Statistics:")
    click.echo(f"  Database file: {config.db_path}")
    click.echo(f"  Total photos: {catalog_stats.get('total_photos', 0)}")
    click.echo(f"  Favorites: {catalog_stats.get('favorites', 0)}")
    click.echo(f"  Collections: {catalog_stats.get('total_collections', 0)}")
    click.echo(f"  Memberships: {catalog_stats.get('total_memberships', 0)}")

    # Additional stats if verbose
    if ctx.obj.get("verbose"):
        click.echo(f"  Tags: {', '.join(tags) if tags else '(none)'}")


def main() -> None:
    """Entry point for the CLI."""
    try:
        cli(obj={})
    except Exception as e:
        click.echo(f"Fatal error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
