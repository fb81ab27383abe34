"""Folder ingestion: scan, read metadata, render thumbnails and catalog photos."""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

from photo_catalog.library.catalog_store import Catalog
from photo_catalog.library.errors import DuplicatePathError, PhotoCatalogError
from photo_catalog.library.exif import extract_exif
from photo_catalog.library.imaging import read_dimensions
from photo_catalog.library.models import ImageFile, Photo
from photo_catalog.library.scanner import PhotoScanner
from photo_catalog.library.thumbnails import ThumbnailCache

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, ImageFile], None]


@dataclass
class IngestReport:
    """Outcome of ingesting one folder."""
    found: int = 0
    added: List[int] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)  # already catalogued
    failed: Dict[str, str] = field(default_factory=dict)  # path -> error

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def ingest_file(catalog: Catalog, cache: Optional[ThumbnailCache], image: ImageFile) -> int:
    """Catalog a single scanned file and return the new photo id."""
    exif = extract_exif(image.path)
    dimensions = read_dimensions(image.path)
    thumbnail_path = None
    if cache is not None:
        thumbnail_path = cache.get_thumbnail(image.path).thumbnail_path

    return catalog.insert_photo(Photo(
        path=image.path,
        filename=image.filename,
        file_size=image.size,
        width=dimensions.width,
        height=dimensions.height,
        capture_date=exif.capture_date,
        thumbnail_path=thumbnail_path,
    ))


def ingest_directory(
    catalog: Catalog,
    cache: Optional[ThumbnailCache],
    directory: str,
    recursive: bool = True,
    on_progress: Optional[ProgressCallback] = None,
) -> IngestReport:
    """Scan *directory* and add every new image to the catalog.

    A file that fails is recorded in the report and the batch carries on.
    Errors about the directory itself propagate.
    """
    images = PhotoScanner(recursive=recursive).scan_directory(directory)
    report = IngestReport(found=len(images))

    for index, image in enumerate(images, 1):
        if on_progress is not None:
            on_progress(index, len(images), image)
        try:
            report.added.append(ingest_file(catalog, cache, image))
        except DuplicatePathError:
            logger.debug(f"Already catalogued: {image.path}")
            report.skipped.append(image.path)
        except PhotoCatalogError as e:
            logger.error(f"Failed to process {image.filename}: {e}")
            report.failed[image.path] = str(e)

    logger.info(
        f"Ingested {directory}: {len(report.added)} added, "
        f"{len(report.skipped)} skipped, {len(report.failed)} failed"
    )
    return report
