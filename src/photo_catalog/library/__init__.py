"""Photo catalog core: scanner, EXIF extraction, catalog store and thumbnail cache."""

from .catalog_store import SCHEMA_VERSION, Catalog
from .errors import (
    CatalogSchemaError,
    CollectionNotFoundError,
    DuplicateError,
    DuplicateNameError,
    DuplicatePathError,
    ImageDecodeError,
    ImageReadError,
    NotADirectoryPathError,
    NotFoundError,
    PhotoCatalogError,
    PhotoNotFoundError,
    RootNotFoundError,
    UnsupportedFormatError,
)
from .exif import extract_exif
from .imaging import ImageDimensions, read_dimensions, resize_image
from .models import (
    CatalogSnapshot,
    Collection,
    ExifData,
    ImageFile,
    Membership,
    MetadataPatch,
    Photo,
    PhotoFilter,
)
from .scanner import PhotoScanner, scan_images
from .thumbnails import ThumbnailCache, ThumbnailResult

__all__ = [
    "SCHEMA_VERSION",
    "Catalog",
    "CatalogSchemaError",
    "CatalogSnapshot",
    "Collection",
    "CollectionNotFoundError",
    "DuplicateError",
    "DuplicateNameError",
    "DuplicatePathError",
    "ExifData",
    "ImageDecodeError",
    "ImageDimensions",
    "ImageFile",
    "ImageReadError",
    "Membership",
    "MetadataPatch",
    "NotADirectoryPathError",
    "NotFoundError",
    "Photo",
    "PhotoCatalogError",
    "PhotoFilter",
    "PhotoNotFoundError",
    "PhotoScanner",
    "RootNotFoundError",
    "ThumbnailCache",
    "ThumbnailResult",
    "UnsupportedFormatError",
    "extract_exif",
    "read_dimensions",
    "resize_image",
    "scan_images",
]
