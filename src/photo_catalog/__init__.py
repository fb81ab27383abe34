"""photo-catalog - local photo catalog with EXIF extraction and a thumbnail cache."""

__version__ = "0.1.0"
__author__ = "photo-catalog contributors"
__license__ = "MIT"

import logging

# Public API
from .library import Catalog, MetadataPatch, Photo, ThumbnailCache, extract_exif, scan_images
from .cli import main as cli_main

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "Catalog",
    "MetadataPatch",
    "Photo",
    "ThumbnailCache",
    "extract_exif",
    "scan_images",
    "cli_main",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
