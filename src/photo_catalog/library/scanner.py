"""Photo directory scanner."""

import logging
import os
from pathlib import Path
from typing import Iterator, List, Set, Tuple

from photo_catalog.library.errors import NotADirectoryPathError, NotFoundError, RootNotFoundError
from photo_catalog.library.models import ImageFile

logger = logging.getLogger(__name__)

# Supported image formats
SUPPORTED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".heic", ".heif"}


def is_image_file(path: str) -> bool:
    """Return True if *path* carries one of the supported extensions."""
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def get_file_info(path: str) -> ImageFile:
    """Describe a single file without scanning its directory."""
    file_path = Path(path)
    if not file_path.exists():
        raise NotFoundError(f"File does not exist: {path}")
    try:
        size = file_path.stat().st_size
    except OSError as e:
        raise NotFoundError(f"Failed to read file metadata for {path}: {e}") from e
    return ImageFile(path=str(file_path.absolute()), filename=file_path.name, size=size)


class PhotoScanner:
    """Scanner for photo directories.

    Symbolic links are followed. A link back to a directory that is still
    being walked (an ancestor) is not entered again, so cycles terminate;
    two links to the same sibling directory are both walked.
    """

    def __init__(self, recursive: bool = True):
        self.recursive = recursive
        self._stats = {"scanned": 0, "skipped": 0, "errors": 0}
        self._ancestors: Set[Tuple[int, int]] = set()

    def scan_directory(self, directory: str) -> List[ImageFile]:
        """Scan a directory and return descriptors of every supported image."""
        directory_path = Path(directory).absolute()
        if not directory_path.exists():
            raise RootNotFoundError(f"Folder does not exist: {directory}")
        if not directory_path.is_dir():
            raise NotADirectoryPathError(f"Path is not a directory: {directory}")

        logger.info(f"Scanning folder: {directory_path}")
        self._stats = {"scanned": 0, "skipped": 0, "errors": 0}
        self._ancestors = set()
        images = list(self._scan_directory_iter(directory_path))

        logger.info(
            f"Scan completed: {self._stats['scanned']} found, "
            f"{self._stats['skipped']} skipped, {self._stats['errors']} errors"
        )
        return images

    def _scan_directory_iter(self, directory: Path) -> Iterator[ImageFile]:
        """Generator that yields image descriptors from directory."""
        try:
            dir_stat = directory.stat()
        except OSError as e:
            logger.warning(f"Cannot stat directory {directory}: {e}")
            self._stats["errors"] += 1
            return
        key = (dir_stat.st_dev, dir_stat.st_ino)
        if key in self._ancestors:
            logger.debug(f"Symlink cycle, not following again: {directory}")
            return

        self._ancestors.add(key)
        try:
            yield from self._scan_entries(directory)
        finally:
            self._ancestors.discard(key)

    def _scan_entries(self, directory: Path) -> Iterator[ImageFile]:
        try:
            entries = list(os.scandir(directory))
        except OSError as e:
            logger.warning(f"Cannot read directory {directory}: {e}")
            self._stats["errors"] += 1
            return

        for entry in entries:
            entry_path = Path(entry.path)
            try:
                is_dir = entry.is_dir(follow_symlinks=True)
                is_file = entry.is_file(follow_symlinks=True)
            except OSError as e:
                logger.warning(f"Cannot inspect {entry_path}: {e}")
                self._stats["errors"] += 1
                continue

            if is_dir:
                if self.recursive:
                    yield from self._scan_directory_iter(entry_path)
            elif is_file and is_image_file(entry.name):
                try:
                    size = entry.stat(follow_symlinks=True).st_size
                except OSError as e:
                    logger.warning(f"Failed to read metadata for {entry_path}: {e}")
                    self._stats["errors"] += 1
                    continue
                self._stats["scanned"] += 1
                yield ImageFile(path=str(entry_path), filename=entry.name, size=size)
            else:
                self._stats["skipped"] += 1

    def get_stats(self) -> dict:
        """Get scanning statistics."""
        return self._stats.copy()


def scan_images(directory: str, recursive: bool = True) -> List[ImageFile]:
    """Convenience function to scan images in a directory."""
    scanner = PhotoScanner(recursive=recursive)
    return scanner.scan_directory(directory)
