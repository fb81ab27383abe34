"""Content-addressed thumbnail cache."""

import hashlib
import logging
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from PIL import Image, UnidentifiedImageError

from photo_catalog.library.errors import ImageReadError
from photo_catalog.library.imaging import RESAMPLING_FILTER, open_image, prepare_for_format

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = 200
THUMBNAIL_FORMAT = "JPEG"
THUMBNAIL_EXTENSION = "jpg"
THUMBNAIL_QUALITY = 85


@dataclass
class ThumbnailResult:
    """Location and pixel size of a cached thumbnail."""
    thumbnail_path: str
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def cache_key(source_path: str) -> str:
    """SHA-256 hex digest of the absolute source path."""
    absolute = str(Path(source_path).absolute())
    return hashlib.sha256(absolute.encode("utf-8")).hexdigest()


class ThumbnailCache:
    """Flat directory of ``<digest>.jpg`` thumbnails, one per source path.

    A cached file is trusted as-is unless ``check_source_mtime`` is set, in
    which case a source modified after its thumbnail is rendered again.
    """

    def __init__(
        self,
        cache_dir: str,
        max_edge: int = THUMBNAIL_SIZE,
        check_source_mtime: bool = False,
    ):
        if max_edge <= 0:
            raise ValueError(f"max_edge must be positive, got {max_edge}")
        self.cache_dir = Path(cache_dir)
        self.max_edge = max_edge
        self.check_source_mtime = check_source_mtime

    def path_for(self, source_path: str) -> Path:
        """Cache file location for *source_path*, whether or not it exists."""
        return self.cache_dir / f"{cache_key(source_path)}.{THUMBNAIL_EXTENSION}"

    def get_thumbnail(self, source_path: str) -> ThumbnailResult:
        """Return the cached thumbnail for *source_path*, rendering it if needed.

        Raises:
            ImageReadError: If the source cannot be opened or the cache written.
            ImageDecodeError: If the source cannot be decoded.
        """
        thumbnail_path = self.path_for(source_path)

        if thumbnail_path.exists() and not self._is_stale(source_path, thumbnail_path):
            cached = self._read_cached(thumbnail_path)
            if cached is not None:
                logger.debug(f"Using cached thumbnail: {thumbnail_path}")
                return cached

        logger.info(f"Generating thumbnail for: {source_path}")
        with open_image(source_path) as img:
            thumb = img.copy()
        thumb.thumbnail((self.max_edge, self.max_edge), RESAMPLING_FILTER)
        thumb = prepare_for_format(thumb, THUMBNAIL_FORMAT)

        self._write_atomic(thumb, thumbnail_path)
        logger.info(f"Thumbnail saved: {thumbnail_path}")
        return ThumbnailResult(
            thumbnail_path=str(thumbnail_path),
            width=thumb.width,
            height=thumb.height,
        )

    def _is_stale(self, source_path: str, thumbnail_path: Path) -> bool:
        if not self.check_source_mtime:
            return False
        try:
            return os.stat(source_path).st_mtime > thumbnail_path.stat().st_mtime
        except OSError:
            # Source gone: keep serving what we have.
            return False

    def _read_cached(self, thumbnail_path: Path) -> Optional[ThumbnailResult]:
        try:
            with Image.open(thumbnail_path) as img:
                width, height = img.size
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Discarding unreadable cached thumbnail {thumbnail_path}: {e}")
            return None
        return ThumbnailResult(thumbnail_path=str(thumbnail_path), width=width, height=height)

    def _write_atomic(self, img: Image.Image, thumbnail_path: Path) -> None:
        """Encode into a temp file beside the target, then rename into place."""
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{thumbnail_path.stem}.", suffix=".tmp", dir=self.cache_dir
            )
        except OSError as e:
            raise ImageReadError(f"Failed to create cache directory {self.cache_dir}: {e}") from e

        try:
            with os.fdopen(fd, "wb") as handle:
                img.save(handle, format=THUMBNAIL_FORMAT, quality=THUMBNAIL_QUALITY)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, thumbnail_path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise ImageReadError(f"Failed to save thumbnail {thumbnail_path}: {e}") from e

    def _iter_files(self) -> Iterator[os.DirEntry]:
        if not self.cache_dir.exists():
            return
        try:
            entries = list(os.scandir(self.cache_dir))
        except OSError as e:
            raise ImageReadError(f"Failed to read cache directory {self.cache_dir}: {e}") from e
        for entry in entries:
            if entry.is_file(follow_symlinks=False):
                yield entry

    def evict(self) -> int:
        """Delete every regular file directly under the cache root."""
        logger.info(f"Clearing thumbnail cache: {self.cache_dir}")
        count = 0
        for entry in self._iter_files():
            try:
                os.remove(entry.path)
            except OSError as e:
                raise ImageReadError(f"Failed to remove {entry.path}: {e}") from e
            count += 1
        logger.info(f"Cleared {count} cached thumbnails")
        return count

    def measure(self) -> int:
        """Total size in bytes of the regular files directly under the cache root."""
        total_size = 0
        for entry in self._iter_files():
            try:
                total_size += entry.stat(follow_symlinks=False).st_size
            except OSError as e:
                raise ImageReadError(f"Failed to read metadata for {entry.path}: {e}") from e
        return total_size
