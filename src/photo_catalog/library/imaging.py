"""Image decode/encode helpers shared by the thumbnail cache and exports."""

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from PIL import Image, UnidentifiedImageError
from pillow_heif import register_heif_opener

from photo_catalog.library.errors import ImageDecodeError, ImageReadError, UnsupportedFormatError

logger = logging.getLogger(__name__)

# Register HEIF format
register_heif_opener()

RESAMPLING_FILTER = Image.Resampling.LANCZOS

# Output formats accepted for exported copies, keyed by lower-case extension
OUTPUT_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
}


@dataclass
class ImageDimensions:
    """Pixel size of an image."""
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def open_image(path: str) -> Image.Image:
    """Open and fully decode an image.

    Raises:
        ImageReadError: If the file cannot be opened.
        ImageDecodeError: If the bytes are not a decodable image.
    """
    try:
        img = Image.open(path)
    except (UnidentifiedImageError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Failed to decode image {path}: {e}") from e
    except OSError as e:
        raise ImageReadError(f"Failed to open image {path}: {e}") from e

    try:
        img.load()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        img.close()
        raise ImageDecodeError(f"Failed to decode image {path}: {e}") from e
    return img


def read_dimensions(path: str) -> ImageDimensions:
    """Return the pixel size of an image without decoding its pixel data."""
    try:
        with Image.open(path) as img:
            width, height = img.size
    except (UnidentifiedImageError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Failed to decode image {path}: {e}") from e
    except OSError as e:
        raise ImageReadError(f"Failed to open image {path}: {e}") from e
    return ImageDimensions(width=width, height=height)


def output_format_for(path: str) -> str:
    """Map a destination file extension onto a Pillow format name."""
    ext = Path(path).suffix.lower().lstrip(".")
    if not ext:
        raise UnsupportedFormatError(f"No file extension found: {path}")
    try:
        return OUTPUT_FORMATS[ext]
    except KeyError:
        raise UnsupportedFormatError(f"Unsupported image format: {ext}") from None


def prepare_for_format(img: Image.Image, image_format: str) -> Image.Image:
    """Convert *img* into a mode the target encoder accepts."""
    if image_format == "JPEG" and img.mode not in ("RGB", "L", "CMYK"):
        return img.convert("RGB")
    if image_format in ("PNG", "WEBP") and img.mode not in ("RGB", "RGBA", "L", "LA"):
        has_alpha = img.mode in ("PA", "RGBa", "La") or "transparency" in img.info
        return img.convert("RGBA" if has_alpha else "RGB")
    return img


def compute_target_size(
    source_width: int,
    source_height: int,
    width: Optional[int],
    height: Optional[int],
) -> Optional[ImageDimensions]:
    """Work out the output size of an export resize.

    Both sides given means an exact resize; one side given derives the other
    from the source aspect ratio; neither means no resize (``None``).
    """
    for name, value in (("width", width), ("height", height)):
        if value is not None and value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")

    if width is not None and height is not None:
        return ImageDimensions(width=width, height=height)
    if width is not None:
        derived = int(width * (source_height / source_width))
        return ImageDimensions(width=width, height=max(derived, 1))
    if height is not None:
        derived = int(height * (source_width / source_height))
        return ImageDimensions(width=max(derived, 1), height=height)
    return None


def resize_image(
    source_path: str,
    dest_path: str,
    width: Optional[int] = None,
    height: Optional[int] = None,
    preserve_exif: bool = False,
) -> ImageDimensions:
    """Write a resized copy of *source_path* to *dest_path*.

    The output format comes from the destination extension and must be one of
    :data:`OUTPUT_FORMATS`.

    Args:
        source_path: Image to read.
        dest_path: File to write.
        width: Target width in pixels, optional.
        height: Target height in pixels, optional.
        preserve_exif: Copy the source EXIF block into the output.

    Returns:
        Dimensions of the written image.

    Raises:
        UnsupportedFormatError: If the destination extension is not supported.
        ImageReadError: If the source cannot be opened or the output written.
        ImageDecodeError: If the source cannot be decoded.
    """
    image_format = output_format_for(dest_path)
    logger.info(f"Resizing image: {source_path} -> {dest_path}")

    with open_image(source_path) as img:
        exif_bytes = img.info.get("exif") if preserve_exif else None
        target = compute_target_size(img.width, img.height, width, height)
        if target is None:
            output = img.copy()
        else:
            output = img.resize((target.width, target.height), RESAMPLING_FILTER)

    output = prepare_for_format(output, image_format)
    save_kwargs: Dict[str, Any] = {}
    if exif_bytes:
        save_kwargs["exif"] = exif_bytes
    elif preserve_exif:
        logger.debug(f"No EXIF block to preserve in {source_path}")

    try:
        output.save(dest_path, format=image_format, **save_kwargs)
    except OSError as e:
        raise ImageReadError(f"Failed to save resized image {dest_path}: {e}") from e

    logger.info(f"Image resized successfully to {output.width}x{output.height}")
    return ImageDimensions(width=output.width, height=output.height)
