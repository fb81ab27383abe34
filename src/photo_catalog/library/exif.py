"""Embedded EXIF metadata extraction."""

import logging
import math
import re
from dataclasses import dataclass
from numbers import Rational
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from PIL import ExifTags, Image, UnidentifiedImageError

import photo_catalog.library.imaging  # noqa: F401  (registers the HEIF opener)
from photo_catalog.library.errors import ImageReadError
from photo_catalog.library.models import ExifData

logger = logging.getLogger(__name__)

Base = ExifTags.Base
GPS = ExifTags.GPS

_EXIF_DATE = re.compile(r"^(\d{4}):(\d{2}):(\d{2})([ T].*)?$")

FLASH_MODES = {1: "forced", 2: "suppressed", 3: "auto"}
FLASH_RETURN = {2: "return light not detected", 3: "return light detected"}


def rational_to_float(value: Any) -> Optional[float]:
    """Convert an EXIF rational to float.

    Accepts Pillow's ``IFDRational``, a ``(numerator, denominator)`` pair or a
    plain number. A zero denominator or a non-finite result gives ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (tuple, list)):
        if len(value) != 2:
            return None
        numerator, denominator = value
    elif isinstance(value, Rational):
        numerator, denominator = value.numerator, value.denominator
    elif isinstance(value, (int, float)):
        numerator, denominator = value, 1
    else:
        return None

    try:
        if denominator == 0:
            return None
        result = float(numerator) / float(denominator)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    return result if math.isfinite(result) else None


def dms_to_decimal(triple: Optional[Sequence[Any]], ref: Any = None) -> Optional[float]:
    """Convert a degrees/minutes/seconds rational triple to decimal degrees.

    Fewer than three components, or any component that is not a usable
    rational, leaves the coordinate absent. A southern or western reference
    makes the result negative.
    """
    if triple is None or isinstance(triple, (str, bytes)):
        return None
    try:
        parts = list(triple)
    except TypeError:
        return None
    if len(parts) < 3:
        return None

    degrees, minutes, seconds = (rational_to_float(part) for part in parts[:3])
    if degrees is None or minutes is None or seconds is None:
        return None

    decimal = degrees + minutes / 60.0 + seconds / 3600.0
    if clean_text(ref) in ("S", "W"):
        decimal = -decimal
    return decimal


def clean_text(value: Any) -> Optional[str]:
    """Normalize an ASCII/UNDEFINED tag value to a stripped string."""
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    if not isinstance(value, str):
        value = str(value)
    value = value.replace("\x00", "").strip()
    return value or None


def format_exif_date(value: Any) -> Optional[str]:
    """Render an EXIF ``YYYY:MM:DD HH:MM:SS`` stamp as ``YYYY-MM-DD HH:MM:SS``.

    Anything that does not look like an EXIF date is returned unchanged.
    """
    text = clean_text(value)
    if text is None:
        return None
    match = _EXIF_DATE.match(text)
    if not match:
        return text
    year, month, day, rest = match.groups()
    return f"{year}-{month}-{day}{rest or ''}"


def format_exposure_time(value: Any) -> Optional[str]:
    """Display an exposure time the way it is stored, e.g. ``1/250``."""
    if isinstance(value, (tuple, list)) and len(value) == 2:
        numerator, denominator = value
    elif isinstance(value, Rational):
        numerator, denominator = value.numerator, value.denominator
    elif isinstance(value, float) and math.isfinite(value):
        return f"{value:g}"
    else:
        return None
    if denominator == 0:
        return None
    if denominator == 1:
        return str(numerator)
    return f"{numerator}/{denominator}"


def describe_flash(value: int) -> str:
    """Turn the EXIF Flash bit field into a short description."""
    if value & 0x20:
        return "no flash function"
    parts = ["fired" if value & 0x01 else "not fired"]
    mode = (value >> 3) & 0x03
    if mode in FLASH_MODES:
        parts.append(FLASH_MODES[mode])
    returned = (value >> 1) & 0x03
    if returned in FLASH_RETURN:
        parts.append(FLASH_RETURN[returned])
    if value & 0x40:
        parts.append("red-eye reduction")
    return ", ".join(parts)


def _first(value: Any) -> Any:
    """Unwrap single-valued tags stored as a one-element (or longer) sequence."""
    if isinstance(value, (tuple, list)) and value:
        head = value[0]
        if isinstance(head, int):
            # A bare (numerator, denominator) pair is one value, not two.
            return value if len(value) == 2 else head
        if isinstance(head, (tuple, list, Rational, float)):
            return head
    return value


def _as_int(value: Any) -> Optional[int]:
    value = _first(value)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


@dataclass
class _ExifView:
    """The primary IFD plus its Exif and GPS sub-IFDs."""
    primary: Dict[int, Any]
    exif: Dict[int, Any]
    gps: Dict[int, Any]

    def get(self, tag: int) -> Any:
        """Look a tag up in the Exif sub-IFD first, then the primary IFD."""
        value = self.exif.get(tag)
        if value is None:
            value = self.primary.get(tag)
        return value


def _capture_date(view: _ExifView) -> Optional[str]:
    original = format_exif_date(view.get(Base.DateTimeOriginal))
    if original is not None:
        return original
    return format_exif_date(view.get(Base.DateTime))


def _flash(view: _ExifView) -> Optional[str]:
    value = _as_int(view.get(Base.Flash))
    return describe_flash(value) if value is not None else None


def _gps_altitude(view: _ExifView) -> Optional[float]:
    altitude = rational_to_float(_first(view.gps.get(GPS.GPSAltitude)))
    if altitude is None:
        return None
    ref = view.gps.get(GPS.GPSAltitudeRef)
    if isinstance(ref, bytes):
        ref = ref[:1] == b"\x01"
    if ref == 1 or ref is True:
        altitude = -altitude
    return altitude


def _iso(view: _ExifView) -> Optional[int]:
    value = _as_int(view.get(Base.ISOSpeedRatings))
    return value if value is not None and value >= 0 else None


# Field name -> extractor. Each runs in isolation.
FIELD_EXTRACTORS: List[Tuple[str, Callable[[_ExifView], Any]]] = [
    ("camera_make", lambda view: clean_text(view.get(Base.Make))),
    ("camera_model", lambda view: clean_text(view.get(Base.Model))),
    ("lens_model", lambda view: clean_text(view.get(Base.LensModel))),
    ("focal_length", lambda view: rational_to_float(_first(view.get(Base.FocalLength)))),
    ("aperture", lambda view: rational_to_float(_first(view.get(Base.FNumber)))),
    ("shutter_speed", lambda view: format_exposure_time(_first(view.get(Base.ExposureTime)))),
    ("iso", _iso),
    ("exposure_bias", lambda view: rational_to_float(_first(view.get(Base.ExposureBiasValue)))),
    ("flash", _flash),
    ("orientation", lambda view: _as_int(view.get(Base.Orientation))),
    ("capture_date", _capture_date),
    ("gps_latitude", lambda view: dms_to_decimal(
        view.gps.get(GPS.GPSLatitude), view.gps.get(GPS.GPSLatitudeRef))),
    ("gps_longitude", lambda view: dms_to_decimal(
        view.gps.get(GPS.GPSLongitude), view.gps.get(GPS.GPSLongitudeRef))),
    ("gps_altitude", _gps_altitude),
]


def _read_view(img: Image.Image) -> _ExifView:
    exif = img.getexif()
    return _ExifView(
        primary=dict(exif),
        exif=dict(exif.get_ifd(ExifTags.IFD.Exif)),
        gps=dict(exif.get_ifd(ExifTags.IFD.GPSInfo)),
    )


def extract_exif(path: str) -> ExifData:
    """Extract capture metadata from the image at *path*.

    Missing or corrupt metadata is not an error: the affected fields are
    simply left as ``None``.

    Raises:
        ImageReadError: If the file cannot be opened.
    """
    logger.debug(f"Extracting EXIF from: {path}")
    try:
        handle = open(path, "rb")
    except OSError as e:
        raise ImageReadError(f"Failed to open file {path}: {e}") from e

    with handle:
        try:
            with Image.open(handle) as img:
                view = _read_view(img)
        except UnidentifiedImageError as e:
            logger.warning(f"No EXIF data found in {path}: {e}")
            return ExifData()
        except Exception as e:
            logger.warning(f"Unreadable EXIF data in {path}: {e}")
            return ExifData()

    data = ExifData()
    for name, extractor in FIELD_EXTRACTORS:
        try:
            setattr(data, name, extractor(view))
        except (TypeError, ValueError, ArithmeticError, KeyError, IndexError, AttributeError) as e:
            logger.debug(f"Skipping EXIF field {name} in {path}: {e}")

    if data.is_empty():
        logger.debug(f"No EXIF data found in {path}")
    return data
