"""Data models for scanned files, photo metadata and catalog records."""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def encode_tags(tags: List[str]) -> str:
    """Serialize an ordered tag list to its wire/storage string."""
    return json.dumps(list(tags), ensure_ascii=False)


def decode_tags(raw: Optional[str]) -> List[str]:
    """Parse a stored tag string back into an ordered list.

    Tags are stored verbatim, so anything that is not a JSON array of strings
    is reported and treated as an empty list.
    """
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Ignoring malformed tag data: {raw!r}")
        return []
    if not isinstance(value, list):
        logger.warning(f"Ignoring non-list tag data: {raw!r}")
        return []
    return [str(tag) for tag in value]


@dataclass
class ImageFile:
    """A candidate image found by the scanner."""
    path: str
    filename: str
    size: int  # in bytes

    @property
    def directory(self) -> str:
        """Get directory containing the file."""
        return str(Path(self.path).parent)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ExifData:
    """Capture metadata embedded in an image. Every field is optional."""
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    lens_model: Optional[str] = None
    focal_length: Optional[float] = None
    aperture: Optional[float] = None
    shutter_speed: Optional[str] = None
    iso: Optional[int] = None
    exposure_bias: Optional[float] = None
    flash: Optional[str] = None
    orientation: Optional[int] = None
    capture_date: Optional[str] = None
    gps_latitude: Optional[float] = None
    gps_longitude: Optional[float] = None
    gps_altitude: Optional[float] = None

    def is_empty(self) -> bool:
        """True when no field could be extracted."""
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a field-named dictionary for transport."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExifData":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass
class Photo:
    """A catalogued photo.

    ``id`` and ``added_at`` are assigned by the catalog on insert; whatever a
    caller puts there before inserting is ignored.
    """
    path: str
    filename: str
    file_size: int
    width: int
    height: int
    capture_date: Optional[str] = None
    rating: int = 0
    is_favorite: bool = False
    tags: List[str] = field(default_factory=list)
    description: Optional[str] = None
    thumbnail_path: Optional[str] = None
    id: Optional[int] = None
    added_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary; tags use their serialized string form."""
        data = asdict(self)
        data["tags"] = encode_tags(self.tags)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Photo":
        """Create from dictionary. Tags may be a list or a serialized string."""
        tags = data.get("tags", [])
        if isinstance(tags, str):
            tags = decode_tags(tags)
        return cls(
            path=data["path"],
            filename=data["filename"],
            file_size=data["file_size"],
            width=data["width"],
            height=data["height"],
            capture_date=data.get("capture_date"),
            rating=data.get("rating", 0),
            is_favorite=bool(data.get("is_favorite", False)),
            tags=list(tags),
            description=data.get("description"),
            thumbnail_path=data.get("thumbnail_path"),
            id=data.get("id"),
            added_at=data.get("added_at"),
        )


@dataclass
class MetadataPatch:
    """Partial update of the user-editable photo fields.

    A field left as ``None`` is absent and will not be touched.
    """
    rating: Optional[int] = None
    is_favorite: Optional[bool] = None
    tags: Optional[List[str]] = None
    description: Optional[str] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def present_fields(self) -> Dict[str, Any]:
        """Return only the fields that carry a value."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class Collection:
    """A named group of photos."""
    id: int
    name: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Membership:
    """Edge between a photo and a collection."""
    photo_id: int
    collection_id: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CatalogSnapshot:
    """Complete point-in-time export of the catalog."""
    schema_version: int
    photos: List[Photo] = field(default_factory=list)
    collections: List[Collection] = field(default_factory=list)
    memberships: List[Membership] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "photos": [photo.to_dict() for photo in self.photos],
            "collections": [collection.to_dict() for collection in self.collections],
            "memberships": [membership.to_dict() for membership in self.memberships],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogSnapshot":
        """Create from dictionary."""
        return cls(
            schema_version=data["schema_version"],
            photos=[Photo.from_dict(item) for item in data.get("photos", [])],
            collections=[Collection(**item) for item in data.get("collections", [])],
            memberships=[Membership(**item) for item in data.get("memberships", [])],
        )


SORT_FIELDS = ("added_at", "capture_date", "filename", "rating")


@dataclass
class PhotoFilter:
    """Criteria for searching the catalog."""
    keyword: Optional[str] = None
    tags: List[str] = field(default_factory=list)  # photo must carry all of them
    min_rating: Optional[int] = None
    favorites_only: bool = False
    captured_after: Optional[str] = None
    captured_before: Optional[str] = None
    sort_by: str = "added_at"
    descending: bool = True
    limit: Optional[int] = None

    def __post_init__(self):
        if self.sort_by not in SORT_FIELDS:
            raise ValueError(
                f"Unsupported sort field: {self.sort_by} (expected one of {', '.join(SORT_FIELDS)})"
            )
