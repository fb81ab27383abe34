"""SQLite-backed catalog of photos, collections and their memberships."""

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from photo_catalog.library.errors import (
    CatalogSchemaError,
    CollectionNotFoundError,
    DuplicateNameError,
    DuplicatePathError,
    PhotoNotFoundError,
)
from photo_catalog.library.models import (
    CatalogSnapshot,
    Collection,
    Membership,
    MetadataPatch,
    Photo,
    PhotoFilter,
    decode_tags,
    encode_tags,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

PHOTO_COLUMNS = (
    "id, path, filename, file_size, width, height, capture_date, added_at, "
    "rating, is_favorite, tags, description, thumbnail_path"
)

# PhotoFilter.sort_by -> ORDER BY expression
SORT_COLUMNS = {
    "added_at": "added_at",
    "capture_date": "capture_date",
    "filename": "filename COLLATE NOCASE",
    "rating": "rating",
}

# MetadataPatch field -> column
PATCH_COLUMNS = {
    "rating": "rating",
    "is_favorite": "is_favorite",
    "tags": "tags",
    "description": "description",
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_date(value: str) -> str:
    """Make EXIF-style ``YYYY:MM:DD`` dates comparable with ISO dates."""
    return value[:10].replace(":", "-") + value[10:]


class Catalog:
    """Persistent photo catalog.

    One connection is shared by every operation and guarded by a lock, so
    operations are serialized even when the catalog is used from a worker
    pool. The caller owns the lifecycle: open it, pass it around, close it.
    """

    def __init__(self, db_path: str = "photos.db"):
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Opening catalog at: {db_path}")
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.Lock()
        self._last_stamp: Optional[datetime] = None
        try:
            self._init_db()
        except Exception:
            self._conn.close()
            raise

    def __enter__(self) -> "Catalog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    # Schema lifecycle

    def _init_db(self) -> None:
        """Create tables on first open; leave an existing catalog untouched."""
        with self._lock, self._conn:
            cursor = self._conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS app_metadata (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            cursor.execute("SELECT value FROM app_metadata WHERE key = 'schema_version'")
            row = cursor.fetchone()
            if row is not None:
                version = int(row["value"])
                if version > SCHEMA_VERSION:
                    raise CatalogSchemaError(
                        f"Catalog schema version {version} is newer than supported version {SCHEMA_VERSION}"
                    )
                logger.debug(f"Found catalog schema version {version}")
            else:
                logger.info("Creating catalog schema")

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS photos (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    path TEXT NOT NULL UNIQUE,
                    filename TEXT NOT NULL,
                    file_size INTEGER NOT NULL,
                    width INTEGER NOT NULL,
                    height INTEGER NOT NULL,
                    capture_date TEXT,
                    added_at TEXT NOT NULL,
                    rating INTEGER NOT NULL DEFAULT 0,
                    is_favorite INTEGER NOT NULL DEFAULT 0,
                    tags TEXT NOT NULL DEFAULT '[]',
                    description TEXT,
                    thumbnail_path TEXT
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS collections (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS photo_collections (
                    photo_id INTEGER NOT NULL,
                    collection_id INTEGER NOT NULL,
                    PRIMARY KEY (photo_id, collection_id),
                    FOREIGN KEY (photo_id) REFERENCES photos (id) ON DELETE CASCADE,
                    FOREIGN KEY (collection_id) REFERENCES collections (id) ON DELETE CASCADE
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_photos_rating ON photos(rating)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_photos_capture_date ON photos(capture_date)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_photos_added_at ON photos(added_at)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_photos_is_favorite ON photos(is_favorite)")
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_photo_collections_collection "
                "ON photo_collections(collection_id)"
            )

            if row is None:
                cursor.execute(
                    "INSERT INTO app_metadata (key, value) VALUES ('schema_version', ?)",
                    (str(SCHEMA_VERSION),),
                )

            cursor.execute(
                "SELECT MAX(stamp) FROM ("
                " SELECT MAX(added_at) AS stamp FROM photos"
                " UNION ALL SELECT MAX(created_at) FROM collections)"
            )
            latest = cursor.fetchone()[0]
            if latest:
                self._last_stamp = datetime.fromisoformat(latest)

    def schema_version(self) -> int:
        """Return the schema-version marker stored in the catalog."""
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM app_metadata WHERE key = 'schema_version'"
            ).fetchone()
        return int(row["value"])

    def _next_stamp(self) -> str:
        """Timestamp for a new row, never earlier than the previous one."""
        now = _utc_now()
        if self._last_stamp is not None and now < self._last_stamp:
            now = self._last_stamp
        self._last_stamp = now
        return now.isoformat(timespec="microseconds")

    # Photos

    def insert_photo(self, photo: Photo) -> int:
        """Insert a new photo and return its id.

        Raises:
            DuplicatePathError: If a photo with the same path exists.
        """
        with self._lock:
            added_at = self._next_stamp()
            try:
                with self._conn:
                    cursor = self._conn.execute(
                        """
                        INSERT INTO photos (
                            path, filename, file_size, width, height, capture_date,
                            added_at, rating, is_favorite, tags, description, thumbnail_path
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            photo.path,
                            photo.filename,
                            photo.file_size,
                            photo.width,
                            photo.height,
                            photo.capture_date,
                            added_at,
                            photo.rating,
                            int(photo.is_favorite),
                            encode_tags(photo.tags),
                            photo.description,
                            photo.thumbnail_path,
                        ),
                    )
            except sqlite3.IntegrityError as e:
                if "photos.path" in str(e):
                    raise DuplicatePathError(photo.path) from e
                raise
            photo_id = cursor.lastrowid
        if photo_id is None:
            raise ValueError("Failed to get last insert ID")
        logger.debug(f"Inserted photo {photo_id}: {photo.path}")
        return photo_id

    def get_photo(self, photo_id: int) -> Photo:
        """Get a photo by id."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {PHOTO_COLUMNS} FROM photos WHERE id = ?", (photo_id,)
            ).fetchone()
        if row is None:
            raise PhotoNotFoundError(photo_id)
        return self._row_to_photo(row)

    def list_photos(self) -> List[Photo]:
        """All photos, most recently added first."""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {PHOTO_COLUMNS} FROM photos ORDER BY added_at DESC, id DESC"
            ).fetchall()
        return [self._row_to_photo(row) for row in rows]

    def update_metadata(self, photo_id: int, patch: MetadataPatch) -> None:
        """Apply the fields present in *patch* to a photo.

        Raises:
            PhotoNotFoundError: If no photo has this id, even for an empty patch.
        """
        values = patch.present_fields()
        with self._lock, self._conn:
            if not self._exists("photos", photo_id):
                raise PhotoNotFoundError(photo_id)
            if not values:
                return

            assignments = []
            params: List[Any] = []
            for name, value in values.items():
                if name == "tags":
                    value = encode_tags(value)
                elif name == "is_favorite":
                    value = int(value)
                assignments.append(f"{PATCH_COLUMNS[name]} = ?")
                params.append(value)
            params.append(photo_id)
            self._conn.execute(
                f"UPDATE photos SET {', '.join(assignments)} WHERE id = ?", params
            )
        logger.debug(f"Updated photo {photo_id}: {', '.join(values)}")

    def delete_photo(self, photo_id: int) -> None:
        """Remove a photo and its memberships."""
        with self._lock, self._conn:
            cursor = self._conn.execute("DELETE FROM photos WHERE id = ?", (photo_id,))
            if cursor.rowcount == 0:
                raise PhotoNotFoundError(photo_id)
        logger.info(f"Deleted photo {photo_id}")

    def search_photos(self, criteria: PhotoFilter) -> List[Photo]:
        """Search photos by rating, favorite flag, keyword, tags and capture date."""
        clauses: List[str] = []
        params: List[Any] = []
        if criteria.min_rating is not None:
            clauses.append("rating >= ?")
            params.append(criteria.min_rating)
        if criteria.favorites_only:
            clauses.append("is_favorite = 1")

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        direction = "DESC" if criteria.descending else "ASC"
        order = f"{SORT_COLUMNS[criteria.sort_by]} {direction}, id {direction}"
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {PHOTO_COLUMNS} FROM photos {where} ORDER BY {order}", params
            ).fetchall()

        photos = [self._row_to_photo(row) for row in rows]
        photos = [photo for photo in photos if self._matches(photo, criteria)]
        if criteria.limit is not None:
            photos = photos[: criteria.limit]
        return photos

    @staticmethod
    def _matches(photo: Photo, criteria: PhotoFilter) -> bool:
        if criteria.tags and not all(tag in photo.tags for tag in criteria.tags):
            return False

        keyword = (criteria.keyword or "").strip().lower()
        if keyword:
            haystacks = [photo.filename, photo.description or ""] + photo.tags
            if not any(keyword in text.lower() for text in haystacks):
                return False

        if criteria.captured_after or criteria.captured_before:
            if not photo.capture_date:
                return False
            captured = _normalize_date(photo.capture_date)
            if criteria.captured_after and captured < _normalize_date(criteria.captured_after):
                return False
            if criteria.captured_before and captured > _normalize_date(criteria.captured_before):
                return False
        return True

    def all_tags(self) -> List[str]:
        """Sorted list of every distinct tag in the catalog."""
        with self._lock:
            rows = self._conn.execute("SELECT tags FROM photos").fetchall()
        tags = set()
        for row in rows:
            tags.update(decode_tags(row["tags"]))
        return sorted(tags)

    # Collections

    def create_collection(self, name: str) -> int:
        """Create a collection and return its id.

        Raises:
            DuplicateNameError: If a collection with this name exists.
        """
        with self._lock:
            created_at = self._next_stamp()
            try:
                with self._conn:
                    cursor = self._conn.execute(
                        "INSERT INTO collections (name, created_at) VALUES (?, ?)",
                        (name, created_at),
                    )
            except sqlite3.IntegrityError as e:
                if "collections.name" in str(e):
                    raise DuplicateNameError(name) from e
                raise
            collection_id = cursor.lastrowid
        if collection_id is None:
            raise ValueError("Failed to get last insert ID")
        logger.info(f"Created collection {collection_id}: {name}")
        return collection_id

    def list_collections(self) -> List[Collection]:
        """All collections, most recently created first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, name, created_at FROM collections ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [Collection(id=row["id"], name=row["name"], created_at=row["created_at"]) for row in rows]

    def delete_collection(self, collection_id: int) -> None:
        """Remove a collection and its memberships. Photos are kept."""
        with self._lock, self._conn:
            cursor = self._conn.execute("DELETE FROM collections WHERE id = ?", (collection_id,))
            if cursor.rowcount == 0:
                raise CollectionNotFoundError(collection_id)
        logger.info(f"Deleted collection {collection_id}")

    def add_membership(self, photo_id: int, collection_id: int) -> None:
        """Put a photo in a collection. Adding it twice is a no-op."""
        with self._lock, self._conn:
            if not self._exists("photos", photo_id):
                raise PhotoNotFoundError(photo_id)
            if not self._exists("collections", collection_id):
                raise CollectionNotFoundError(collection_id)
            self._conn.execute(
                "INSERT OR IGNORE INTO photo_collections (photo_id, collection_id) VALUES (?, ?)",
                (photo_id, collection_id),
            )

    def remove_membership(self, photo_id: int, collection_id: int) -> None:
        """Take a photo out of a collection. Missing memberships are ignored."""
        with self._lock, self._conn:
            self._conn.execute(
                "DELETE FROM photo_collections WHERE photo_id = ? AND collection_id = ?",
                (photo_id, collection_id),
            )

    def list_photos_in_collection(self, collection_id: int) -> List[Photo]:
        """Photos of a collection, most recently added first."""
        columns = ", ".join(f"p.{column.strip()}" for column in PHOTO_COLUMNS.split(","))
        with self._lock:
            rows = self._conn.execute(
                f"""
                SELECT {columns}
                FROM photos p
                INNER JOIN photo_collections pc ON p.id = pc.photo_id
                WHERE pc.collection_id = ?
                ORDER BY p.added_at DESC, p.id DESC
                """,
                (collection_id,),
            ).fetchall()
        return [self._row_to_photo(row) for row in rows]

    # Export and statistics

    def export_snapshot(self) -> CatalogSnapshot:
        """Export every photo, collection and membership in a stable order."""
        with self._lock:
            photo_rows = self._conn.execute(
                f"SELECT {PHOTO_COLUMNS} FROM photos ORDER BY id"
            ).fetchall()
            collection_rows = self._conn.execute(
                "SELECT id, name, created_at FROM collections ORDER BY id"
            ).fetchall()
            membership_rows = self._conn.execute(
                "SELECT photo_id, collection_id FROM photo_collections ORDER BY photo_id, collection_id"
            ).fetchall()

        return CatalogSnapshot(
            schema_version=SCHEMA_VERSION,
            photos=[self._row_to_photo(row) for row in photo_rows],
            collections=[
                Collection(id=row["id"], name=row["name"], created_at=row["created_at"])
                for row in collection_rows
            ],
            memberships=[
                Membership(photo_id=row["photo_id"], collection_id=row["collection_id"])
                for row in membership_rows
            ],
        )

    def export_json(self) -> str:
        """Export the catalog as an indented JSON document."""
        return self.export_snapshot().to_json()

    def get_stats(self) -> Dict[str, Any]:
        """Get catalog statistics."""
        with self._lock:
            cursor = self._conn.cursor()
            stats = {}
            cursor.execute("SELECT COUNT(*) FROM photos")
            stats["total_photos"] = cursor.fetchone()[0]

            cursor.execute("SELECT COUNT(*) FROM photos WHERE is_favorite = 1")
            stats["favorites"] = cursor.fetchone()[0]

            cursor.execute("SELECT COUNT(*) FROM collections")
            stats["total_collections"] = cursor.fetchone()[0]

            cursor.execute("SELECT COUNT(*) FROM photo_collections")
            stats["total_memberships"] = cursor.fetchone()[0]

        return stats

    def _exists(self, table: str, row_id: int) -> bool:
        row = self._conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (row_id,)).fetchone()
        return row is not None

    def _row_to_photo(self, row) -> Photo:
        """Convert database row to Photo."""
        return Photo(
            id=row["id"],
            path=row["path"],
            filename=row["filename"],
            file_size=row["file_size"],
            width=row["width"],
            height=row["height"],
            capture_date=row["capture_date"],
            added_at=row["added_at"],
            rating=row["rating"],
            is_favorite=bool(row["is_favorite"]),
            tags=decode_tags(row["tags"]),
            description=row["description"],
            thumbnail_path=row["thumbnail_path"],
        )
