"""Tests for the data models."""

from photo_catalog.library.models import (
    CatalogSnapshot,
    Collection,
    ExifData,
    Membership,
    MetadataPatch,
    Photo,
    decode_tags,
    encode_tags,
)


class TestTags:
    """Test tag serialization at the storage boundary."""

    def test_encode_keeps_order(self):
        assert encode_tags(["b", "a", "ü"]) == '["b", "a", "ü"]'

    def test_decode(self):
        assert decode_tags('["b", "a"]') == ["b", "a"]

    def test_decode_empty_and_malformed(self):
        assert decode_tags(None) == []
        assert decode_tags("") == []
        assert decode_tags("beach,sunset") == []
        assert decode_tags('{"a": 1}') == []


class TestPhoto:
    """Test Photo model."""

    def test_to_dict_uses_serialized_tags(self):
        photo = Photo(path="/p/a.jpg", filename="a.jpg", file_size=1, width=2, height=3, tags=["x"])
        data = photo.to_dict()
        assert data["tags"] == '["x"]'
        assert data["rating"] == 0
        assert data["is_favorite"] is False

    def test_from_dict_accepts_both_tag_forms(self):
        base = {"path": "/p/a.jpg", "filename": "a.jpg", "file_size": 1, "width": 2, "height": 3}
        assert Photo.from_dict({**base, "tags": '["x", "y"]'}).tags == ["x", "y"]
        assert Photo.from_dict({**base, "tags": ["x"]}).tags == ["x"]
        assert Photo.from_dict(base).tags == []

    def test_round_trip(self):
        photo = Photo(
            path="/p/a.jpg", filename="a.jpg", file_size=10, width=20, height=30,
            capture_date="2020-01-01 00:00:00", rating=4, is_favorite=True,
            tags=["a"], description="d", thumbnail_path="/t.jpg", id=5,
            added_at="2024-01-01T00:00:00.000000+00:00",
        )
        assert Photo.from_dict(photo.to_dict()) == photo


class TestMetadataPatch:
    """Test partial updates."""

    def test_empty(self):
        assert MetadataPatch().is_empty()
        assert MetadataPatch().present_fields() == {}

    def test_present_fields(self):
        patch = MetadataPatch(rating=0, is_favorite=False, description="")
        assert not patch.is_empty()
        assert patch.present_fields() == {"rating": 0, "is_favorite": False, "description": ""}


class TestExifData:
    """Test ExifData model."""

    def test_empty(self):
        assert ExifData().is_empty()
        assert not ExifData(iso=100).is_empty()

    def test_from_dict_ignores_unknown_keys(self):
        data = ExifData.from_dict({"camera_make": "Canon", "unknown": 1})
        assert data.camera_make == "Canon"


class TestCatalogSnapshot:
    """Test snapshot serialization."""

    def test_to_json_and_back(self):
        snapshot = CatalogSnapshot(
            schema_version=1,
            photos=[Photo(path="/p/a.jpg", filename="a.jpg", file_size=1, width=2, height=3, id=1)],
            collections=[Collection(id=1, name="Trips", created_at="2024-01-01T00:00:00+00:00")],
            memberships=[Membership(photo_id=1, collection_id=1)],
        )
        data = snapshot.to_dict()
        assert set(data) == {"schema_version", "photos", "collections", "memberships"}
        assert CatalogSnapshot.from_dict(data) == snapshot
