"""Tests for CLI interface."""

import json

import pytest
from click.testing import CliRunner
from PIL import ExifTags, Image

from photo_catalog.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, tmp_path):
    """Run the CLI against a catalog and cache inside tmp_path."""
    base_args = [
        "--db-path", str(tmp_path / "catalog.db"),
        "--cache-dir", str(tmp_path / "thumbnails"),
        "--config", str(tmp_path / "no-config.json"),
    ]

    def _invoke(*args):
        return runner.invoke(cli, base_args + list(args), obj={})
    return _invoke


@pytest.fixture
def ingested(invoke, make_image, tmp_path):
    """A catalog holding exactly one photo (id 1)."""
    make_image("beach.jpg", directory=tmp_path / "photos")
    result = invoke("ingest", str(tmp_path / "photos"))
    assert result.exit_code == 0, result.output
    return tmp_path / "photos" / "beach.jpg"


def test_cli_help(runner):
    """Test CLI help command."""
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "Usage:" in result.output
    for command in ("scan", "ingest", "photos", "collections", "thumbnail", "resize", "cache", "export"):
        assert command in result.output


def test_cli_version(runner):
    """Test CLI version command."""
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "photo-catalog" in result.output
    assert "version" in result.output.lower()


def test_info(invoke, tmp_path):
    result = invoke("info")
    assert result.exit_code == 0
    assert str(tmp_path / "catalog.db") in result.output


class TestScanCommand:
    """Test the scan command."""

    def test_scan(self, invoke, make_image, tmp_path):
        make_image("a.jpg", directory=tmp_path / "photos")
        make_image("b.png", directory=tmp_path / "photos")
        result = invoke("scan", str(tmp_path / "photos"))
        assert result.exit_code == 0
        assert "Found 2 images" in result.output

    def test_scan_json(self, invoke, make_image, tmp_path):
        make_image("a.jpg", directory=tmp_path / "photos")
        result = invoke("scan", str(tmp_path / "photos"), "--output-format", "json")
        assert result.exit_code == 0
        images = json.loads(result.output)
        assert [image["filename"] for image in images] == ["a.jpg"]

    def test_scan_missing_directory(self, invoke, tmp_path):
        result = invoke("scan", str(tmp_path / "missing"))
        assert result.exit_code == 1
        assert "Folder does not exist" in result.output


class TestPhotoCommands:
    """Test photo browsing and editing."""

    def test_ingest_and_list(self, invoke, ingested):
        result = invoke("photos", "list")
        assert result.exit_code == 0
        assert "[1] beach.jpg (400x100)" in result.output

    def test_second_ingest_reports_skips(self, invoke, ingested):
        result = invoke("ingest", str(ingested.parent))
        assert result.exit_code == 0
        assert "Added: 0" in result.output
        assert "Already catalogued: 1" in result.output

    def test_update_and_show(self, invoke, ingested):
        result = invoke("photos", "update", "1", "--rating", "5", "--favorite", "--tag", "sea", "--tag", "sand")
        assert result.exit_code == 0, result.output
        assert "Updated photo 1" in result.output

        result = invoke("photos", "show", "1", "--output-format", "json")
        assert result.exit_code == 0
        photo = json.loads(result.output)
        assert photo["rating"] == 5
        assert photo["is_favorite"] is True
        assert photo["tags"] == '["sea", "sand"]'

    def test_search(self, invoke, ingested):
        invoke("photos", "update", "1", "--tag", "sea")
        result = invoke("photos", "search", "--tag", "sea")
        assert "Found 1 results" in result.output
        result = invoke("photos", "search", "--min-rating", "3")
        assert "No results found." in result.output

    def test_show_missing_photo(self, invoke, ingested):
        result = invoke("photos", "show", "99")
        assert result.exit_code == 1
        assert "Photo not found: 99" in result.output

    def test_delete(self, invoke, ingested):
        result = invoke("photos", "delete", "1")
        assert result.exit_code == 0
        assert "No photos in catalog." in invoke("photos", "list").output


class TestCollectionCommands:
    """Test collection management."""

    def test_collection_flow(self, invoke, ingested):
        result = invoke("collections", "create", "Holidays")
        assert result.exit_code == 0
        assert "Created collection 1: Holidays" in result.output

        assert invoke("collections", "add", "1", "1").exit_code == 0
        assert "beach.jpg" in invoke("collections", "show", "1").output

        assert invoke("collections", "remove", "1", "1").exit_code == 0
        assert "Collection is empty." in invoke("collections", "show", "1").output

        assert invoke("collections", "delete", "1").exit_code == 0
        assert "No collections." in invoke("collections", "list").output

    def test_duplicate_collection(self, invoke):
        invoke("collections", "create", "Holidays")
        result = invoke("collections", "create", "Holidays")
        assert result.exit_code == 1
        assert "Collection already exists: Holidays" in result.output

    def test_add_missing_photo(self, invoke):
        invoke("collections", "create", "Holidays")
        result = invoke("collections", "add", "1", "42")
        assert result.exit_code == 1
        assert "Photo not found: 42" in result.output


class TestImageCommands:
    """Test thumbnail, resize, cache and exif commands."""

    def test_thumbnail_and_cache(self, invoke, make_image):
        source = make_image("wide.jpg", size=(400, 100))
        result = invoke("thumbnail", str(source))
        assert result.exit_code == 0
        assert "(200x50)" in result.output

        result = invoke("cache", "size")
        assert result.exit_code == 0
        assert not result.output.startswith("0 bytes")

        result = invoke("cache", "clear")
        assert "Cleared 1 cached thumbnails" in result.output
        assert invoke("cache", "size").output.startswith("0 bytes")

    def test_resize(self, invoke, make_image, tmp_path):
        source = make_image("wide.jpg", size=(400, 100))
        result = invoke("resize", str(source), str(tmp_path / "small.png"), "--width", "200")
        assert result.exit_code == 0
        assert "(200x50)" in result.output

    def test_resize_unsupported_format(self, invoke, make_image, tmp_path):
        source = make_image("wide.jpg")
        result = invoke("resize", str(source), str(tmp_path / "small.bmp"), "--width", "10")
        assert result.exit_code == 1
        assert "Unsupported image format: bmp" in result.output

    def test_exif(self, invoke, make_image):
        exif = Image.Exif()
        exif[ExifTags.Base.Model] = "X100V"
        result = invoke("exif", str(make_image("tagged.jpg", exif=exif)))
        assert result.exit_code == 0
        assert "camera_model: X100V" in result.output

    def test_exif_without_metadata(self, invoke, make_image):
        result = invoke("exif", str(make_image("plain.png")))
        assert "No EXIF metadata found." in result.output


class TestCatalogCommands:
    """Test export and stats."""

    def test_export_to_file(self, invoke, ingested, tmp_path):
        target = tmp_path / "export.json"
        result = invoke("export", "-o", str(target))
        assert result.exit_code == 0
        document = json.loads(target.read_text(encoding="utf-8"))
        assert document["schema_version"] == 1
        assert [photo["filename"] for photo in document["photos"]] == ["beach.jpg"]

    def test_export_to_stdout(self, invoke, ingested):
        document = json.loads(invoke("export").output)
        assert document["collections"] == []

    def test_stats(self, invoke, ingested):
        result = invoke("--verbose", "stats")
        assert result.exit_code == 0
        assert "Total photos: 1" in result.output
