"""Shared fixtures for the photo-catalog test suite."""

import pytest
from PIL import Image

from photo_catalog.library.catalog_store import Catalog
from photo_catalog.library.config import CatalogConfig, ENV_CACHE_DIR, ENV_DB_PATH
from photo_catalog.library.models import Photo
from photo_catalog.library.thumbnails import ThumbnailCache


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's own catalog settings out of the tests."""
    monkeypatch.delenv(ENV_DB_PATH, raising=False)
    monkeypatch.delenv(ENV_CACHE_DIR, raising=False)


@pytest.fixture
def make_image(tmp_path):
    """Factory writing a solid-colour image; the format follows the extension."""
    def _make(name="photo.jpg", size=(400, 100), color=(200, 80, 40), exif=None, directory=None):
        target = (directory or tmp_path) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        img = Image.new("RGB", size, color)
        if exif is not None:
            img.save(target, exif=exif)
        else:
            img.save(target)
        return target
    return _make


@pytest.fixture
def catalog(tmp_path):
    store = Catalog(str(tmp_path / "catalog.db"))
    yield store
    store.close()


@pytest.fixture
def thumbnail_cache(tmp_path):
    return ThumbnailCache(str(tmp_path / "thumbnails"))


@pytest.fixture
def config(tmp_path):
    return CatalogConfig(
        db_path=str(tmp_path / "catalog.db"),
        cache_dir=str(tmp_path / "thumbnails"),
    )


def make_photo(name="photo.jpg", **overrides) -> Photo:
    """Build an uncatalogued Photo record with sensible defaults."""
    values = {
        "path": f"/photos/{name}",
        "filename": name,
        "file_size": 1024,
        "width": 800,
        "height": 600,
    }
    values.update(overrides)
    return Photo(**values)


@pytest.fixture
def photo_factory():
    return make_photo
