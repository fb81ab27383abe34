"""Tests for the thumbnail cache."""

import hashlib
import os

import pytest
from PIL import Image

from photo_catalog.library import thumbnails as thumbnails_module
from photo_catalog.library.errors import ImageDecodeError, ImageReadError
from photo_catalog.library.thumbnails import ThumbnailCache, cache_key


class TestCacheKey:
    """Test cache file naming."""

    def test_sha256_of_absolute_path(self, tmp_path):
        source = tmp_path / "a.jpg"
        expected = hashlib.sha256(str(source).encode("utf-8")).hexdigest()
        assert cache_key(str(source)) == expected

    def test_relative_and_absolute_paths_share_a_key(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert cache_key("a.jpg") == cache_key(str(tmp_path / "a.jpg"))

    def test_path_for(self, thumbnail_cache, tmp_path):
        source = str(tmp_path / "a.jpg")
        path = thumbnail_cache.path_for(source)
        assert path.parent == thumbnail_cache.cache_dir
        assert path.name == f"{cache_key(source)}.jpg"
        assert len(path.stem) == 64


class TestGetThumbnail:
    """Test thumbnail generation and reuse."""

    def test_generates_jpeg_within_max_edge(self, thumbnail_cache, make_image):
        source = make_image("wide.png", size=(400, 100))
        result = thumbnail_cache.get_thumbnail(str(source))

        assert (result.width, result.height) == (200, 50)
        with Image.open(result.thumbnail_path) as img:
            assert img.format == "JPEG"
            assert img.size == (200, 50)

    def test_tall_image(self, thumbnail_cache, make_image):
        result = thumbnail_cache.get_thumbnail(str(make_image("tall.jpg", size=(300, 600))))
        assert (result.width, result.height) == (100, 200)

    def test_small_image_is_not_enlarged(self, thumbnail_cache, make_image):
        result = thumbnail_cache.get_thumbnail(str(make_image("small.jpg", size=(50, 40))))
        assert (result.width, result.height) == (50, 40)

    def test_custom_max_edge(self, tmp_path, make_image):
        cache = ThumbnailCache(str(tmp_path / "thumbs"), max_edge=64)
        result = cache.get_thumbnail(str(make_image("wide.jpg", size=(400, 100))))
        assert (result.width, result.height) == (64, 16)

    def test_invalid_max_edge(self, tmp_path):
        with pytest.raises(ValueError):
            ThumbnailCache(str(tmp_path), max_edge=0)

    def test_same_source_twice_reuses_cache_file(self, thumbnail_cache, make_image, monkeypatch):
        source = str(make_image("a.jpg"))
        first = thumbnail_cache.get_thumbnail(source)
        mtime = os.stat(first.thumbnail_path).st_mtime_ns

        def fail_decode(path):
            raise AssertionError("source decoded again")

        monkeypatch.setattr(thumbnails_module, "open_image", fail_decode)
        second = thumbnail_cache.get_thumbnail(source)

        assert second.thumbnail_path == first.thumbnail_path
        assert (second.width, second.height) == (first.width, first.height)
        assert os.stat(second.thumbnail_path).st_mtime_ns == mtime

    def test_no_temporary_files_left_behind(self, thumbnail_cache, make_image):
        thumbnail_cache.get_thumbnail(str(make_image("a.jpg")))
        thumbnail_cache.get_thumbnail(str(make_image("b.png")))
        names = os.listdir(thumbnail_cache.cache_dir)
        assert len(names) == 2
        assert all(name.endswith(".jpg") and not name.startswith(".") for name in names)

    def test_unreadable_cached_file_is_regenerated(self, thumbnail_cache, make_image):
        source = str(make_image("a.jpg"))
        thumbnail_cache.path_for(source).parent.mkdir(parents=True)
        thumbnail_cache.path_for(source).write_bytes(b"garbage")

        result = thumbnail_cache.get_thumbnail(source)
        assert (result.width, result.height) == (200, 50)

    def test_stale_thumbnail_is_trusted_by_default(self, thumbnail_cache, make_image):
        source = str(make_image("a.jpg"))
        result = thumbnail_cache.get_thumbnail(source)
        os.utime(result.thumbnail_path, (0, 0))

        thumbnail_cache.get_thumbnail(source)
        assert os.stat(result.thumbnail_path).st_mtime == 0

    def test_stale_thumbnail_is_refreshed_when_checking_mtime(self, tmp_path, make_image):
        cache = ThumbnailCache(str(tmp_path / "thumbs"), check_source_mtime=True)
        source = str(make_image("a.jpg"))
        result = cache.get_thumbnail(source)
        os.utime(result.thumbnail_path, (0, 0))

        cache.get_thumbnail(source)
        assert os.stat(result.thumbnail_path).st_mtime > 0

    def test_missing_source(self, thumbnail_cache, tmp_path):
        with pytest.raises(ImageReadError):
            thumbnail_cache.get_thumbnail(str(tmp_path / "missing.jpg"))

    def test_undecodable_source(self, thumbnail_cache, tmp_path):
        source = tmp_path / "broken.jpg"
        source.write_bytes(b"not an image at all")
        with pytest.raises(ImageDecodeError):
            thumbnail_cache.get_thumbnail(str(source))
        assert not thumbnail_cache.path_for(str(source)).exists()

    def test_oversized_source(self, thumbnail_cache, make_image, monkeypatch):
        source = str(make_image("big.png", size=(400, 400)))
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        with pytest.raises(ImageDecodeError):
            thumbnail_cache.get_thumbnail(source)


class TestEvictAndMeasure:
    """Test cache maintenance."""

    def test_missing_cache_dir(self, thumbnail_cache):
        assert thumbnail_cache.measure() == 0
        assert thumbnail_cache.evict() == 0

    def test_measure_sums_file_sizes(self, thumbnail_cache, make_image):
        paths = [
            thumbnail_cache.get_thumbnail(str(make_image(name))).thumbnail_path
            for name in ("a.jpg", "b.jpg")
        ]
        assert thumbnail_cache.measure() == sum(os.path.getsize(path) for path in paths)

    def test_evict_removes_files_only(self, thumbnail_cache, make_image):
        thumbnail_cache.get_thumbnail(str(make_image("a.jpg")))
        thumbnail_cache.get_thumbnail(str(make_image("b.jpg")))
        nested = thumbnail_cache.cache_dir / "nested"
        nested.mkdir()
        (nested / "keep.jpg").write_bytes(b"x" * 10)

        assert thumbnail_cache.evict() == 2
        assert thumbnail_cache.measure() == 0
        assert (nested / "keep.jpg").exists()

    def test_thumbnail_regenerated_after_evict(self, thumbnail_cache, make_image):
        source = str(make_image("a.jpg"))
        first = thumbnail_cache.get_thumbnail(source)
        thumbnail_cache.evict()
        second = thumbnail_cache.get_thumbnail(source)
        assert second.thumbnail_path == first.thumbnail_path
        assert os.path.exists(second.thumbnail_path)
