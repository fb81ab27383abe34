"""Tests for configuration loading."""

import json

from photo_catalog.library.config import (
    DEFAULT_CACHE_DIR,
    DEFAULT_DB_PATH,
    ENV_CACHE_DIR,
    ENV_DB_PATH,
    CatalogConfig,
)


class TestCatalogConfig:
    """Test CatalogConfig class."""

    def test_defaults(self, tmp_path):
        config = CatalogConfig.load_from_file(tmp_path / "missing.json")
        assert config.db_path == DEFAULT_DB_PATH
        assert config.cache_dir == DEFAULT_CACHE_DIR
        assert config.thumbnail_size == 200
        assert config.thumbnail_check_mtime is False

    def test_file_values(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({
            "db_path": str(tmp_path / "file.db"),
            "cache_dir": str(tmp_path / "file-cache"),
            "thumbnail_size": 128,
            "thumbnail_check_mtime": True,
        }))
        config = CatalogConfig.load_from_file(config_path)
        assert config.db_path == str(tmp_path / "file.db")
        assert config.cache_dir == str(tmp_path / "file-cache")
        assert config.thumbnail_size == 128
        assert config.thumbnail_check_mtime is True

    def test_environment_beats_file(self, tmp_path, monkeypatch):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"db_path": str(tmp_path / "file.db")}))
        monkeypatch.setenv(ENV_DB_PATH, str(tmp_path / "env.db"))
        monkeypatch.setenv(ENV_CACHE_DIR, str(tmp_path / "env-cache"))

        config = CatalogConfig.load_from_file(config_path)
        assert config.db_path == str(tmp_path / "env.db")
        assert config.cache_dir == str(tmp_path / "env-cache")

    def test_overrides_beat_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv(ENV_DB_PATH, str(tmp_path / "env.db"))
        config = CatalogConfig.load_from_file(
            tmp_path / "missing.json", db_path=str(tmp_path / "cli.db"), cache_dir=None,
        )
        assert config.db_path == str(tmp_path / "cli.db")
        assert config.cache_dir == DEFAULT_CACHE_DIR

    def test_invalid_file_falls_back_to_defaults(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text("{not json")
        config = CatalogConfig.load_from_file(str(config_path))
        assert config.db_path == DEFAULT_DB_PATH

    def test_user_directory_is_expanded(self):
        config = CatalogConfig(db_path="~/photos.db")
        assert not config.db_path.startswith("~")

    def test_save_and_load(self, tmp_path):
        config_path = tmp_path / "nested" / "config.json"
        original = CatalogConfig(
            db_path=str(tmp_path / "a.db"),
            cache_dir=str(tmp_path / "cache"),
            thumbnail_size=300,
            thumbnail_check_mtime=True,
        )
        original.save_to_file(config_path)

        loaded = CatalogConfig.load_from_file(config_path)
        assert loaded.to_dict() == original.to_dict()
