"""Configuration for the photo catalog."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from photo_catalog.library.thumbnails import THUMBNAIL_SIZE

logger = logging.getLogger(__name__)

# Default configuration for end-users
APP_DIR = Path.home() / ".photo-catalog"
DEFAULT_DB_PATH = str(APP_DIR / "photos.db")
DEFAULT_CACHE_DIR = str(APP_DIR / "thumbnails")
DEFAULT_THUMBNAIL_SIZE = THUMBNAIL_SIZE
DEFAULT_THUMBNAIL_CHECK_MTIME = False

# Configuration file path
CONFIG_FILE_PATH = APP_DIR / "config.json"

# Environment overrides
ENV_DB_PATH = "PHOTO_CATALOG_DB"
ENV_CACHE_DIR = "PHOTO_CATALOG_CACHE_DIR"


class CatalogConfig:
    """Where the catalog and thumbnail cache live, and how thumbnails are made.

    Explicit arguments win over environment variables, which win over the
    built-in defaults.
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        cache_dir: Optional[str] = None,
        thumbnail_size: Optional[int] = None,
        thumbnail_check_mtime: Optional[bool] = None,
    ):
        db_path = db_path or os.environ.get(ENV_DB_PATH)
        cache_dir = cache_dir or os.environ.get(ENV_CACHE_DIR)
        # Expand ~ in paths if present
        self.db_path = os.path.expanduser(db_path) if db_path else DEFAULT_DB_PATH
        self.cache_dir = os.path.expanduser(cache_dir) if cache_dir else DEFAULT_CACHE_DIR
        self.thumbnail_size = thumbnail_size or DEFAULT_THUMBNAIL_SIZE
        self.thumbnail_check_mtime = (
            DEFAULT_THUMBNAIL_CHECK_MTIME if thumbnail_check_mtime is None else thumbnail_check_mtime
        )

    @classmethod
    def load_from_file(cls, config_path: Optional[Path] = None, **overrides) -> "CatalogConfig":
        """Load configuration from JSON file.

        Keyword overrides that are not ``None`` take precedence over the file.
        """
        if config_path is None:
            config_path = CONFIG_FILE_PATH
        config_path = Path(config_path)

        config_data = {}
        if config_path.exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    config_data = json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                # If config file is invalid, log warning and use defaults
                logger.warning(f"Failed to load config file {config_path}: {e}")
                config_data = {}

        for key, value in overrides.items():
            if value is not None:
                config_data[key] = value

        env_db = os.environ.get(ENV_DB_PATH)
        env_cache = os.environ.get(ENV_CACHE_DIR)
        return cls(
            db_path=overrides.get("db_path") or env_db or config_data.get("db_path"),
            cache_dir=overrides.get("cache_dir") or env_cache or config_data.get("cache_dir"),
            thumbnail_size=config_data.get("thumbnail_size"),
            thumbnail_check_mtime=config_data.get("thumbnail_check_mtime"),
        )

    def save_to_file(self, config_path: Optional[Path] = None) -> None:
        """Save configuration to JSON file."""
        if config_path is None:
            config_path = CONFIG_FILE_PATH
        config_path = Path(config_path)

        # Ensure config directory exists
        config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        except IOError as e:
            logger.error(f"Failed to save config file {config_path}: {e}")

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {
            "db_path": self.db_path,
            "cache_dir": self.cache_dir,
            "thumbnail_size": self.thumbnail_size,
            "thumbnail_check_mtime": self.thumbnail_check_mtime,
        }


def get_default_config() -> CatalogConfig:
    """Create configuration from the user's config file and environment."""
    return CatalogConfig.load_from_file()
