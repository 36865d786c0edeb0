"""Application-wide settings and configuration."""

import os
from pathlib import Path
from typing import Optional


class Settings:
    """Centralized application settings."""

    # Project paths
    PROJECT_ROOT = Path(__file__).parent.parent.parent
    DATA_DIR = PROJECT_ROOT / "data"
    LOGS_DIR = PROJECT_ROOT / "logs"
    ASSETS_DIR = PROJECT_ROOT / "assets"

    # Default database and facet configuration
    DEFAULT_DB_PATH = DATA_DIR / "facets.duckdb"
    DEFAULT_CONFIG_FILE = PROJECT_ROOT / "singletablefacets.toml"
    CONFIG_FILE_ENV_VAR = "SINGLETABLEFACETS_CONFIG"

    # UI settings
    MAX_UNIQUE_VALUES_FOR_FACET = 100
    PAGER_RADIUS = 4
    STYLESHEET_HREF = "assets/singletablefacets.css"
    JAVASCRIPT_SRC = "assets/singletablefacets.js"

    # Performance settings
    QUERY_TIMEOUT_SECONDS = 60
    COUNT_QUERY_WORKERS = 8
    MAX_RETRIES = 3
    RETRY_BASE_DELAY = 0.5

    @classmethod
    def ensure_directories(cls) -> None:
        """Ensure all required directories exist."""
        cls.DATA_DIR.mkdir(parents=True, exist_ok=True)
        cls.LOGS_DIR.mkdir(parents=True, exist_ok=True)

    @classmethod
    def get_db_path(cls, custom_path: Optional[Path] = None) -> Path:
        """Get the database path, with optional override."""
        return custom_path or cls.DEFAULT_DB_PATH

    @classmethod
    def get_config_path(cls, custom_path: Optional[Path] = None) -> Path:
        """Get the facet configuration file, honoring the environment override."""
        if custom_path:
            return custom_path
        env_value = os.environ.get(cls.CONFIG_FILE_ENV_VAR)
        return Path(env_value) if env_value else cls.DEFAULT_CONFIG_FILE
