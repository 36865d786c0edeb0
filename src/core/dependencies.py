"""Dependency injection container for the application."""

from pathlib import Path
from typing import Optional
import logging

from config.facet_config import FacetConfig, load_facet_config
from config.settings import Settings
from search.executor import SearchExecutor
from search.parameters import ParameterStore
from utils.logger_setup import setup_logging


class DependencyContainer:
    """Container for managing application dependencies."""

    def __init__(
        self,
        config_path: Optional[Path] = None,
        db_path: Optional[Path] = None,
        logger_name: str = "singletablefacets",
        file_logging: bool = True,
    ):
        self.config_path = config_path
        self._db_path_override = db_path
        self.logger = setup_logging(logger_name, file_output=file_logging)
        Settings.ensure_directories()

        # Initialize services
        self._config: Optional[FacetConfig] = None
        self._executor: Optional[SearchExecutor] = None

    @property
    def config(self) -> FacetConfig:
        """Load the facet configuration on first use."""
        if self._config is None:
            self._config = load_facet_config(self.config_path)
        return self._config

    @property
    def db_path(self) -> Path:
        return self._db_path_override or self.config.get_db_path()

    @property
    def parameter_store(self) -> ParameterStore:
        return ParameterStore(self.config)

    @property
    def executor(self) -> SearchExecutor:
        """Get or create the search executor."""
        if self._executor is None:
            self._executor = SearchExecutor(self.config, self.db_path, self.logger)
        return self._executor

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        """Get a logger instance."""
        if name:
            return logging.getLogger(name)
        return self.logger
