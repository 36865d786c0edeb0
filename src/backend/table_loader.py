"""Loading source files into the searchable DuckDB table."""

from pathlib import Path
from typing import List, Optional, Set
import logging

import duckdb
import pandas as pd

from backend.connection_manager import get_db_connection, safe_execute_query
from config.facet_config import FacetConfig
from core.errors import QueryExecutionError
from utils.query_builder import quote_identifier

SUPPORTED_SUFFIXES = (".csv", ".parquet")

_STAGING_VIEW = "incoming_rows"


class TableLoader:
    """Replaces the search table with the contents of a CSV/Parquet file or DataFrame."""

    def __init__(self, db_path: Path, logger_obj: Optional[logging.Logger] = None):
        self.db_path = db_path
        self.logger = logger_obj or logging.getLogger(__name__)

    def load_file(self, source: Path, table_name: str) -> int:
        """
        Load a CSV or Parquet file into table_name, replacing its contents.

        Returns:
            Number of rows in the new table

        Raises:
            ValueError: If the file type is not supported
            QueryExecutionError: If DuckDB cannot read the file or write the table
        """
        suffix = source.suffix.lower()
        if suffix not in SUPPORTED_SUFFIXES:
            raise ValueError(f"Unsupported file type '{suffix}', expected one of {SUPPORTED_SUFFIXES}")
        if not source.exists():
            raise ValueError(f"Source file not found: {source}")

        with get_db_connection(self.db_path, read_only=False, logger_obj=self.logger) as conn:
            try:
                if suffix == ".csv":
                    frame = conn.read_csv(source.as_posix()).df()
                else:
                    frame = conn.read_parquet(source.as_posix()).df()
            except duckdb.Error as e:
                self.logger.error(f"Could not read {source}: {e}")
                raise QueryExecutionError.from_exception(e) from e
            return self._replace_table(conn, frame, table_name)

    def load_frame(self, frame: pd.DataFrame, table_name: str) -> int:
        """Load a DataFrame into table_name, replacing its contents."""
        with get_db_connection(self.db_path, read_only=False, logger_obj=self.logger) as conn:
            return self._replace_table(conn, frame, table_name)

    def _replace_table(self, conn: duckdb.DuckDBPyConnection, frame: pd.DataFrame, table_name: str) -> int:
        table = quote_identifier(table_name)
        conn.register(_STAGING_VIEW, frame)
        try:
            safe_execute_query(
                conn, f"CREATE OR REPLACE TABLE {table} AS SELECT * FROM {_STAGING_VIEW}", self.logger
            )
        finally:
            conn.unregister(_STAGING_VIEW)
        count = int(safe_execute_query(conn, f"SELECT COUNT(*) AS n FROM {table}", self.logger).iloc[0, 0])
        self.logger.info(f"Loaded {count} rows into table {table_name}")
        return count

    def table_columns(self, table_name: str) -> List[str]:
        """Column names of table_name, in table order."""
        with get_db_connection(self.db_path, read_only=True, logger_obj=self.logger) as conn:
            frame = safe_execute_query(conn, f"DESCRIBE {quote_identifier(table_name)}", self.logger)
        return [str(name) for name in frame["column_name"]]


def referenced_columns(config: FacetConfig) -> Set[str]:
    """Every table column the configuration refers to, except the relevance pseudo-column."""
    columns: Set[str] = set(config.facet_names)
    columns.update(config.additional_columns.keys())
    columns.update(config.required_columns)
    columns.update(config.keyword_columns)
    columns.update(config.sort_directions.keys())
    columns.update(config.result_labels.keys())
    columns.update(config.link_columns.keys())
    columns.update(config.link_columns.values())
    columns.discard(config.relevance_column)
    return columns


def missing_columns(config: FacetConfig, loader: TableLoader) -> List[str]:
    """Configured columns that do not exist in the table, sorted."""
    present = set(loader.table_columns(config.table_name))
    return sorted(referenced_columns(config) - present)
