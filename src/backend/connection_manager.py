"""
Database connection management utility with proper resource cleanup and monitoring.
Provides context managers and connection tracking to prevent connection leaks.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
import weakref
from pathlib import Path
from typing import Any, Dict, Generator, Optional

import duckdb
import pandas as pd

from core.errors import ErrorCategory, QueryExecutionError


class ConnectionMonitor:
    """Monitors database connection lifecycle to detect leaks."""

    def __init__(self):
        self._active_connections: dict[int, dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def register_connection(
        self, conn: duckdb.DuckDBPyConnection, db_path: str
    ) -> None:
        """Register a new connection for monitoring."""
        with self._lock:
            conn_id = id(conn)
            self._active_connections[conn_id] = {
                "db_path": db_path,
                "created_at": time.time(),
                "thread_id": threading.get_ident(),
                "weakref": weakref.ref(conn, self._connection_finalized),
            }
            self._logger.debug(f"Registered connection {conn_id} to {db_path}")

    def unregister_connection(self, conn: duckdb.DuckDBPyConnection) -> None:
        """Unregister a connection when properly closed."""
        with self._lock:
            conn_id = id(conn)
            if conn_id in self._active_connections:
                db_path = self._active_connections[conn_id]["db_path"]
                del self._active_connections[conn_id]
                self._logger.debug(f"Unregistered connection {conn_id} to {db_path}")

    def _connection_finalized(self, weakref_obj) -> None:
        """Called when a connection is garbage collected without proper cleanup."""
        with self._lock:
            for conn_id, info in list(self._active_connections.items()):
                if info["weakref"] is weakref_obj:
                    self._logger.warning(
                        f"Connection {conn_id} to {info['db_path']} was garbage collected without explicit close()"
                    )
                    del self._active_connections[conn_id]
                    break

    def get_active_connections(self) -> dict[int, dict[str, Any]]:
        """Get information about currently active connections."""
        with self._lock:
            return dict(self._active_connections)


# Global connection monitor instance
_connection_monitor = ConnectionMonitor()


@contextlib.contextmanager
def get_db_connection(
    db_path: Path, read_only: bool = True, logger_obj: logging.Logger | None = None
) -> Generator[duckdb.DuckDBPyConnection, None, None]:
    """
    Context manager for DuckDB connections with proper resource cleanup.

    Args:
        db_path: Path to the database file
        read_only: Whether to open in read-only mode
        logger_obj: Optional logger for debug messages

    Yields:
        DuckDB connection that will be automatically closed

    Raises:
        QueryExecutionError: If a read-only database is missing or cannot be opened

    Example:
        with get_db_connection(db_path) as conn:
            result = conn.execute("SELECT * FROM table").df()
    """
    if logger_obj is None:
        logger_obj = logging.getLogger(__name__)

    if not db_path.exists() and read_only:
        logger_obj.error(f"Database {db_path} does not exist.")
        raise QueryExecutionError(
            f"Database {db_path} does not exist. Load data with the 'load' command first.",
            ErrorCategory.CONNECTION,
        )
    elif not db_path.exists():
        logger_obj.info(f"Database {db_path} does not exist. It will be created.")
        db_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        conn = duckdb.connect(database=db_path.as_posix(), read_only=read_only)
    except duckdb.Error as e:
        logger_obj.error(
            f"Error connecting to database at {db_path}: {e}", exc_info=True
        )
        raise QueryExecutionError.from_exception(e) from e

    _connection_monitor.register_connection(conn, str(db_path))
    logger_obj.debug(
        f"Successfully connected to DuckDB at {db_path} (read_only={read_only})"
    )
    try:
        yield conn
    finally:
        _connection_monitor.unregister_connection(conn)
        conn.close()
        logger_obj.debug(f"Connection to {db_path} closed successfully")


def safe_execute_query(
    conn: duckdb.DuckDBPyConnection,
    query: str,
    logger_obj: logging.Logger | None = None,
    params: Optional[Dict[str, Any]] = None,
) -> pd.DataFrame:
    """
    Execute a query, logging it and wrapping storage failures.

    Args:
        conn: DuckDB connection or cursor
        query: SQL query to execute
        logger_obj: Optional logger for debug messages
        params: Optional named parameters for the query

    Returns:
        Query result dataframe

    Raises:
        QueryExecutionError: If DuckDB rejects or fails the query
    """
    if logger_obj is None:
        logger_obj = logging.getLogger(__name__)

    try:
        if params:
            logger_obj.debug(f"Executing query: {query[:200]}... with params: {params}")
            return conn.execute(query, params).df()
        else:
            logger_obj.debug(f"Executing query: {query[:200]}...")
            return conn.execute(query).df()
    except duckdb.Error as e:
        query_info = f"Query: {query}"
        if params:
            query_info += f"\nParams: {params}"
        logger_obj.error(f"Query execution error: {e}\n{query_info}")
        raise QueryExecutionError.from_exception(e, query) from e


def get_connection_stats() -> dict[str, Any]:
    """Get current connection monitoring statistics."""
    active_conns = _connection_monitor.get_active_connections()
    return {"active_count": len(active_conns), "connections": active_conns}
