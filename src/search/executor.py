"""
Search execution.

Runs the result query, the total count and one count query per facet for a
single request. The queries are independent reads, so each runs on its own
DuckDB cursor in a thread pool and the request takes about as long as its
slowest query. A request-scoped deadline and an optional cancel event interrupt
every in-flight cursor. Transient storage failures are retried with
exponential backoff; any other failure fails the whole request.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable, Dict, List, Optional, TypeVar

import duckdb
import pandas as pd

from backend.connection_manager import get_db_connection, safe_execute_query
from config.facet_config import FacetConfig
from config.settings import Settings
from core.errors import ErrorCategory, QueryExecutionError, is_transient
from search.facet_counter import FacetCounter
from search.facet_query import FacetQueryBuilder
from search.types import BuiltQuery, RequestParameters, ResultRow, SearchResult

T = TypeVar("T")

ROWS_KEY = "rows"
TOTAL_KEY = "total"
FACET_KEY_PREFIX = "facet:"

# How often the waiting thread checks the cancel event.
POLL_INTERVAL_SECONDS = 0.1


def _to_text(value) -> str:
    if value is None:
        return ""
    if not isinstance(value, (list, tuple, dict)) and pd.isna(value):
        return ""
    return str(value)


def rows_from_frame(frame: pd.DataFrame) -> List[ResultRow]:
    """Convert a result DataFrame into rows of display strings."""
    return [
        {str(column): _to_text(value) for column, value in record.items()}
        for record in frame.to_dict(orient="records")
    ]


class SearchExecutor:
    """Runs every query of a search request against the DuckDB database."""

    def __init__(
        self,
        config: FacetConfig,
        db_path: Optional[Path] = None,
        logger_obj: Optional[logging.Logger] = None,
        timeout_seconds: float = Settings.QUERY_TIMEOUT_SECONDS,
        max_workers: int = Settings.COUNT_QUERY_WORKERS,
        max_retries: int = Settings.MAX_RETRIES,
        retry_base_delay: float = Settings.RETRY_BASE_DELAY,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.config = config
        self.db_path = db_path or config.get_db_path()
        self.logger = logger_obj or logging.getLogger(__name__)
        self.timeout_seconds = timeout_seconds
        self.max_workers = max_workers
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.query_builder = FacetQueryBuilder(config, self.logger)
        self.counter = FacetCounter(config, self.logger)

    def build_queries(self, params: RequestParameters) -> Dict[str, BuiltQuery]:
        """All queries for one request, keyed by their role."""
        queries = {
            ROWS_KEY: self.query_builder.build(params),
            TOTAL_KEY: self.query_builder.build_total(params),
        }
        for facet in self.config.facet_names:
            queries[FACET_KEY_PREFIX + facet] = self.counter.build(params, facet)
        return queries

    def search(
        self,
        params: RequestParameters,
        cancel_event: Optional[threading.Event] = None,
    ) -> SearchResult:
        """
        Execute a search request.

        Args:
            params: Validated request parameters
            cancel_event: Set it (e.g. on client disconnect) to abort in-flight queries

        Returns:
            SearchResult with rows, total and facet counts

        Raises:
            QueryExecutionError: On storage failure, timeout or cancellation
        """
        queries = self.build_queries(params)
        deadline = time.monotonic() + self.timeout_seconds
        start = time.perf_counter()

        frames = self._with_retry(
            lambda: self._run_once(queries, deadline, cancel_event), deadline
        )

        total_frame = frames[TOTAL_KEY]
        total_rows = int(total_frame.iloc[0, 0]) if not total_frame.empty else 0
        facet_counts = {
            facet: FacetCounter.entries_from_frame(facet, frames[FACET_KEY_PREFIX + facet])
            for facet in self.config.facet_names
        }
        rows = rows_from_frame(frames[ROWS_KEY])

        self.logger.info(
            "Search ran %d queries in %.3f sec: %d rows on page %d of %d total",
            len(queries), time.perf_counter() - start, len(rows), params.page, total_rows,
        )
        return SearchResult(
            rows=rows,
            total_rows=total_rows,
            facet_counts=facet_counts,
            params=params,
            page_size=self.config.page_size,
        )

    # ------------------------------------------------------------------ helpers
    def _with_retry(self, func: Callable[[], T], deadline: float) -> T:
        """Call func, retrying transient storage errors with exponential backoff."""
        for attempt in range(1, self.max_retries + 1):
            try:
                return func()
            except QueryExecutionError as e:
                if not is_transient(e) or attempt == self.max_retries:
                    raise
                delay = self.retry_base_delay * (2 ** (attempt - 1))
                if time.monotonic() + delay >= deadline:
                    raise
                self.logger.warning(
                    f"Attempt {attempt} failed with transient error: {e}. "
                    f"Retrying in {delay:.2f} seconds... (Attempt {attempt}/{self.max_retries})"
                )
                time.sleep(delay)
        raise AssertionError("unreachable")

    def _run_once(
        self,
        queries: Dict[str, BuiltQuery],
        deadline: float,
        cancel_event: Optional[threading.Event],
    ) -> Dict[str, pd.DataFrame]:
        aborted = threading.Event()
        cursors: List[duckdb.DuckDBPyConnection] = []
        lock = threading.Lock()

        with get_db_connection(self.db_path, read_only=True, logger_obj=self.logger) as conn:

            def run(query: BuiltQuery) -> pd.DataFrame:
                if aborted.is_set():
                    raise QueryExecutionError("Search aborted", ErrorCategory.CANCELLED, query.sql)
                cursor = conn.cursor()
                with lock:
                    cursors.append(cursor)
                try:
                    return safe_execute_query(cursor, query.sql, self.logger, query.bound_parameters())
                finally:
                    with lock:
                        cursors.remove(cursor)
                    cursor.close()

            workers = max(1, min(self.max_workers, len(queries)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="facet-search") as pool:
                futures: Dict[Future, str] = {
                    pool.submit(run, query): key for key, query in queries.items()
                }
                pending = set(futures)
                results: Dict[str, pd.DataFrame] = {}
                try:
                    while pending:
                        if cancel_event is not None and cancel_event.is_set():
                            raise QueryExecutionError("Search cancelled by caller", ErrorCategory.CANCELLED)
                        remaining = deadline - time.monotonic()
                        if remaining <= 0:
                            raise QueryExecutionError(
                                f"Search exceeded its {self.timeout_seconds}s deadline",
                                ErrorCategory.TIMEOUT,
                            )
                        done, pending = wait(
                            pending,
                            timeout=min(remaining, POLL_INTERVAL_SECONDS),
                            return_when=FIRST_EXCEPTION,
                        )
                        for future in done:
                            results[futures[future]] = future.result()
                except BaseException:
                    aborted.set()
                    self._abort(pending, cursors, lock)
                    raise
        return results

    def _abort(self, pending, cursors, lock) -> None:
        """Cancel queued queries and interrupt the running ones."""
        for future in pending:
            future.cancel()
        with lock:
            running = list(cursors)
        for cursor in running:
            try:
                cursor.interrupt()
            except duckdb.Error as e:
                self.logger.debug(f"Could not interrupt cursor: {e}")
        if running:
            self.logger.warning(f"Interrupted {len(running)} in-flight search queries")
