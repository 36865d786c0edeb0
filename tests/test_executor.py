"""Tests for concurrent search execution."""

from __future__ import annotations

import threading
from dataclasses import replace

import pandas as pd
import pytest

from core.errors import ErrorCategory, QueryExecutionError
from search.executor import SearchExecutor, rows_from_frame
from search.parameters import ParameterStore
from search.types import RequestParameters


@pytest.fixture
def executor(facet_config) -> SearchExecutor:
    return SearchExecutor(facet_config, retry_base_delay=0)


class TestSearch:
    """Full searches against the sample database."""

    def test_search_returns_rows_total_and_counts(self, executor, empty_params):
        result = executor.search(empty_params)
        assert result.total_rows == 5
        assert len(result.rows) == 2
        assert result.page_count == 3
        assert set(result.facet_counts) == {"state", "year", "topic"}
        assert result.facet_counts["state"][0].value == "CA"

    def test_rows_are_strings_with_empty_nulls(self, executor):
        params = RequestParameters(facet_selections={"state": ("CA",)}, sort_column="title")
        rows = executor.search(params).rows
        assert [row["title"] for row in rows] == ["Air quality", "California fraud case"]
        assert rows[0]["url"] == ""
        assert rows[0]["year"] == "2022"
        assert all(isinstance(value, str) for row in rows for value in row.values())

    def test_keyword_search_includes_relevance(self, executor):
        result = executor.search(RequestParameters(keywords="fraud"))
        assert result.total_rows == 2
        assert {row["relevance"] for row in result.rows} == {"1"}

    def test_no_results(self, executor):
        result = executor.search(RequestParameters(keywords="nothing-like-this"))
        assert result.is_empty
        assert result.total_rows == 0
        assert result.page_count == 1

    def test_only_excluded_keywords_match_nothing(self, executor):
        result = executor.search(RequestParameters(keywords="-fraud"))
        assert result.total_rows == 0
        assert result.is_empty
        assert all(not entries for entries in result.facet_counts.values())

    def test_out_of_range_page_falls_back_to_first_page(self, executor, facet_config):
        params = ParameterStore(facet_config).parse({"page": "99999999999999999999"})
        result = executor.search(params)
        assert params.page == 0
        assert result.total_rows == 5
        assert len(result.rows) == 2

    def test_build_queries_has_one_count_per_facet(self, executor, empty_params):
        assert list(executor.build_queries(empty_params)) == [
            "rows", "total", "facet:state", "facet:year", "facet:topic",
        ]

    def test_single_worker_still_runs_everything(self, facet_config, empty_params):
        result = SearchExecutor(facet_config, max_workers=1).search(empty_params)
        assert result.total_rows == 5


class TestFailures:
    """Timeouts, cancellation, retries and storage errors."""

    def test_expired_deadline_times_out(self, facet_config, empty_params):
        executor = SearchExecutor(facet_config, timeout_seconds=0)
        with pytest.raises(QueryExecutionError) as exc_info:
            executor.search(empty_params)
        assert exc_info.value.category is ErrorCategory.TIMEOUT

    def test_cancel_event_aborts_search(self, executor, empty_params):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(QueryExecutionError) as exc_info:
            executor.search(empty_params, cancel_event=cancel)
        assert exc_info.value.category is ErrorCategory.CANCELLED

    def test_query_error_fails_whole_request(self, facet_config, empty_params):
        config = replace(facet_config, keyword_columns=("no_such_column",))
        executor = SearchExecutor(config, retry_base_delay=0)
        with pytest.raises(QueryExecutionError) as exc_info:
            executor.search(RequestParameters(keywords="fraud"))
        assert exc_info.value.category is ErrorCategory.QUERY

    def test_missing_database_is_a_connection_error(self, facet_config, tmp_path, empty_params):
        executor = SearchExecutor(facet_config, db_path=tmp_path / "missing.duckdb", retry_base_delay=0)
        with pytest.raises(QueryExecutionError) as exc_info:
            executor.search(empty_params)
        assert exc_info.value.category is ErrorCategory.CONNECTION

    def test_transient_errors_are_retried(self, executor, empty_params, monkeypatch):
        calls = []
        real_run_once = executor._run_once

        def flaky(*args, **kwargs):
            calls.append(1)
            if len(calls) < 3:
                raise QueryExecutionError("database is locked", ErrorCategory.CONNECTION)
            return real_run_once(*args, **kwargs)

        monkeypatch.setattr(executor, "_run_once", flaky)
        assert executor.search(empty_params).total_rows == 5
        assert len(calls) == 3

    def test_retries_are_bounded(self, executor, empty_params, monkeypatch):
        calls = []

        def always_down(*args, **kwargs):
            calls.append(1)
            raise QueryExecutionError("I/O error", ErrorCategory.CONNECTION)

        monkeypatch.setattr(executor, "_run_once", always_down)
        with pytest.raises(QueryExecutionError):
            executor.search(empty_params)
        assert len(calls) == executor.max_retries

    def test_query_errors_are_not_retried(self, executor, empty_params, monkeypatch):
        calls = []

        def broken(*args, **kwargs):
            calls.append(1)
            raise QueryExecutionError("syntax error", ErrorCategory.QUERY)

        monkeypatch.setattr(executor, "_run_once", broken)
        with pytest.raises(QueryExecutionError):
            executor.search(empty_params)
        assert len(calls) == 1

    def test_max_retries_must_be_positive(self, facet_config):
        with pytest.raises(ValueError):
            SearchExecutor(facet_config, max_retries=0)


def test_rows_from_frame_converts_missing_values():
    frame = pd.DataFrame({"a": ["x", None], "b": [1.5, float("nan")]})
    assert rows_from_frame(frame) == [{"a": "x", "b": "1.5"}, {"a": "", "b": ""}]
