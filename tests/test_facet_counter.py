"""Tests for per-facet value counts."""

from __future__ import annotations

from dataclasses import replace

import pandas as pd
import pytest

from core.errors import ErrorCategory, QueryExecutionError, UnknownColumnError
from search.facet_counter import FacetCounter, counts_for
from search.types import FacetCountEntry, RequestParameters


@pytest.fixture
def counter(facet_config) -> FacetCounter:
    return FacetCounter(facet_config)


def as_pairs(entries):
    return [(entry.value, entry.count) for entry in entries]


class TestCountQuery:
    """Shape of the generated count SQL."""

    def test_plain_facet_counts_its_column(self, counter, empty_params):
        query = counter.build(empty_params, "state")
        assert 'SELECT CAST("state" AS VARCHAR) AS facet_value' in query.sql
        assert "list_distinct" not in query.sql
        assert "ORDER BY row_count DESC, facet_value ASC" in query.sql
        assert query.params == {"limit": 50}

    def test_aliased_facet_unnests_all_columns(self, counter, empty_params):
        query = counter.build(empty_params, "topic")
        assert 'list_distinct([CAST("topic" AS VARCHAR), CAST("secondary_topic" AS VARCHAR)])' in query.sql

    def test_own_selection_is_left_out(self, counter):
        params = RequestParameters(facet_selections={"state": ("TX",), "year": ("2020",)})
        query = counter.build(params, "state")
        assert "TX" not in query.params.values()
        assert "2020" in query.params.values()

    def test_unknown_facet_raises(self, counter, empty_params):
        with pytest.raises(UnknownColumnError):
            counter.build(empty_params, "bogus")


class TestCounts:
    """Counting against the sample table."""

    def test_counts_skip_rows_failing_required_columns(self, counter, read_conn, empty_params):
        assert as_pairs(counter.counts_for(read_conn, empty_params, "state")) == [
            ("CA", 2), ("TX", 2), ("NY", 1),
        ]

    def test_numeric_facet_values_are_text(self, counter, read_conn, empty_params):
        assert as_pairs(counter.counts_for(read_conn, empty_params, "year")) == [
            ("2020", 2), ("2022", 2), ("2021", 1),
        ]

    def test_alias_values_are_counted_once_per_row(self, counter, read_conn, empty_params):
        assert as_pairs(counter.counts_for(read_conn, empty_params, "topic")) == [
            ("environment", 3), ("fraud", 3), ("civil rights", 1),
        ]

    def test_other_facets_filter_counts(self, counter, read_conn):
        params = RequestParameters(facet_selections={"topic": ("fraud",)})
        assert as_pairs(counter.counts_for(read_conn, params, "state")) == [("TX", 2), ("CA", 1)]

    def test_own_selection_does_not_filter_counts(self, counter, read_conn, empty_params):
        params = RequestParameters(facet_selections={"state": ("TX",)})
        assert counter.counts_for(read_conn, params, "state") == counter.counts_for(
            read_conn, empty_params, "state"
        )

    def test_own_selection_is_relaxed_while_other_facets_still_apply(self, counter, read_conn):
        both = RequestParameters(facet_selections={"state": ("CA",), "topic": ("fraud",)})
        topic_only = RequestParameters(facet_selections={"topic": ("fraud",)})
        counts = counter.counts_for(read_conn, both, "state")
        assert counts == counter.counts_for(read_conn, topic_only, "state")
        assert as_pairs(counts) == [("TX", 2), ("CA", 1)]

    def test_keywords_filter_counts(self, counter, read_conn):
        params = RequestParameters(keywords="fraud")
        assert as_pairs(counter.counts_for(read_conn, params, "state")) == [("CA", 1), ("TX", 1)]

    def test_facet_item_limit(self, facet_config, read_conn, empty_params):
        limited = FacetCounter(replace(facet_config, facet_item_limit=1))
        assert as_pairs(limited.counts_for(read_conn, empty_params, "state")) == [("CA", 2)]

    def test_module_level_counts_for(self, facet_config, read_conn, empty_params):
        entries = counts_for(facet_config, empty_params, "state", read_conn)
        assert entries[0] == FacetCountEntry("state", "CA", 2)

    def test_storage_failure_is_wrapped(self, facet_config, read_conn, empty_params):
        config = replace(facet_config, table_name="no_such_table")
        with pytest.raises(QueryExecutionError) as exc_info:
            FacetCounter(config).counts_for(read_conn, empty_params, "state")
        assert exc_info.value.category is ErrorCategory.QUERY
        assert "no_such_table" in exc_info.value.sql


def test_entries_from_empty_frame():
    assert FacetCounter.entries_from_frame("state", pd.DataFrame()) == []
    assert FacetCounter.entries_from_frame("state", None) == []
