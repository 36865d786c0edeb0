"""Tests for the per-request FacetSearchApp facade."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from core.errors import ErrorCategory, QueryExecutionError
from search.executor import SearchExecutor
from ui.app import FacetSearchApp


@pytest.fixture
def app(facet_config) -> FacetSearchApp:
    raw = {"state": ["TX", "CA"], "sort": "title", "bogus": "1"}
    return FacetSearchApp(facet_config, raw)


def test_parameters_are_parsed_on_construction(app):
    assert app.params.selected("state") == ("TX", "CA")
    assert app.params.sort_column == "title"
    assert "bogus" not in app.params.to_query()


def test_render_calls_share_one_search(facet_config):
    executor = SearchExecutor(facet_config)
    spy = MagicMock(wraps=executor.search)
    executor.search = spy
    app = FacetSearchApp(facet_config, {}, executor=executor)
    app.render_results()
    app.render_facets()
    app.render_pager()
    assert spy.call_count == 1


def test_full_render(app):
    results = app.render_results()
    assert '<table class="doj-facet-search-results">' in results
    assert "Air quality" in results
    assert "Texas water rights" not in results  # second page
    assert '<ul class="doj-facet-pager">' in app.render_pager()
    facets = app.render_facets()
    assert 'data-facet="topic"' in facets
    assert "doj-facet-item-active" in facets
    assert 'name="sort" value="title"' in app.render_keyword_search()


def test_asset_tags_are_verbatim():
    assert FacetSearchApp.render_styles() == '<link rel="stylesheet" href="assets/singletablefacets.css" />'
    assert FacetSearchApp.render_javascript() == (
        '<script type="text/javascript" src="assets/singletablefacets.js"></script>'
    )


def test_storage_errors_propagate(facet_config, tmp_path):
    executor = SearchExecutor(facet_config, db_path=tmp_path / "missing.duckdb", retry_base_delay=0)
    app = FacetSearchApp(facet_config, {}, executor=executor)
    with pytest.raises(QueryExecutionError) as exc_info:
        app.render_results()
    assert exc_info.value.category is ErrorCategory.CONNECTION
    # The search bar needs no storage.
    assert "<form" in app.render_keyword_search()
