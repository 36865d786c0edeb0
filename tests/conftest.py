# tests/conftest.py
import sys
import os
import pytest

from pathlib import Path

# Set environment variable to disable Streamlit caching in tests
os.environ["STREAMLIT_CACHE_DISABLED"] = "1"


# Patch Streamlit caching BEFORE any imports that use it
def passthrough_decorator(func=None, **kwargs):
    """A decorator that does nothing but return the original function."""
    if func is None:

        def wrapper(fn):
            return fn

        return wrapper
    return func


# Monkey-patch streamlit caching functions before any modules import them
import streamlit as st

st.cache_data = passthrough_decorator
st.cache_resource = passthrough_decorator

# 1. Make sure `src/` is on the import path:
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
sys.path.insert(0, os.path.join(ROOT, "src"))

import duckdb  # noqa: E402

from config.facet_config import FacetConfig, config_from_mapping  # noqa: E402
from search.types import RequestParameters  # noqa: E402


SAMPLE_CONFIG = {
    "database table": "cases",
    "pager limit": 2,
    "facet item limit": 50,
    "required columns": ["title"],
    "keyword columns": ["title", "summary"],
    "facet labels": {"state": "State", "year": "Year", "topic": "Topic"},
    "columns for additional values": {"secondary_topic": "topic"},
    "sort directions": {"title": "ASC", "year": "DESC", "relevance": "DESC"},
    "search result labels": {
        "title": "Title",
        "state": "State",
        "year": "Year",
        "topic": "Topic",
        "relevance": "Relevance",
    },
    "minimum column widths": {"title": "20em"},
    "output as links": {"title": "url"},
    "no results message": "Nothing matched.",
}

# Row 5 has an empty title and is always hidden by the required column.
SAMPLE_ROWS = [
    (1, "Fraud in Texas", "bank fraud scheme", "TX", 2020, "fraud", None, "https://example.com/1"),
    (2, "Texas water rights", "dispute over water", "TX", 2021, "environment", "fraud", "https://example.com/2"),
    (3, "California fraud case", "insurance fraud", "CA", 2020, "fraud", "environment", ""),
    (4, "Air quality", "clean air act", "CA", 2022, "environment", None, None),
    (5, "", "untitled record", "NY", 2021, "civil rights", None, None),
    (6, "New York civil rights", "voting rights", "NY", 2022, "civil rights", None, "https://example.com/6"),
]


def create_sample_table(db_path: Path) -> None:
    con = duckdb.connect(str(db_path))
    try:
        con.execute(
            """
            CREATE TABLE cases (
                id INTEGER, title VARCHAR, summary VARCHAR, state VARCHAR,
                year INTEGER, topic VARCHAR, secondary_topic VARCHAR, url VARCHAR
            )
            """
        )
        con.executemany("INSERT INTO cases VALUES (?, ?, ?, ?, ?, ?, ?, ?)", SAMPLE_ROWS)
    finally:
        con.close()


@pytest.fixture
def search_db(tmp_path) -> Path:
    """A DuckDB file holding the sample ``cases`` table."""
    db_path = tmp_path / "facets.duckdb"
    create_sample_table(db_path)
    return db_path


@pytest.fixture
def facet_config(search_db) -> FacetConfig:
    """Sample configuration pointing at the search_db file."""
    return config_from_mapping({**SAMPLE_CONFIG, "database file": str(search_db)})


@pytest.fixture
def read_conn(search_db):
    con = duckdb.connect(str(search_db), read_only=True)
    yield con
    con.close()


@pytest.fixture
def empty_params() -> RequestParameters:
    return RequestParameters()


@pytest.fixture
def temp_db_path(tmp_path):
    """Provide a temporary database path for tests."""
    return tmp_path / "test.duckdb"
