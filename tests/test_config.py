"""
Tests for configuration modules functionality.
"""
import pytest
from dataclasses import replace
from pathlib import Path

from config.facet_config import (
    FacetConfig,
    SortDirection,
    config_from_mapping,
    load_facet_config,
)
from config.settings import Settings
from core.errors import ConfigError

from conftest import SAMPLE_CONFIG

SAMPLE_TOML = """
"database table" = "cases"
"database file" = "facets.duckdb"
"pager limit" = 25
"required columns" = ["title"]
"keyword columns" = ["title", "summary"]

["facet labels"]
state = "State"
topic = "Topic"

["columns for additional values"]
secondary_topic = "topic"

["sort directions"]
title = "asc"

["search result labels"]
title = "Title"
state = "State"
"""


class TestSettings:
    """Test Settings configuration class."""

    def test_project_root_detection(self):
        """Test automatic project root detection."""
        project_root = Settings.PROJECT_ROOT
        assert isinstance(project_root, Path)
        assert (project_root / "src").exists()

    def test_get_db_path_default_and_override(self, tmp_path):
        assert Settings.get_db_path() == Settings.DEFAULT_DB_PATH
        assert Settings.get_db_path(tmp_path / "x.duckdb") == tmp_path / "x.duckdb"

    def test_config_path_honors_environment(self, monkeypatch, tmp_path):
        monkeypatch.delenv(Settings.CONFIG_FILE_ENV_VAR, raising=False)
        assert Settings.get_config_path() == Settings.DEFAULT_CONFIG_FILE
        monkeypatch.setenv(Settings.CONFIG_FILE_ENV_VAR, str(tmp_path / "env.toml"))
        assert Settings.get_config_path() == tmp_path / "env.toml"
        assert Settings.get_config_path(tmp_path / "cli.toml") == tmp_path / "cli.toml"


class TestFacetConfigLoading:
    """Loading the TOML facet configuration."""

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "facets.toml"
        path.write_text(SAMPLE_TOML, encoding="utf-8")
        config = load_facet_config(path)

        assert config.table_name == "cases"
        assert config.facet_columns == (("state", "State"), ("topic", "Topic"))
        assert config.aliases_for("topic") == ("secondary_topic",)
        assert config.sort_directions["title"] is SortDirection.ASC
        assert config.page_size == 25
        assert config.get_db_path() == tmp_path / "facets.duckdb"
        assert list(config.result_labels) == ["title", "state"]

    def test_defaults(self):
        config = config_from_mapping({
            "database table": "cases",
            "facet labels": {"state": "State"},
            "search result labels": {"title": "Title"},
        })
        assert config.page_size == 20
        assert config.relevance_column == "relevance"
        assert config.facet_item_limit == Settings.MAX_UNIQUE_VALUES_FOR_FACET
        assert config.get_db_path() == Settings.DEFAULT_DB_PATH
        assert config.base_url == ""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_facet_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text('"database table" = ', encoding="utf-8")
        with pytest.raises(ConfigError, match="Could not parse"):
            load_facet_config(path)

    @pytest.mark.parametrize("missing", ["database table", "facet labels", "search result labels"])
    def test_missing_required_keys(self, missing):
        data = {k: v for k, v in SAMPLE_CONFIG.items() if k != missing}
        with pytest.raises(ConfigError, match="Missing required configuration key"):
            config_from_mapping(data)

    @pytest.mark.parametrize(
        "key, value, message",
        [
            ("pager limit", 0, "positive integer"),
            ("pager limit", "ten", "must be an integer"),
            ("facet item limit", -1, "positive integer"),
            ("sort directions", {"title": "UP"}, "must be ASC or DESC"),
            ("database table", "cases; DROP TABLE cases", "Invalid column name"),
            ("keyword columns", ["title", "bad column"], "Invalid column name"),
            ("keyword columns", [1, 2], "list of column names"),
            ("facet labels", "state", "must be a table"),
            ("columns for additional values", {"secondary_topic": "summary"}, "not a facet column"),
            ("columns for additional values", {"topic": "topic"}, "to itself"),
            ("search result labels", {}, "at least one column"),
        ],
    )
    def test_malformed_values(self, key, value, message):
        with pytest.raises(ConfigError, match=message):
            config_from_mapping({**SAMPLE_CONFIG, key: value})


class TestFacetConfig:
    """Lookups on a loaded configuration."""

    def test_is_immutable(self, facet_config):
        with pytest.raises(Exception):
            facet_config.page_size = 5
        with pytest.raises(TypeError):
            facet_config.result_labels["x"] = "y"

    def test_lookups(self, facet_config):
        assert facet_config.facet_names == ("state", "year", "topic")
        assert facet_config.facet_label("year") == "Year"
        assert facet_config.is_facet("state")
        assert not facet_config.is_facet("secondary_topic")
        assert facet_config.is_sortable("title")
        assert not facet_config.is_sortable("state")
        assert facet_config.default_direction("year") is SortDirection.DESC
        assert facet_config.aliases_for("state") == ()

    def test_replace_revalidates(self, facet_config):
        with pytest.raises(ConfigError):
            replace(facet_config, page_size=0)

    def test_direct_construction(self):
        config = FacetConfig(
            table_name="cases",
            facet_columns=[("state", "State")],
            result_labels={"title": "Title"},
        )
        assert config.facet_columns == (("state", "State"),)
