"""
Facet configuration for a single searchable table.

The configuration is loaded once from a TOML file whose keys keep the
human-readable names used by site maintainers ("database table",
"facet labels", ...). Everything the query builder interpolates into SQL
(table and column names) comes from here and is validated as a plain
identifier on load.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from config.settings import Settings
from core.errors import ConfigError
from utils.query_builder import validate_identifier

logger = logging.getLogger(__name__)


class SortDirection(Enum):
    """Supported ORDER BY directions."""
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, value: Any) -> Optional["SortDirection"]:
        """Return the direction named by value (case-insensitive), or None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None

    def toggle(self) -> "SortDirection":
        """Return the opposite direction."""
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


def toggle_direction(direction: SortDirection) -> SortDirection:
    """Flip a sort direction; applying it twice returns the original."""
    return direction.toggle()


# TOML keys, as written by site maintainers.
KEY_TABLE = "database table"
KEY_DATABASE_FILE = "database file"
KEY_FACET_LABELS = "facet labels"
KEY_ADDITIONAL_COLUMNS = "columns for additional values"
KEY_REQUIRED_COLUMNS = "required columns"
KEY_KEYWORD_COLUMNS = "keyword columns"
KEY_SORT_DIRECTIONS = "sort directions"
KEY_RESULT_LABELS = "search result labels"
KEY_MINIMUM_WIDTHS = "minimum column widths"
KEY_LINK_COLUMNS = "output as links"
KEY_NO_RESULTS = "no results message"
KEY_PAGE_SIZE = "pager limit"
KEY_RELEVANCE_COLUMN = "relevance column"
KEY_FACET_ITEM_LIMIT = "facet item limit"
KEY_BASE_URL = "base url"

DEFAULT_NO_RESULTS_MESSAGE = "Sorry, no results could be found for those keywords."
DEFAULT_PAGE_SIZE = 20
DEFAULT_RELEVANCE_COLUMN = "relevance"


@dataclass(frozen=True)
class FacetConfig:
    """Immutable mapping of facets, columns and display options for one table."""

    table_name: str
    facet_columns: Tuple[Tuple[str, str], ...]
    result_labels: Mapping[str, str]
    additional_columns: Mapping[str, str] = field(default_factory=dict)
    required_columns: Tuple[str, ...] = ()
    keyword_columns: Tuple[str, ...] = ()
    sort_directions: Mapping[str, SortDirection] = field(default_factory=dict)
    minimum_column_widths: Mapping[str, str] = field(default_factory=dict)
    link_columns: Mapping[str, str] = field(default_factory=dict)
    no_results_message: str = DEFAULT_NO_RESULTS_MESSAGE
    page_size: int = DEFAULT_PAGE_SIZE
    relevance_column: str = DEFAULT_RELEVANCE_COLUMN
    facet_item_limit: int = Settings.MAX_UNIQUE_VALUES_FOR_FACET
    database_file: Optional[Path] = None
    base_url: str = ""

    def __post_init__(self) -> None:
        # Freeze the mappings so the config can be shared across requests.
        for name in (
            "result_labels",
            "additional_columns",
            "sort_directions",
            "minimum_column_widths",
            "link_columns",
        ):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))
        object.__setattr__(self, "facet_columns", tuple(tuple(f) for f in self.facet_columns))
        object.__setattr__(self, "required_columns", tuple(self.required_columns))
        object.__setattr__(self, "keyword_columns", tuple(self.keyword_columns))
        self._validate()

    # ------------------------------------------------------------------ lookups
    @property
    def facet_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.facet_columns)

    def facet_label(self, facet: str) -> str:
        return dict(self.facet_columns).get(facet, facet)

    def is_facet(self, name: str) -> bool:
        return name in self.facet_names

    def aliases_for(self, facet: str) -> Tuple[str, ...]:
        """Alias columns whose values count as values of the given facet."""
        return tuple(
            alias for alias, main in self.additional_columns.items() if main == facet
        )

    def is_sortable(self, column: str) -> bool:
        return column in self.sort_directions

    def default_direction(self, column: str) -> SortDirection:
        return self.sort_directions.get(column, SortDirection.ASC)

    def get_db_path(self) -> Path:
        return Settings.get_db_path(self.database_file)

    # --------------------------------------------------------------- validation
    def _validate(self) -> None:
        if self.page_size <= 0:
            raise ConfigError(f"'{KEY_PAGE_SIZE}' must be a positive integer, got {self.page_size}")
        if self.facet_item_limit <= 0:
            raise ConfigError(
                f"'{KEY_FACET_ITEM_LIMIT}' must be a positive integer, got {self.facet_item_limit}"
            )
        if not self.result_labels:
            raise ConfigError(f"'{KEY_RESULT_LABELS}' must list at least one column")

        identifiers = [self.table_name, self.relevance_column]
        identifiers.extend(self.facet_names)
        identifiers.extend(self.additional_columns.keys())
        identifiers.extend(self.additional_columns.values())
        identifiers.extend(self.required_columns)
        identifiers.extend(self.keyword_columns)
        identifiers.extend(self.sort_directions.keys())
        identifiers.extend(self.result_labels.keys())
        identifiers.extend(self.link_columns.keys())
        identifiers.extend(self.link_columns.values())
        for identifier in identifiers:
            try:
                validate_identifier(identifier)
            except ValueError as e:
                raise ConfigError(str(e)) from e

        for alias, main in self.additional_columns.items():
            if not self.is_facet(main):
                raise ConfigError(
                    f"'{KEY_ADDITIONAL_COLUMNS}' maps '{alias}' to '{main}', which is not a facet column"
                )
            if alias == main:
                raise ConfigError(f"'{KEY_ADDITIONAL_COLUMNS}' maps '{alias}' to itself")


# ---------------------------------------------------------------------- loading
def _section(data: Mapping[str, Any], key: str, required: bool = False) -> Dict[str, Any]:
    value = data.get(key)
    if value is None:
        if required:
            raise ConfigError(f"Missing required configuration key: '{key}'")
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Configuration key '{key}' must be a table of column = value pairs")
    return dict(value)


def _string_list(data: Mapping[str, Any], key: str) -> Tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"Configuration key '{key}' must be a list of column names")
    return tuple(value)


def _positive_int(data: Mapping[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"Configuration key '{key}' must be an integer, got {value!r}")
    return value


def config_from_mapping(data: Mapping[str, Any], base_dir: Optional[Path] = None) -> FacetConfig:
    """
    Build a FacetConfig from a parsed configuration mapping.

    Args:
        data: Parsed TOML document (or an equivalent dict)
        base_dir: Directory used to resolve a relative "database file"

    Returns:
        Validated FacetConfig

    Raises:
        ConfigError: If a required key is missing or a value is malformed
    """
    table_name = data.get(KEY_TABLE)
    if not table_name or not isinstance(table_name, str):
        raise ConfigError(f"Missing required configuration key: '{KEY_TABLE}'")

    facet_labels = _section(data, KEY_FACET_LABELS, required=True)
    result_labels = _section(data, KEY_RESULT_LABELS, required=True)

    sort_directions = {}
    for column, raw_direction in _section(data, KEY_SORT_DIRECTIONS).items():
        direction = SortDirection.parse(raw_direction)
        if direction is None:
            raise ConfigError(
                f"'{KEY_SORT_DIRECTIONS}' for '{column}' must be ASC or DESC, got {raw_direction!r}"
            )
        sort_directions[column] = direction

    database_file = data.get(KEY_DATABASE_FILE)
    db_path: Optional[Path] = None
    if database_file:
        db_path = Path(database_file)
        if not db_path.is_absolute() and base_dir is not None:
            db_path = base_dir / db_path

    return FacetConfig(
        table_name=table_name,
        facet_columns=tuple((str(k), str(v)) for k, v in facet_labels.items()),
        result_labels={str(k): str(v) for k, v in result_labels.items()},
        additional_columns={str(k): str(v) for k, v in _section(data, KEY_ADDITIONAL_COLUMNS).items()},
        required_columns=_string_list(data, KEY_REQUIRED_COLUMNS),
        keyword_columns=_string_list(data, KEY_KEYWORD_COLUMNS),
        sort_directions=sort_directions,
        minimum_column_widths={str(k): str(v) for k, v in _section(data, KEY_MINIMUM_WIDTHS).items()},
        link_columns={str(k): str(v) for k, v in _section(data, KEY_LINK_COLUMNS).items()},
        no_results_message=str(data.get(KEY_NO_RESULTS, DEFAULT_NO_RESULTS_MESSAGE)),
        page_size=_positive_int(data, KEY_PAGE_SIZE, DEFAULT_PAGE_SIZE),
        relevance_column=str(data.get(KEY_RELEVANCE_COLUMN, DEFAULT_RELEVANCE_COLUMN)),
        facet_item_limit=_positive_int(data, KEY_FACET_ITEM_LIMIT, Settings.MAX_UNIQUE_VALUES_FOR_FACET),
        database_file=db_path,
        base_url=str(data.get(KEY_BASE_URL, "")),
    )


def load_facet_config(config_path: Optional[Path] = None) -> FacetConfig:
    """Load and validate the facet configuration file."""
    path = Settings.get_config_path(config_path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Could not parse configuration file {path}: {e}") from e

    config = config_from_mapping(data, base_dir=path.parent)
    logger.info(
        f"Loaded facet configuration for table '{config.table_name}' "
        f"with {len(config.facet_columns)} facets from {path}"
    )
    return config
