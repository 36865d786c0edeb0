"""Typed contracts for facet search requests, queries and results."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from config.facet_config import FacetConfig, SortDirection
from utils.keywords import KeywordTerm, parse_boolean_terms

# Query-string keys that are not facet columns.
PARAM_KEYWORDS = "keys"
PARAM_SORT = "sort"
PARAM_SORT_DIRECTION = "sort_direction"
PARAM_PAGE = "page"
PARAM_FULL_TEXT = "full_text"

EXTRA_PARAMETERS: Tuple[str, ...] = (
    PARAM_KEYWORDS,
    PARAM_SORT,
    PARAM_SORT_DIRECTION,
    PARAM_PAGE,
    PARAM_FULL_TEXT,
)

QueryValue = Union[str, List[str]]

ResultRow = Dict[str, str]


def _unique(values: Sequence[str]) -> Tuple[str, ...]:
    """Drop duplicates, keeping first-seen order."""
    return tuple(dict.fromkeys(values))


@dataclass(frozen=True)
class RequestParameters:
    """Validated search parameters for a single request."""

    facet_selections: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    keywords: Optional[str] = None
    sort_column: Optional[str] = None
    sort_direction: Optional[SortDirection] = None
    page: int = 0
    full_text: Optional[str] = None

    def __post_init__(self) -> None:
        selections = {
            facet: _unique(values)
            for facet, values in self.facet_selections.items()
            if values
        }
        object.__setattr__(self, "facet_selections", MappingProxyType(selections))
        if self.page < 0:
            object.__setattr__(self, "page", 0)

    @property
    def has_keywords(self) -> bool:
        return bool(self.keywords and self.keywords.strip())

    @property
    def keyword_terms(self) -> List[KeywordTerm]:
        """Parsed boolean-mode terms; empty when the keyword string holds nothing searchable."""
        return parse_boolean_terms(self.keywords) if self.has_keywords else []

    def selected(self, facet: str) -> Tuple[str, ...]:
        return self.facet_selections.get(facet, ())

    def is_selected(self, facet: str, value: str) -> bool:
        return value in self.selected(facet)

    def to_query(self) -> Dict[str, QueryValue]:
        """Round-trip back to a raw query mapping, e.g. for building links."""
        query: Dict[str, QueryValue] = {
            facet: list(values) for facet, values in self.facet_selections.items()
        }
        if self.has_keywords:
            query[PARAM_KEYWORDS] = self.keywords
        if self.sort_column:
            query[PARAM_SORT] = self.sort_column
        if self.sort_direction:
            query[PARAM_SORT_DIRECTION] = self.sort_direction.value
        if self.page:
            query[PARAM_PAGE] = str(self.page)
        if self.full_text:
            query[PARAM_FULL_TEXT] = self.full_text
        return query

    def with_page(self, page: int) -> "RequestParameters":
        return replace(self, page=max(page, 0))

    def with_sort(self, column: str, direction: SortDirection) -> "RequestParameters":
        return replace(self, sort_column=column, sort_direction=direction)

    def without_facet(self, facet: str) -> "RequestParameters":
        selections = {k: v for k, v in self.facet_selections.items() if k != facet}
        return replace(self, facet_selections=selections)

    def toggle_facet_value(self, facet: str, value: str) -> "RequestParameters":
        """Add or remove one facet value; the result starts again at page 0."""
        selections = dict(self.facet_selections)
        current = selections.get(facet, ())
        if value in current:
            selections[facet] = tuple(v for v in current if v != value)
        else:
            selections[facet] = current + (value,)
        return replace(self, facet_selections=selections, page=0)


def keyword_search_active(config: FacetConfig, params: RequestParameters) -> bool:
    """Whether the request runs a keyword search, and so carries a relevance score."""
    return bool(config.keyword_columns and params.keyword_terms)


@dataclass(frozen=True)
class BuiltQuery:
    """SQL text plus the values bound to its named placeholders."""

    sql: str
    params: Dict[str, Any]

    def bound_parameters(self) -> Dict[str, Any]:
        return dict(self.params)


@dataclass(frozen=True)
class FacetCountEntry:
    """Number of matching rows for one value of a facet."""

    facet_column: str
    value: str
    count: int


@dataclass(frozen=True)
class SearchResult:
    """Everything a render pass needs from storage."""

    rows: List[ResultRow]
    total_rows: int
    facet_counts: Dict[str, List[FacetCountEntry]]
    params: RequestParameters
    page_size: int

    @property
    def page_count(self) -> int:
        return max(1, math.ceil(self.total_rows / self.page_size)) if self.page_size else 1

    @property
    def is_empty(self) -> bool:
        return not self.rows
