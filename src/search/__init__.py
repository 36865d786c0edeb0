"""Facet search: request parsing, query building, counting and execution."""

from .executor import SearchExecutor
from .facet_counter import FacetCounter
from .facet_query import FacetQueryBuilder
from .parameters import ParameterStore
from .types import BuiltQuery, FacetCountEntry, RequestParameters, SearchResult

__all__ = [
    "SearchExecutor",
    "FacetCounter",
    "FacetQueryBuilder",
    "ParameterStore",
    "BuiltQuery",
    "FacetCountEntry",
    "RequestParameters",
    "SearchResult",
]
