"""
Request parameter parsing.

Turns the raw query string of a request into a ``RequestParameters`` value.
Only allow-listed keys survive: the configured facet columns plus the control
parameters in ``EXTRA_PARAMETERS``. Bad input never raises to the caller; it is
dropped or replaced by a safe default and logged.
"""

import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from config.facet_config import FacetConfig, SortDirection
from core.errors import InvalidParameterError
from search.types import (
    EXTRA_PARAMETERS,
    PARAM_FULL_TEXT,
    PARAM_KEYWORDS,
    PARAM_PAGE,
    PARAM_SORT,
    PARAM_SORT_DIRECTION,
    RequestParameters,
)
from utils.query_builder import MAX_OFFSET

logger = logging.getLogger(__name__)


def get_allowed_parameters(config: FacetConfig) -> FrozenSet[str]:
    """Facet column names plus the reserved control parameters."""
    return frozenset(config.facet_names) | frozenset(EXTRA_PARAMETERS)


def coerce_page(value: Any, page_size: int = 1) -> int:
    """
    Parse a page number.

    Raises InvalidParameterError for non-numeric or negative input, and for
    pages whose row offset at ``page_size`` rows per page cannot be queried.
    """
    try:
        page = int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(PARAM_PAGE, value) from e
    if page < 0:
        raise InvalidParameterError(PARAM_PAGE, value, f"Page must not be negative: {value!r}")
    if page * page_size > MAX_OFFSET:
        raise InvalidParameterError(PARAM_PAGE, value, f"Page is out of range: {value!r}")
    return page


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


class ParameterStore:
    """Parses raw request parameters against the allow-list of a facet config."""

    def __init__(self, config: FacetConfig):
        self.config = config
        self.allow_list = get_allowed_parameters(config)

    def parse(self, raw_params: Mapping[str, Any]) -> RequestParameters:
        return parse(raw_params, self.allow_list, self.config)


def _normalize_keys(raw_params: Mapping[str, Any]) -> Dict[str, List[str]]:
    """Collect values per key, folding PHP-style ``name[]`` keys into ``name``."""
    normalized: Dict[str, List[str]] = {}
    for key, value in raw_params.items():
        name = key[:-2] if key.endswith("[]") else key
        values = list(value) if _is_sequence(value) else [value]
        cleaned = [str(v) for v in values if v is not None and str(v).strip() != ""]
        if cleaned:
            normalized.setdefault(name, []).extend(cleaned)
    return normalized


def _scalar(name: str, values: List[str]) -> Optional[str]:
    if len(values) == 1:
        return values[0]
    logger.warning(f"Dropping parameter '{name}': expected one value, got {len(values)}")
    return None


def parse(
    raw_params: Mapping[str, Any],
    allow_list: Iterable[str],
    config: Optional[FacetConfig] = None,
) -> RequestParameters:
    """
    Build RequestParameters from a raw query mapping.

    Args:
        raw_params: Mapping of key to a string or a sequence of strings
        allow_list: Keys to keep; everything else is silently dropped
        config: When given, sort columns are checked against the sortable columns

    Returns:
        Immutable RequestParameters
    """
    allowed = set(allow_list)
    normalized = _normalize_keys(raw_params)

    facet_selections: Dict[str, List[str]] = {}
    keywords = sort_column = full_text = None
    sort_direction: Optional[SortDirection] = None
    page = 0

    for name, values in normalized.items():
        if name not in allowed:
            logger.debug(f"Ignoring unknown parameter '{name}'")
            continue

        if name not in EXTRA_PARAMETERS:
            facet_selections[name] = values
            continue

        value = _scalar(name, values)
        if value is None:
            continue

        if name == PARAM_KEYWORDS:
            keywords = value.strip()
        elif name == PARAM_SORT:
            if config is not None and not config.is_sortable(value):
                logger.debug(f"Ignoring sort on non-sortable column '{value}'")
                continue
            sort_column = value
        elif name == PARAM_SORT_DIRECTION:
            sort_direction = SortDirection.parse(value)
            if sort_direction is None:
                logger.debug(f"Ignoring invalid sort direction {value!r}")
        elif name == PARAM_PAGE:
            try:
                page = coerce_page(value, config.page_size if config is not None else 1)
            except InvalidParameterError as e:
                logger.debug(f"{e}; falling back to page 0")
                page = 0
        elif name == PARAM_FULL_TEXT:
            full_text = value

    # Facets follow configuration order so generated SQL and links are stable.
    if config is not None:
        order = {facet: i for i, facet in enumerate(config.facet_names)}
        facet_selections = dict(
            sorted(facet_selections.items(), key=lambda item: order.get(item[0], len(order)))
        )

    return RequestParameters(
        facet_selections=facet_selections,
        keywords=keywords or None,
        sort_column=sort_column,
        sort_direction=sort_direction,
        page=page,
        full_text=full_text,
    )
