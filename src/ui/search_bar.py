"""Keyword search form."""

from html import escape
from typing import List

from config.facet_config import FacetConfig
from search.types import PARAM_KEYWORDS, PARAM_SORT, PARAM_SORT_DIRECTION, RequestParameters

FORM_CLASS = "doj-facet-keyword-search"


def _hidden(name: str, value: str) -> str:
    return (
        f'<input type="hidden" name="{escape(name, quote=True)}" '
        f'value="{escape(value, quote=True)}" />'
    )


class SearchBar:
    """GET form carrying the active facets and sort alongside the keyword box."""

    def render(self, config: FacetConfig, params: RequestParameters, base_url: str = "") -> str:
        hidden: List[str] = []
        for facet in config.facet_names:
            hidden.extend(_hidden(facet, value) for value in params.selected(facet))
        if params.sort_column:
            hidden.append(_hidden(PARAM_SORT, params.sort_column))
        if params.sort_direction:
            hidden.append(_hidden(PARAM_SORT_DIRECTION, params.sort_direction.value))

        keywords = escape(params.keywords or "", quote=True)
        lines = [
            f'<form method="get" action="{escape(base_url, quote=True)}" class="{FORM_CLASS}" target="_self">',
            f'  <input type="search" name="{PARAM_KEYWORDS}" value="{keywords}" />',
        ]
        lines.extend(f"  {tag}" for tag in hidden)
        lines.extend(['  <input type="submit" value="Search" />', "</form>"])
        return "\n".join(lines) + "\n"
