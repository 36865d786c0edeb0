"""Facet blocks with per-value counts and toggle links."""

from html import escape
from typing import List, Mapping, Sequence

from config.facet_config import FacetConfig
from search.types import FacetCountEntry, RequestParameters
from ui.links import build_link

FACET_CLASS = "doj-facet"
LABEL_CLASS = "doj-facet-label"
ITEMS_CLASS = "doj-facet-items"
ITEM_CLASS = "doj-facet-item"
ACTIVE_CLASS = "doj-facet-item-active"
COUNT_CLASS = "doj-facet-count"


class FacetRenderer:
    """Renders one block per configured facet, in configuration order."""

    def __init__(self, base_url: str = ""):
        self.base_url = base_url

    def _item(self, facet: str, value: str, count, params: RequestParameters) -> str:
        active = params.is_selected(facet, value)
        css_class = f"{ITEM_CLASS} {ACTIVE_CLASS}" if active else ITEM_CLASS
        query = params.toggle_facet_value(facet, value).to_query()
        link = build_link(self.base_url, value, query, css_class)
        if count is None:
            return link
        return f'{link} <span class="{COUNT_CLASS}">({count})</span>'

    def render_facet(
        self,
        facet: str,
        config: FacetConfig,
        params: RequestParameters,
        entries: Sequence[FacetCountEntry],
    ) -> str:
        items: List[str] = []
        listed = set()
        for entry in entries:
            listed.add(entry.value)
            items.append(self._item(facet, entry.value, entry.count, params))
        # Keep selected values that fell outside the counted values removable.
        for value in params.selected(facet):
            if value not in listed:
                items.append(self._item(facet, value, None, params))
        if not items:
            return ""

        lines = [
            f'<div class="{FACET_CLASS}" data-facet="{escape(facet, quote=True)}">',
            f'  <h3 class="{LABEL_CLASS}">{escape(config.facet_label(facet))}</h3>',
            f'  <ul class="{ITEMS_CLASS}">',
        ]
        lines.extend(f"    <li>{item}</li>" for item in items)
        lines.extend(["  </ul>", "</div>"])
        return "\n".join(lines) + "\n"

    def render(
        self,
        config: FacetConfig,
        params: RequestParameters,
        counts: Mapping[str, Sequence[FacetCountEntry]],
    ) -> str:
        """Render every facet that has values to offer or an active selection."""
        return "".join(
            self.render_facet(facet, config, params, counts.get(facet, ()))
            for facet in config.facet_names
        )
