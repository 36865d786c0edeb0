"""Pager markup."""

import math
from typing import List

from config.facet_config import FacetConfig
from config.settings import Settings
from search.types import RequestParameters
from ui.links import build_link

PAGER_CLASS = "doj-facet-pager"
CURRENT_CLASS = "doj-facet-pager-current"
LINK_CLASS = "doj-facet-pager-link"


class PagerRenderer:
    """Renders first/previous, a window of page numbers and next/last links."""

    def __init__(self, base_url: str = "", radius: int = Settings.PAGER_RADIUS):
        self.base_url = base_url
        self.radius = radius

    @staticmethod
    def page_count(total_rows: int, page_size: int) -> int:
        return max(1, math.ceil(total_rows / page_size))

    def _link(self, label: str, page: int, params: RequestParameters) -> str:
        return build_link(self.base_url, label, params.with_page(page).to_query(), LINK_CLASS)

    def render(self, total_rows: int, config: FacetConfig, params: RequestParameters) -> str:
        """
        Render the pager, or an empty string when everything fits on one page.

        Pages are 0-based in the query string and shown 1-based. Every link
        carries the full current parameter set with only ``page`` changed.
        """
        pages = self.page_count(total_rows, config.page_size)
        if pages <= 1:
            return ""

        current = min(params.page, pages - 1)
        first = max(0, current - self.radius)
        last = min(pages - 1, current + self.radius)

        items: List[str] = []
        if current > 0:
            items.append(self._link("« first", 0, params))
            items.append(self._link("‹ previous", current - 1, params))
        for page in range(first, last + 1):
            if page == current:
                items.append(f'<span class="{CURRENT_CLASS}">{page + 1}</span>')
            else:
                items.append(self._link(str(page + 1), page, params))
        if current < pages - 1:
            items.append(self._link("next ›", current + 1, params))
            items.append(self._link("last »", pages - 1, params))

        lines = [f'<ul class="{PAGER_CLASS}">']
        lines.extend(f"  <li>{item}</li>" for item in items)
        lines.append("</ul>")
        return "\n".join(lines) + "\n"
