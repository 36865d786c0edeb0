"""Search results table markup."""

from html import escape
from typing import List, Optional, Sequence, Tuple

from config.facet_config import FacetConfig, SortDirection, toggle_direction
from search.types import RequestParameters, ResultRow, keyword_search_active
from ui.links import build_link

SORT_LINK_CLASS = "doj-facet-sort-link"
TABLE_CLASS = "doj-facet-search-results"


def current_sort(
    config: FacetConfig, params: RequestParameters
) -> Tuple[Optional[str], Optional[SortDirection]]:
    """The column and direction the results are actually ordered by."""
    searching = keyword_search_active(config, params)
    column = params.sort_column
    if column == config.relevance_column and not searching:
        column = None
    if column and config.is_sortable(column):
        return column, params.sort_direction or config.default_direction(column)
    if searching:
        return config.relevance_column, SortDirection.DESC
    return None, None


class ResultRenderer:
    """Renders result rows as an HTML table with sortable headers."""

    def __init__(self, base_url: str = ""):
        self.base_url = base_url

    @staticmethod
    def table_columns(config: FacetConfig, params: RequestParameters) -> List[str]:
        """Result columns to show; relevance only while searching by keyword."""
        searching = keyword_search_active(config, params)
        return [
            column
            for column in config.result_labels
            if searching or column != config.relevance_column
        ]

    def header_label(self, column: str, config: FacetConfig, params: RequestParameters) -> str:
        label = config.result_labels[column]
        if not config.is_sortable(column):
            return escape(label)

        css_class = SORT_LINK_CLASS
        direction = config.default_direction(column)
        sorted_column, sorted_direction = current_sort(config, params)
        if column == sorted_column and sorted_direction is not None:
            css_class += f" {SORT_LINK_CLASS}-{sorted_direction.value.lower()}"
            direction = toggle_direction(sorted_direction)

        query = params.with_sort(column, direction).to_query()
        return build_link(self.base_url, label, query, css_class)

    @staticmethod
    def cell(column: str, row: ResultRow, config: FacetConfig) -> str:
        value = escape(row.get(column, ""))
        href_column = config.link_columns.get(column)
        if href_column and row.get(href_column):
            href = escape(row[href_column], quote=True)
            return f'<a href="{href}">{value}</a>'
        return value

    def render(
        self,
        rows: Sequence[ResultRow],
        config: FacetConfig,
        params: RequestParameters,
    ) -> str:
        """
        Render the results table.

        Args:
            rows: Result rows for the current page
            config: Facet configuration
            params: Current request parameters (used for sort links)

        Returns:
            Table markup, or the no-results message in a paragraph when rows is empty
        """
        if not rows:
            return f"<p>{escape(config.no_results_message)}</p>\n"

        columns = self.table_columns(config, params)
        lines = [f'<table class="{TABLE_CLASS}">', "  <thead>", "    <tr>"]
        for column in columns:
            width = config.minimum_column_widths.get(column)
            style = f' style="min-width:{escape(width, quote=True)};"' if width else ""
            lines.append(f"      <th{style}>{self.header_label(column, config, params)}</th>")
        lines.extend(["    </tr>", "  </thead>", "  <tbody>"])
        for row in rows:
            lines.append("  <tr>")
            lines.extend(f"    <td>{self.cell(column, row, config)}</td>" for column in columns)
            lines.append("  </tr>")
        lines.extend(["  </tbody>", "</table>"])
        return "\n".join(lines) + "\n"
