"""
Per-request facade over parameter parsing, search execution and rendering.

One FacetSearchApp is created per request. The search runs once, on the first
render call that needs storage, and its result is shared by the remaining
render calls. Storage failures propagate as QueryExecutionError.
"""

import logging
import threading
from typing import Any, Mapping, Optional

from config.facet_config import FacetConfig
from config.settings import Settings
from search.executor import SearchExecutor
from search.parameters import ParameterStore
from search.types import RequestParameters, SearchResult
from ui.facets import FacetRenderer
from ui.pager import PagerRenderer
from ui.results_table import ResultRenderer
from ui.search_bar import SearchBar


class FacetSearchApp:
    """Renders the search page fragments for one request."""

    def __init__(
        self,
        config: FacetConfig,
        raw_params: Mapping[str, Any],
        executor: Optional[SearchExecutor] = None,
        logger_obj: Optional[logging.Logger] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.config = config
        self.logger = logger_obj or logging.getLogger(__name__)
        self.executor = executor or SearchExecutor(config, logger_obj=self.logger)
        self.params: RequestParameters = ParameterStore(config).parse(raw_params)
        self.cancel_event = cancel_event
        self._result: Optional[SearchResult] = None

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def query(self) -> SearchResult:
        """Run the search for this request, once."""
        if self._result is None:
            self._result = self.executor.search(self.params, self.cancel_event)
        return self._result

    def render_keyword_search(self) -> str:
        return SearchBar().render(self.config, self.params, self.base_url)

    def render_facets(self) -> str:
        return FacetRenderer(self.base_url).render(
            self.config, self.params, self.query().facet_counts
        )

    def render_results(self) -> str:
        return ResultRenderer(self.base_url).render(self.query().rows, self.config, self.params)

    def render_pager(self) -> str:
        return PagerRenderer(self.base_url).render(self.query().total_rows, self.config, self.params)

    @staticmethod
    def render_styles() -> str:
        return f'<link rel="stylesheet" href="{Settings.STYLESHEET_HREF}" />'

    @staticmethod
    def render_javascript() -> str:
        return f'<script type="text/javascript" src="{Settings.JAVASCRIPT_SRC}"></script>'
