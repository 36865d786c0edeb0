from __future__ import annotations

# Standard Library Imports
import logging
import sys
from pathlib import Path
from typing import Dict, List

# Third-Party Imports
import streamlit as st

# Add the 'src' directory to sys.path
_CURRENT_FILE_DIR = Path(__file__).resolve().parent
_SRC_DIR = _CURRENT_FILE_DIR.parent

if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

# Local Application Imports
from config.facet_config import FacetConfig, load_facet_config
from config.settings import Settings
from core.errors import ConfigError, QueryExecutionError
from search.executor import SearchExecutor
from ui.app import FacetSearchApp
from utils.logger_setup import setup_logging

ui_logger = logging.getLogger("singletablefacets.ui.search_page")
if not ui_logger.handlers:
    setup_logging("singletablefacets.ui.search_page", console_output=True)


@st.cache_resource
def get_facet_config() -> FacetConfig:
    """Load the facet configuration once per server process."""
    return load_facet_config()


@st.cache_resource
def get_stylesheet() -> str:
    stylesheet = Settings.ASSETS_DIR / "singletablefacets.css"
    return stylesheet.read_text(encoding="utf-8") if stylesheet.exists() else ""


def read_query_params() -> Dict[str, List[str]]:
    """Every query parameter as a list, so repeated facet keys survive."""
    return {key: st.query_params.get_all(key) for key in st.query_params.keys()}


def main() -> None:
    st.set_page_config(page_title="Search", layout="wide")

    try:
        config = get_facet_config()
    except ConfigError as e:
        ui_logger.error(f"Invalid facet configuration: {e}")
        st.error(f"The search is not configured correctly: {e}")
        st.stop()

    app = FacetSearchApp(
        config,
        read_query_params(),
        executor=SearchExecutor(config, logger_obj=ui_logger),
        logger_obj=ui_logger,
    )

    # Browsers ignore <link> tags inside markdown, so the stylesheet is inlined.
    css = get_stylesheet()
    if css:
        st.markdown(f"<style>{css}</style>", unsafe_allow_html=True)

    st.markdown(app.render_keyword_search(), unsafe_allow_html=True)

    try:
        app.query()
    except QueryExecutionError as e:
        ui_logger.error(f"Search failed ({e.category.value}): {e}")
        st.error("The search could not be completed. Please try again later.")
        return

    facets_col, results_col = st.columns([1, 3])
    with facets_col:
        st.markdown(app.render_facets(), unsafe_allow_html=True)
    with results_col:
        st.markdown(app.render_results(), unsafe_allow_html=True)
        st.markdown(app.render_pager(), unsafe_allow_html=True)


main()
