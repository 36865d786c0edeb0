"""Configuration management for single-table facet search."""

from .facet_config import FacetConfig, SortDirection, config_from_mapping, load_facet_config
from .settings import Settings

__all__ = ["Settings", "FacetConfig", "SortDirection", "config_from_mapping", "load_facet_config"]
