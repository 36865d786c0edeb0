"""
Facet value counts.

For each facet column the counts are computed with every active filter applied
except the facet's own selection, so the UI can show how many results each
other option of that facet would give. Values stored in alias columns count
too; a row contributes once per distinct value across the facet column and its
aliases.
"""

import logging
from typing import List, Optional

import duckdb
import pandas as pd

from config.facet_config import FacetConfig
from core.errors import QueryExecutionError
from search.facet_query import FacetQueryBuilder
from search.types import BuiltQuery, FacetCountEntry, RequestParameters
from utils.query_builder import SecureQueryBuilder, as_text

logger = logging.getLogger(__name__)

VALUE_COLUMN = "facet_value"
COUNT_COLUMN = "row_count"


class FacetCounter:
    """Builds and evaluates the per-facet count queries for a request."""

    def __init__(self, config: FacetConfig, logger_obj: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger_obj or logger
        self.query_builder = FacetQueryBuilder(config, self.logger)

    def build(self, params: RequestParameters, facet_column: str) -> BuiltQuery:
        """
        Build the GROUP BY query counting rows per value of one facet.

        Args:
            params: Validated request parameters
            facet_column: Facet to count; its own selection is ignored

        Returns:
            BuiltQuery returning ``facet_value`` and ``row_count`` columns

        Raises:
            UnknownColumnError: If facet_column is not a configured facet
        """
        columns = self.query_builder.columns_for_facet(facet_column)
        builder = SecureQueryBuilder()
        conditions, _ = self.query_builder.build_where(
            builder, params, exclude_facet=facet_column
        )
        where_sql = f"\nWHERE {' AND '.join(conditions)}" if conditions else ""

        if len(columns) == 1:
            value_sql = f"SELECT {as_text(facet_column)} AS {VALUE_COLUMN}"
        else:
            # list_distinct drops NULLs and repeated values within a row.
            values_list = ", ".join(as_text(column) for column in columns)
            value_sql = f"SELECT UNNEST(list_distinct([{values_list}])) AS {VALUE_COLUMN}"

        limit = builder.add_parameter(self.config.facet_item_limit, "limit")
        sql = (
            f"SELECT {VALUE_COLUMN}, COUNT(*) AS {COUNT_COLUMN}\n"
            f"FROM ({value_sql}\nFROM {self.query_builder.table}{where_sql}) AS facet_values\n"
            f"WHERE {VALUE_COLUMN} IS NOT NULL AND {VALUE_COLUMN} <> ''\n"
            f"GROUP BY {VALUE_COLUMN}\n"
            f"ORDER BY {COUNT_COLUMN} DESC, {VALUE_COLUMN} ASC\n"
            f"LIMIT {limit}"
        )
        self.logger.debug(f"Built count query for facet '{facet_column}': {sql}")
        return BuiltQuery(sql=sql, params=builder.get_parameters())

    @staticmethod
    def entries_from_frame(facet_column: str, frame: pd.DataFrame) -> List[FacetCountEntry]:
        """Convert a count query result into FacetCountEntry values."""
        if frame is None or frame.empty:
            return []
        return [
            FacetCountEntry(facet_column=facet_column, value=str(value), count=int(count))
            for value, count in zip(frame[VALUE_COLUMN], frame[COUNT_COLUMN])
        ]

    def counts_for(
        self,
        conn: duckdb.DuckDBPyConnection,
        params: RequestParameters,
        facet_column: str,
    ) -> List[FacetCountEntry]:
        """Run the count query for one facet on an open connection."""
        query = self.build(params, facet_column)
        try:
            frame = conn.execute(query.sql, query.bound_parameters()).df()
        except duckdb.Error as e:
            raise QueryExecutionError.from_exception(e, query.sql) from e
        return self.entries_from_frame(facet_column, frame)


def counts_for(
    config: FacetConfig,
    params: RequestParameters,
    facet_column: str,
    conn: duckdb.DuckDBPyConnection,
) -> List[FacetCountEntry]:
    """Count matching rows per value of facet_column, ignoring its own selection."""
    return FacetCounter(config).counts_for(conn, params, facet_column)
