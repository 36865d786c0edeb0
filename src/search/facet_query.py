"""
Facet query building.

Builds the parameterized SELECT for one search request over the configured
table. Conditions are only ever added, never removed, and the final WHERE is
the AND of:

1. the keyword clause (boolean-mode terms matched against the keyword columns),
2. one OR-group per selected facet, over the facet column and its alias
   ("additional values") columns,
3. a non-empty check for every required column.

Table and column names come from the validated FacetConfig and are quoted into
the SQL text; every request value is bound as a ``$name`` parameter. Nothing
here touches storage.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from config.facet_config import FacetConfig
from core.errors import UnknownColumnError
from search.types import BuiltQuery, RequestParameters, keyword_search_active
from utils.keywords import KeywordTerm
from utils.query_builder import (
    SecureQueryBuilder,
    and_conditions,
    as_text,
    build_pagination,
    escape_like,
    or_conditions,
    quote_identifier,
)

logger = logging.getLogger(__name__)


@dataclass
class KeywordClause:
    """WHERE conditions and relevance expression for a keyword search."""
    conditions: List[str]
    relevance: str


class FacetQueryBuilder:
    """Builds main, total and filter queries for one FacetConfig."""

    def __init__(self, config: FacetConfig, logger_obj: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger_obj or logger
        self.table = quote_identifier(config.table_name)

    # ------------------------------------------------------------------ clauses
    def _keyword_text(self, column: str) -> str:
        return f"COALESCE({as_text(column)}, '')"

    def _term_match(self, builder: SecureQueryBuilder, term: KeywordTerm) -> str:
        placeholder = builder.add_parameter(
            f"%{escape_like(term.text)}%", builder.next_param_name("keyword")
        )
        return or_conditions(
            [
                f"{self._keyword_text(column)} ILIKE {placeholder} ESCAPE '\\'"
                for column in self.config.keyword_columns
            ]
        )

    def keyword_clause(
        self,
        builder: SecureQueryBuilder,
        params: RequestParameters,
        with_relevance: bool = True,
    ) -> Optional[KeywordClause]:
        """
        Build the keyword conditions, or None when no keyword search is active.

        ``+term`` is required, ``-term`` is excluded and bare terms are optional;
        when no term is required at least one optional term has to match. The
        relevance score is the number of positive terms a row matches. A search
        made only of exclusions matches no rows.

        Without relevance, optional terms that cannot change the row set are not
        bound at all, since DuckDB rejects parameters the SQL never references.
        """
        if params.keyword_terms and not self.config.keyword_columns:
            self.logger.warning("Keywords given but no keyword columns are configured; ignoring them")
        if not keyword_search_active(self.config, params):
            return None

        terms = params.keyword_terms
        if all(term.excluded for term in terms):
            # Only exclusions: there is nothing to search for, so nothing matches.
            return KeywordClause(conditions=["FALSE"], relevance="(0)")

        has_required = any(t.required for t in terms)
        conditions: List[str] = []
        optional: List[str] = []
        scored: List[str] = []
        for term in terms:
            if has_required and not with_relevance and not (term.required or term.excluded):
                continue
            match = self._term_match(builder, term)
            if term.excluded:
                conditions.append(f"NOT {match}")
                continue
            scored.append(f"CASE WHEN {match} THEN 1 ELSE 0 END")
            if term.required:
                conditions.append(match)
            else:
                optional.append(match)

        if optional and not has_required:
            conditions.append(or_conditions(optional))

        relevance = " + ".join(scored) if scored else "0"
        return KeywordClause(conditions=conditions, relevance=f"({relevance})")

    def columns_for_facet(self, facet: str) -> List[str]:
        """The facet column followed by every alias column mapped onto it."""
        if not self.config.is_facet(facet):
            raise UnknownColumnError(facet)
        return [facet, *self.config.aliases_for(facet)]

    def facet_conditions(
        self,
        builder: SecureQueryBuilder,
        params: RequestParameters,
        exclude_facet: Optional[str] = None,
    ) -> List[str]:
        """One OR-group per selected facet, in configuration order."""
        conditions = []
        for facet in params.facet_selections:
            if not self.config.is_facet(facet):
                # Fail closed: request data that slipped past the allow-list is never used.
                self.logger.warning(f"Dropping selection for unknown facet column '{facet}'")

        for facet in self.config.facet_names:
            values = params.selected(facet)
            if not values or facet == exclude_facet:
                continue
            columns = self.columns_for_facet(facet)
            conditions.append(
                builder.build_in_any_column(
                    [as_text(column) for column in columns], values, base_name="facet"
                )
            )
        return conditions

    def required_conditions(self) -> List[str]:
        return [
            and_conditions([f"{quote_identifier(column)} IS NOT NULL", f"{as_text(column)} <> ''"])
            for column in self.config.required_columns
        ]

    def build_where(
        self,
        builder: SecureQueryBuilder,
        params: RequestParameters,
        exclude_facet: Optional[str] = None,
        with_relevance: bool = False,
    ) -> Tuple[List[str], Optional[KeywordClause]]:
        """
        Collect every WHERE condition for the request.

        Args:
            builder: Builder that receives the bound values
            params: Validated request parameters
            exclude_facet: Facet whose own selection is left out (used for counts)
            with_relevance: Whether the caller selects the keyword relevance score

        Returns:
            Tuple of (conditions, keyword clause or None)
        """
        conditions: List[str] = []
        keyword = self.keyword_clause(builder, params, with_relevance)
        if keyword:
            conditions.extend(keyword.conditions)
        conditions.extend(self.facet_conditions(builder, params, exclude_facet))
        conditions.extend(self.required_conditions())
        return conditions, keyword

    def order_by(self, params: RequestParameters, relevance_active: bool) -> Optional[str]:
        """Explicit sortable column first; relevance DESC when searching by keyword."""
        column = params.sort_column
        if column and not self.config.is_sortable(column):
            self.logger.warning(f"Ignoring sort on unknown column '{column}'")
            column = None
        if column == self.config.relevance_column and not relevance_active:
            column = None

        if column:
            direction = params.sort_direction or self.config.default_direction(column)
            return f"{quote_identifier(column)} {direction.value}"
        if relevance_active:
            return f"{quote_identifier(self.config.relevance_column)} DESC"
        return None

    # ------------------------------------------------------------------ queries
    def build(self, params: RequestParameters) -> BuiltQuery:
        """Build the paginated result query."""
        builder = SecureQueryBuilder()
        conditions, keyword = self.build_where(builder, params, with_relevance=True)

        select_clause = "*"
        if keyword:
            select_clause = f"*, {keyword.relevance} AS {quote_identifier(self.config.relevance_column)}"

        limit, offset = build_pagination(params.page, self.config.page_size)
        sql = builder.build_secure_query(
            select_clause=select_clause,
            from_clause=self.table,
            where_conditions=conditions,
            order_by=self.order_by(params, keyword is not None),
            limit=limit,
            offset=offset,
        )
        self.logger.debug(f"Built result query: {sql}")
        return BuiltQuery(sql=sql, params=builder.get_parameters())

    def build_total(self, params: RequestParameters) -> BuiltQuery:
        """Build the query counting every row that matches the request."""
        builder = SecureQueryBuilder()
        conditions, _ = self.build_where(builder, params)
        sql = builder.build_secure_query(
            select_clause="COUNT(*) AS total",
            from_clause=self.table,
            where_conditions=conditions,
        )
        return BuiltQuery(sql=sql, params=builder.get_parameters())


def build(config: FacetConfig, params: RequestParameters) -> BuiltQuery:
    """Build the paginated result query for a request."""
    return FacetQueryBuilder(config).build(params)
