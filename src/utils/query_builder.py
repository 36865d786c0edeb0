"""
Secure query building utilities with parameterized query support.

This module provides utilities for building SQL queries with proper parameter binding
to prevent SQL injection. User-supplied values always go through ``add_parameter``;
only identifiers that passed ``validate_identifier`` are written into the SQL text.
"""

from typing import Any, Dict, List, Optional, Sequence
import re

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# LIMIT and OFFSET are BIGINT in DuckDB.
MAX_OFFSET = 2**63 - 1


class SecureQueryBuilder:
    """Secure query builder with parameter binding support."""

    def __init__(self):
        self.params: Dict[str, Any] = {}
        self.param_counter: int = 0

    def next_param_name(self, base_name: str = "param") -> str:
        """Generate next parameter name."""
        self.param_counter += 1
        return f"{base_name}_{self.param_counter}"

    def add_parameter(self, value: Any, param_name: Optional[str] = None) -> str:
        """
        Add a parameter and return the parameter placeholder.

        Args:
            value: The parameter value
            param_name: Optional parameter name (auto-generated if not provided)

        Returns:
            Parameter placeholder string (e.g., "$param_1")
        """
        if param_name is None:
            param_name = self.next_param_name()

        self.params[param_name] = value
        return f"${param_name}"

    def build_in_any_column(
        self,
        columns: Sequence[str],
        values: Sequence[Any],
        base_name: str = "param",
    ) -> str:
        """
        Build ``(c1 IN (...) OR c2 IN (...))`` with one shared set of placeholders.

        Every value is bound once; the placeholder list is reused for each column.
        """
        if not columns:
            raise ValueError("At least one column is required")
        if not values:
            raise ValueError("Values list required for IN operator")

        placeholders = ", ".join(
            self.add_parameter(val, self.next_param_name(base_name)) for val in values
        )
        return or_conditions([f"{column} IN ({placeholders})" for column in columns])

    def build_secure_query(
        self,
        select_clause: str,
        from_clause: str,
        where_conditions: Optional[List[str]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> str:
        """
        Build a complete secure SQL query.

        Args:
            select_clause: SELECT clause
            from_clause: FROM clause
            where_conditions: List of WHERE conditions, AND'ed together
            order_by: ORDER BY clause
            limit: LIMIT value (bound as a parameter)
            offset: OFFSET value (bound as a parameter)

        Returns:
            Complete SQL query string
        """
        query_parts = [
            f"SELECT {select_clause}",
            f"FROM {from_clause}"
        ]

        if where_conditions:
            non_empty_conditions = [cond for cond in where_conditions if cond.strip() != "1=1"]
            if non_empty_conditions:
                query_parts.append(f"WHERE {' AND '.join(non_empty_conditions)}")

        if order_by:
            query_parts.append(f"ORDER BY {order_by}")

        if limit is not None:
            query_parts.append(f"LIMIT {self.add_parameter(limit, 'limit')}")

        if offset is not None:
            query_parts.append(f"OFFSET {self.add_parameter(offset, 'offset')}")

        return "\n".join(query_parts)

    def get_parameters(self) -> Dict[str, Any]:
        """Get all accumulated parameters."""
        return self.params.copy()


def or_conditions(conditions: Sequence[str]) -> str:
    """Join conditions with OR, parenthesized so they can be AND'ed safely."""
    if len(conditions) == 1:
        return conditions[0]
    return "(" + " OR ".join(conditions) + ")"


def and_conditions(conditions: Sequence[str]) -> str:
    """Join conditions with AND, parenthesized."""
    if len(conditions) == 1:
        return conditions[0]
    return "(" + " AND ".join(conditions) + ")"


def validate_identifier(identifier: str) -> str:
    """
    Validate a table or column name so it can be written into SQL text.

    Args:
        identifier: Table or column name to validate

    Returns:
        The identifier, unchanged

    Raises:
        ValueError: If the name is not a plain SQL identifier
    """
    if not isinstance(identifier, str) or not _IDENTIFIER_PATTERN.match(identifier):
        raise ValueError(f"Invalid column name: {identifier!r}")

    return identifier


def quote_identifier(identifier: str) -> str:
    """Validate and double-quote an identifier."""
    return f'"{validate_identifier(identifier)}"'


def as_text(identifier: str) -> str:
    """Column expression compared as text, so query-string values match any column type."""
    return f"CAST({quote_identifier(identifier)} AS VARCHAR)"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_pagination(page: int, page_size: int) -> tuple[int, int]:
    """
    Compute LIMIT and OFFSET for a 0-based page.

    Args:
        page: Page number (0-based)
        page_size: Number of records per page

    Returns:
        Tuple of (limit, offset)
    """
    if page < 0 or page_size <= 0 or page * page_size > MAX_OFFSET:
        raise ValueError("Invalid pagination parameters")

    return page_size, page * page_size
