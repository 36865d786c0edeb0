"""Error types and categorization for facet search operations."""

from enum import Enum
from typing import Optional

import duckdb


class ErrorCategory(Enum):
    """Categories for storage errors raised while running a search."""
    CONNECTION = "connection"
    QUERY = "query"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


# Categories worth another attempt; everything else fails immediately.
TRANSIENT_CATEGORIES = frozenset({ErrorCategory.CONNECTION})


def categorize_error(exception: Exception) -> ErrorCategory:
    """Categorize a storage exception into error types for better handling."""
    if isinstance(exception, QueryExecutionError):
        return exception.category
    if isinstance(exception, TimeoutError):
        return ErrorCategory.TIMEOUT
    elif isinstance(exception, duckdb.InterruptException):
        return ErrorCategory.CANCELLED
    elif isinstance(exception, (duckdb.IOException, duckdb.ConnectionException)):
        return ErrorCategory.CONNECTION
    elif isinstance(
        exception,
        (
            duckdb.ParserException,
            duckdb.BinderException,
            duckdb.CatalogException,
            duckdb.ConversionException,
            duckdb.InvalidInputException,
        ),
    ):
        return ErrorCategory.QUERY
    else:
        return ErrorCategory.UNKNOWN


def is_transient(exception: Exception) -> bool:
    """Return True when the failed operation may succeed if retried."""
    return categorize_error(exception) in TRANSIENT_CATEGORIES


class ConfigError(Exception):
    """Raised when the facet configuration is missing or malformed."""


class InvalidParameterError(ValueError):
    """Raised when a request parameter cannot be coerced to its expected type."""

    def __init__(self, name: str, value: object, message: Optional[str] = None):
        self.name = name
        self.value = value
        super().__init__(message or f"Invalid value for parameter '{name}': {value!r}")


class UnknownColumnError(InvalidParameterError):
    """Raised when a facet or sort name does not resolve to a configured column."""

    def __init__(self, name: str):
        super().__init__(name, name, f"Unknown column: {name}")


class QueryExecutionError(Exception):
    """Raised when the storage backend fails to run a search query."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        sql: Optional[str] = None,
    ):
        self.message = message
        self.category = category
        self.sql = sql
        super().__init__(self.message)

    @classmethod
    def from_exception(cls, exception: Exception, sql: Optional[str] = None) -> "QueryExecutionError":
        """Wrap a storage exception, keeping its category."""
        if isinstance(exception, QueryExecutionError):
            return exception
        return cls(str(exception), categorize_error(exception), sql)
