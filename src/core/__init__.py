"""Core error types and dependency wiring.

Import ``DependencyContainer`` from ``core.dependencies``; it pulls in the
whole search stack and is kept out of the package namespace.
"""

from .errors import (
    ConfigError,
    ErrorCategory,
    InvalidParameterError,
    QueryExecutionError,
    UnknownColumnError,
)

__all__ = [
    "ConfigError",
    "ErrorCategory",
    "InvalidParameterError",
    "QueryExecutionError",
    "UnknownColumnError",
]
