"""
Codebase Query - sandboxed filesystem tools for research agents.

This package provides read-only, ignore-aware query operations (list,
read, read lines, grep, glob) confined to a single project root, ready to
be exposed to an LLM through function calling.
"""

__version__ = "0.1.0"

from codebase_query.filesystem import (
    FileAccessDeniedError,
    FileSizeLimitExceededError,
    IgnoredPathError,
    InvalidArgumentError,
    InvalidPatternError,
    IOFailureError,
    OperationTimeoutError,
    PathGuard,
    QueryConfig,
    QueryEngine,
    QueryError,
    QueryFailure,
    QueryTools,
    SearchMatch,
    is_safe_path,
)

__all__ = [
    # Version
    "__version__",
    # Engine
    "QueryConfig",
    "QueryEngine",
    "QueryTools",
    "PathGuard",
    "is_safe_path",
    # Results
    "SearchMatch",
    "QueryFailure",
    # Errors
    "QueryError",
    "FileAccessDeniedError",
    "FileSizeLimitExceededError",
    "IgnoredPathError",
    "InvalidArgumentError",
    "InvalidPatternError",
    "IOFailureError",
    "OperationTimeoutError",
]
