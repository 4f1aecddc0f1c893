"""
Sandboxed, ignore-aware filesystem queries.

This module provides read-only access to a single project root: listing,
whole-file and line-range reads, regex search and glob search, with path
containment enforced on every call and nested ignore files honored.
"""

from codebase_query.filesystem.config import QueryConfig
from codebase_query.filesystem.engine import QueryEngine
from codebase_query.filesystem.exceptions import (
    FileAccessDeniedError,
    FileSizeLimitExceededError,
    IgnoredPathError,
    InvalidArgumentError,
    InvalidPatternError,
    IOFailureError,
    OperationTimeoutError,
    QueryError,
)
from codebase_query.filesystem.globbing import compile_glob, expand_glob
from codebase_query.filesystem.guard import PathGuard, is_safe_path
from codebase_query.filesystem.ignore import (
    IgnoreIndex,
    IgnoreRule,
    RuleSet,
    discover,
    parse_ignore_file,
)
from codebase_query.filesystem.models import QueryFailure, SearchMatch
from codebase_query.filesystem.tools import QueryTools

__all__ = [
    "QueryConfig",
    "QueryEngine",
    "QueryTools",
    "PathGuard",
    "is_safe_path",
    "IgnoreIndex",
    "IgnoreRule",
    "RuleSet",
    "discover",
    "parse_ignore_file",
    "compile_glob",
    "expand_glob",
    "SearchMatch",
    "QueryFailure",
    "QueryError",
    "FileAccessDeniedError",
    "FileSizeLimitExceededError",
    "IgnoredPathError",
    "InvalidArgumentError",
    "InvalidPatternError",
    "IOFailureError",
    "OperationTimeoutError",
]
