"""
Exceptions for sandboxed filesystem queries.

Every exception carries a stable ``error_type`` so callers can tell a
security denial from a policy exclusion, an I/O fault or a bad pattern.
"""

from typing import Optional


class QueryError(Exception):
    """Base exception for query operations."""

    error_type = "QueryError"


class FileAccessDeniedError(QueryError):
    """Raised when a path is outside the project root or does not exist."""

    error_type = "AccessDenied"

    def __init__(self, path: str, reason: str = "Access denied"):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class IgnoredPathError(QueryError):
    """Raised when a path matches an ignore-file exclusion rule."""

    error_type = "Ignored"

    def __init__(self, path: str, ignore_filename: str = ".gitignore"):
        self.path = path
        super().__init__(f"File is ignored by {ignore_filename}: {path}")


class IOFailureError(QueryError):
    """Raised when a read or listing fails for reasons other than access."""

    error_type = "IOFailure"

    def __init__(self, path: str, error: BaseException, operation: str = "read"):
        self.path = path
        self.original = error
        self.operation = operation
        super().__init__(f"Failed to {operation} {path}: {error}")


class InvalidPatternError(QueryError):
    """Raised when a regex or glob pattern cannot be compiled."""

    error_type = "BadPattern"

    def __init__(self, pattern: str, reason: str = "Invalid pattern"):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"{reason}: {pattern!r}")


class FileSizeLimitExceededError(QueryError):
    """Raised when a file exceeds the size limit."""

    error_type = "FileTooLarge"

    def __init__(self, path: str, size: int, limit: int):
        self.path = path
        self.size = size
        self.limit = limit
        super().__init__(f"File too large ({size} bytes > {limit} bytes): {path}")


class InvalidArgumentError(QueryError):
    """Raised when operation arguments are malformed (e.g. a bad line range)."""

    error_type = "InvalidArgument"


class OperationTimeoutError(QueryError):
    """Raised when an operation exceeds its configured deadline."""

    error_type = "Timeout"

    def __init__(self, operation: str, timeout: Optional[float]):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout} seconds")
