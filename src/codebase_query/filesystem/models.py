"""
Result and failure shapes returned to callers.
"""

from typing import Optional

from pydantic import BaseModel, Field

from codebase_query.filesystem.exceptions import IOFailureError, QueryError


class SearchMatch(BaseModel):
    """A single regex match, located by root-relative file and line."""

    model_config = {"frozen": True}

    file: str = Field(description="File path relative to the project root")
    line: int = Field(ge=1, description="1-based line number")
    content: str = Field(description="Matching line with surrounding whitespace trimmed")

    def __str__(self) -> str:
        return f"{self.file}:{self.line}: {self.content}"


class QueryFailure(BaseModel):
    """Structured failure handed back instead of raising."""

    success: bool = False
    error: str
    error_type: str
    path: Optional[str] = None
    raw_error: Optional[str] = None

    @classmethod
    def from_exception(cls, error: BaseException) -> "QueryFailure":
        """Build a failure from a query exception, keeping the low-level cause."""
        if isinstance(error, QueryError):
            cause = error.original if isinstance(error, IOFailureError) else error.__cause__
            return cls(
                error=str(error),
                error_type=error.error_type,
                path=getattr(error, "path", None),
                raw_error=repr(cause) if cause is not None else None,
            )
        return cls(
            error=f"Unexpected error: {error}",
            error_type=IOFailureError.error_type,
            raw_error=repr(error),
        )
