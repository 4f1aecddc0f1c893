"""
Configuration for sandboxed filesystem queries.
"""

import json
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator


class QueryConfig(BaseModel):
    """
    Configuration for the query engine.

    Controls which ignore files are honored, which directories are pruned
    during ignore-file discovery, and the limits applied to reads and
    searches.

    Example:
        ```python
        config = QueryConfig(
            max_file_size_bytes=1_000_000,
            operation_timeout_seconds=10.0,
        )

        # Load from file
        config = QueryConfig.from_file("~/.codebase-query.yaml")
        ```
    """

    model_config = {"extra": "forbid"}

    ignore_filename: str = Field(
        default=".gitignore",
        description="Name of the per-directory ignore file",
    )

    vendor_directory: str = Field(
        default="node_modules",
        description="Dependency directory never descended into during ignore-file discovery",
    )

    max_file_size_bytes: int = Field(
        default=10_000_000,  # 10 MB
        ge=0,
        description="Maximum file size that can be read (bytes)",
    )

    max_search_results: int = Field(
        default=1000,
        ge=1,
        le=100_000,
        description="Maximum number of matches or paths returned by a search",
    )

    operation_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0.0,
        le=600.0,
        description="Deadline for a single operation (None = no deadline)",
    )

    encoding: str = Field(
        default="utf-8",
        description="Text encoding used for reads",
    )

    @field_validator("ignore_filename", "vendor_directory")
    @classmethod
    def plain_name(cls, v: str) -> str:
        """Names must be a single path segment."""
        if not v or "/" in v or "\\" in v:
            raise ValueError(f"Expected a plain file or directory name, got {v!r}")
        return v

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "QueryConfig":
        """
        Load configuration from a YAML or JSON file.

        File format (YAML):
            ```yaml
            ignore_filename: .gitignore
            max_file_size_bytes: 1000000
            max_search_results: 500
            operation_timeout_seconds: 15
            ```

        Args:
            path: Path to configuration file

        Returns:
            Loaded QueryConfig instance

        Raises:
            FileNotFoundError: If the config file doesn't exist
        """
        path = Path(path).expanduser().resolve()

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text()

        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        elif path.suffix == ".json":
            data = json.loads(content)
        else:
            # Try YAML first, then JSON
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError:
                data = json.loads(content)

        return cls(**(data or {}))

    @classmethod
    def from_env(cls, prefix: str = "CODEBASE_QUERY_") -> "QueryConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            CODEBASE_QUERY_IGNORE_FILENAME - Ignore file name
            CODEBASE_QUERY_VENDOR_DIRECTORY - Directory pruned during discovery
            CODEBASE_QUERY_MAX_FILE_SIZE_BYTES - Read size limit
            CODEBASE_QUERY_MAX_SEARCH_RESULTS - Search result cap
            CODEBASE_QUERY_OPERATION_TIMEOUT_SECONDS - Per-operation deadline
            CODEBASE_QUERY_ENCODING - Text encoding

        Unset variables keep their defaults.
        """
        data = {}
        for name in cls.model_fields:
            value = os.environ.get(f"{prefix}{name.upper()}")
            if value is not None and value != "":
                data[name] = value
        return cls(**data)
