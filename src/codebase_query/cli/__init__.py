"""
CLI module for codebase-query.

Provides a command-line interface to the sandboxed query operations.
"""

from codebase_query.cli.main import cli

__all__ = ["cli"]
