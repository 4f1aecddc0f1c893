"""
Shared fixtures for codebase-query tests.
"""

import tempfile
from pathlib import Path

import pytest

from codebase_query.filesystem import QueryConfig, QueryEngine, QueryTools


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def project(temp_dir):
    """Create a project root inside the temporary directory."""
    root = temp_dir / "project"
    root.mkdir()
    return root


def write(root: Path, relative: str, content: str = "") -> Path:
    """Write a file below root, creating parent directories."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


@pytest.fixture
def config():
    """Create a test query configuration."""
    return QueryConfig(max_file_size_bytes=1000, max_search_results=10)


@pytest.fixture
def engine(project, config):
    """Create a QueryEngine over the project root (discovery not yet run)."""
    return QueryEngine(project, config)


@pytest.fixture
def query_tools(engine):
    """Create a QueryTools instance."""
    return QueryTools(engine)
