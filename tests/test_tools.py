"""
Tests for the tool-calling interface.
"""

import asyncio

import pytest

from conftest import write
from codebase_query.filesystem import QueryConfig, QueryEngine, QueryTools


class TestQueryTools:
    """Test QueryTools."""

    def test_get_tool_schemas(self, query_tools):
        """Test getting OpenAI function schemas."""
        schemas = query_tools.get_tool_schemas()
        names = [s["function"]["name"] for s in schemas]

        assert names == ["ls", "readFile", "readFileLines", "grep", "glob"]
        grep = schemas[3]["function"]["parameters"]
        assert grep["required"] == ["pattern"]
        assert set(grep["properties"]) == {"pattern", "directory", "filePattern"}

    @pytest.mark.asyncio
    async def test_ls_tool(self, project, query_tools):
        """Test ls tool execution."""
        write(project, "file1.py")
        write(project, "file2.txt")

        result = await query_tools.execute_tool("ls", {"directory": "."})

        assert result["success"] is True
        assert result["files"] == ["file1.py", "file2.txt"]
        assert result["count"] == 2

    @pytest.mark.asyncio
    async def test_read_file_tool(self, project, query_tools):
        """Test readFile tool execution."""
        write(project, "test.py", "print('hello')")

        result = await query_tools.execute_tool("readFile", {"filePath": "test.py"})

        assert result["success"] is True
        assert result["content"] == "print('hello')"

    @pytest.mark.asyncio
    async def test_read_file_tool_denied(self, query_tools):
        """Test readFile with a path outside the root."""
        result = await query_tools.execute_tool(
            "readFile", {"filePath": "../../../etc/passwd"}
        )

        assert result["success"] is False
        assert result["error_type"] == "AccessDenied"
        assert "error" in result

    @pytest.mark.asyncio
    async def test_read_file_tool_ignored(self, project, engine, query_tools):
        """Test readFile on an ignored file."""
        write(project, ".gitignore", ".env\n")
        write(project, ".env", "SECRET=1")
        await engine.wait_ready()

        result = await query_tools.execute_tool("readFile", {"filePath": ".env"})

        assert result["success"] is False
        assert result["error_type"] == "Ignored"

    @pytest.mark.asyncio
    async def test_read_file_lines_tool(self, project, query_tools):
        """Test readFileLines tool execution."""
        write(project, "f.txt", "a\nb\nc")

        result = await query_tools.execute_tool(
            "readFileLines", {"filePath": "f.txt", "startLine": 2, "endLine": 4}
        )

        assert result["success"] is True
        assert result["content"] == "b\nc"

    @pytest.mark.asyncio
    async def test_grep_tool(self, project, query_tools):
        """Test grep tool execution with defaults."""
        write(project, "src/test.py", "def hello():\n    print('world')\n")

        result = await query_tools.execute_tool(
            "grep", {"pattern": "print", "directory": None}
        )

        assert result["success"] is True
        assert result["matches"] == [
            {"file": "src/test.py", "line": 2, "content": "print('world')"}
        ]

    @pytest.mark.asyncio
    async def test_grep_tool_bad_pattern(self, project, query_tools):
        """Test grep with a malformed regex."""
        result = await query_tools.execute_tool("grep", {"pattern": "[unclosed"})

        assert result["success"] is False
        assert result["error_type"] == "BadPattern"
        assert result["raw_error"] is not None

    @pytest.mark.asyncio
    async def test_glob_tool(self, project, query_tools):
        """Test glob tool execution."""
        write(project, "src/a.ts")
        write(project, "src/b.js")

        result = await query_tools.execute_tool(
            "glob", {"pattern": "**/*.ts", "directory": "src"}
        )

        assert result["success"] is True
        assert result["files"] == ["src/a.ts"]

    @pytest.mark.asyncio
    async def test_io_failure_keeps_raw_error(self, project, query_tools):
        """Test that I/O failures carry the low-level error."""
        write(project, "file.txt")

        result = await query_tools.execute_tool("ls", {"directory": "file.txt"})

        assert result["success"] is False
        assert result["error_type"] == "IOFailure"
        assert "NotADirectoryError" in result["raw_error"]

    @pytest.mark.asyncio
    async def test_missing_arguments(self, query_tools):
        """Test that missing arguments become a failure result."""
        result = await query_tools.execute_tool("readFileLines", {"filePath": "f.txt"})

        assert result["success"] is False
        assert result["error_type"] == "InvalidArgument"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, query_tools):
        """Test that unknown tools raise ValueError."""
        with pytest.raises(ValueError, match="Unknown tool"):
            await query_tools.execute_tool("writeFile", {})

    @pytest.mark.asyncio
    async def test_null_byte_path_denied(self, query_tools):
        """Test that a path with an embedded null byte is reported as denied."""
        result = await query_tools.execute_tool("readFile", {"filePath": "a\x00b"})

        assert result["success"] is False
        assert result["error_type"] == "AccessDenied"

    @pytest.mark.asyncio
    async def test_timeout_failure(self, project, monkeypatch):
        """Test that an operation past its deadline becomes a Timeout failure."""
        engine = QueryEngine(project, QueryConfig(operation_timeout_seconds=0.05))

        async def slow_list(directory):
            await asyncio.sleep(5)
            return []

        monkeypatch.setattr(engine, "_list_directory", slow_list)

        result = await QueryTools(engine).execute_tool("ls", {"directory": "."})

        assert result["success"] is False
        assert result["error_type"] == "Timeout"
        assert "list timed out" in result["error"]
