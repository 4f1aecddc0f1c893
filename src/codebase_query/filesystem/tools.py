"""
Tool-calling interface over the query engine.

Exposes the five read-only operations as OpenAI-style function schemas
and executes calls by name, always answering with a result-or-failure
dictionary.
"""

import logging
from typing import Any

from codebase_query.filesystem.engine import QueryEngine
from codebase_query.filesystem.exceptions import InvalidArgumentError, QueryError
from codebase_query.filesystem.models import QueryFailure

logger = logging.getLogger(__name__)


def _schema(name: str, description: str, properties: dict, required: list[str]) -> dict:
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required,
            },
        },
    }


class QueryTools:
    """
    Function-calling front end for a QueryEngine.

    Usage:
        engine = QueryEngine("/srv/project")
        tools = QueryTools(engine)

        # Get tool schemas for the LLM
        schemas = tools.get_tool_schemas()

        # Execute a tool call
        result = await tools.execute_tool("readFile", {"filePath": "src/main.py"})
        if not result["success"]:
            print(result["error_type"], result["error"])
    """

    def __init__(self, engine: QueryEngine):
        self.engine = engine
        self._handlers = {
            "ls": self._ls,
            "readFile": self._read_file,
            "readFileLines": self._read_file_lines,
            "grep": self._grep,
            "glob": self._glob,
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers)

    def get_tool_schemas(self) -> list[dict[str, Any]]:
        """
        Get OpenAI function calling schemas for all available tools.

        Returns:
            List of tool schemas in OpenAI format
        """
        directory = {
            "type": "string",
            "description": "The directory to search in (defaults to project root).",
        }
        file_path = {"type": "string", "description": "The path to the file to read."}
        return [
            _schema(
                "ls",
                "List files and directories in a given path.",
                {"directory": {"type": "string", "description": "The directory to list."}},
                ["directory"],
            ),
            _schema(
                "readFile",
                "Read the contents of a file.",
                {"filePath": file_path},
                ["filePath"],
            ),
            _schema(
                "readFileLines",
                "Read specific lines from a file.",
                {
                    "filePath": file_path,
                    "startLine": {
                        "type": "integer",
                        "minimum": 1,
                        "description": "The starting line number (1-indexed).",
                    },
                    "endLine": {
                        "type": "integer",
                        "minimum": 1,
                        "description": "The ending line number (1-indexed, inclusive).",
                    },
                },
                ["filePath", "startLine", "endLine"],
            ),
            _schema(
                "grep",
                "Search for a pattern in files using regex.",
                {
                    "pattern": {
                        "type": "string",
                        "description": "The regex pattern to search for.",
                    },
                    "directory": directory,
                    "filePattern": {
                        "type": "string",
                        "description": 'File pattern to filter (e.g., "**/*.ts").',
                    },
                },
                ["pattern"],
            ),
            _schema(
                "glob",
                "Find files matching a glob pattern.",
                {
                    "pattern": {
                        "type": "string",
                        "description": 'The glob pattern to match (e.g., "**/*.ts").',
                    },
                    "directory": directory,
                },
                ["pattern"],
            ),
        ]

    async def execute_tool(self, tool_name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """
        Execute a tool call.

        Args:
            tool_name: Name of the tool to execute
            arguments: Tool arguments (from the function call)

        Returns:
            ``{"success": True, ...}`` or a serialized QueryFailure

        Raises:
            ValueError: If tool name is unknown
        """
        handler = self._handlers.get(tool_name)
        if handler is None:
            raise ValueError(f"Unknown tool: {tool_name}")

        # Optional arguments sent as null fall back to their defaults
        arguments = {key: value for key, value in arguments.items() if value is not None}

        try:
            result = await handler(**arguments)
        except (TypeError, ValueError) as e:
            error = InvalidArgumentError(f"Invalid arguments for {tool_name}: {e}")
            logger.warning(f"{tool_name} failed: {error}")
            return QueryFailure.from_exception(error).model_dump()
        except QueryError as e:
            logger.warning(f"{tool_name} failed for {arguments}: {e}")
            return QueryFailure.from_exception(e).model_dump()
        except Exception as e:
            logger.error(f"{tool_name} unexpected error for {arguments}: {e}")
            return QueryFailure.from_exception(e).model_dump()

        return {"success": True, **result}

    async def _ls(self, directory: str = ".") -> dict[str, Any]:
        files = await self.engine.list_directory(directory)
        return {"directory": directory, "files": files, "count": len(files)}

    async def _read_file(self, filePath: str) -> dict[str, Any]:
        content = await self.engine.read_file(filePath)
        return {"path": filePath, "content": content, "size": len(content)}

    async def _read_file_lines(
        self, filePath: str, startLine: int, endLine: int
    ) -> dict[str, Any]:
        content = await self.engine.read_file_lines(filePath, int(startLine), int(endLine))
        return {"path": filePath, "content": content}

    async def _grep(
        self, pattern: str, directory: str = ".", filePattern: str = "**/*"
    ) -> dict[str, Any]:
        matches = await self.engine.search_pattern(pattern, directory, filePattern)
        return {
            "pattern": pattern,
            "directory": directory,
            "matches": [match.model_dump() for match in matches],
            "count": len(matches),
        }

    async def _glob(self, pattern: str, directory: str = ".") -> dict[str, Any]:
        files = await self.engine.search_glob(pattern, directory)
        return {
            "pattern": pattern,
            "directory": directory,
            "files": files,
            "count": len(files),
        }
