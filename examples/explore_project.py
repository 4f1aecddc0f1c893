"""
Example: Driving the query tools the way an agent loop would

Builds a QueryEngine over a project root, prints the tool schemas an LLM
would receive, then replays a short sequence of tool calls and prints
each result-or-failure dictionary.

Usage:
    python examples/explore_project.py /path/to/project
"""

import asyncio
import json
import sys

from codebase_query.filesystem import QueryEngine, QueryTools


async def main(root: str) -> None:
    engine = QueryEngine(root)
    tools = QueryTools(engine)

    print("Available tools:")
    for schema in tools.get_tool_schemas():
        print(f"  - {schema['function']['name']}: {schema['function']['description']}")

    # Queries issued now may see a partial rule set; wait for the full one
    await engine.wait_ready()

    calls = [
        ("ls", {"directory": "."}),
        ("glob", {"pattern": "**/*.py"}),
        ("grep", {"pattern": r"^\s*def main", "filePattern": "**/*.py"}),
        ("readFileLines", {"filePath": "README.md", "startLine": 1, "endLine": 5}),
        ("readFile", {"filePath": "../outside.txt"}),
    ]

    for tool_name, arguments in calls:
        result = await tools.execute_tool(tool_name, arguments)
        print(f"\n>>> {tool_name}({arguments})")
        print(json.dumps(result, indent=2)[:1500])


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "."))
