"""
CLI for codebase-query.

Runs the sandboxed query operations against a project root from the
command line. Output is rendered with rich; failures exit non-zero.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from codebase_query import __version__
from codebase_query.filesystem.config import QueryConfig
from codebase_query.filesystem.engine import QueryEngine
from codebase_query.filesystem.exceptions import QueryError
from codebase_query.filesystem.tools import QueryTools

# Load environment variables
load_dotenv()

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Setup rich logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def load_config(config_path: Optional[str]) -> QueryConfig:
    """Load config from a file if given, else from the environment."""
    if config_path:
        return QueryConfig.from_file(config_path)
    return QueryConfig.from_env()


async def _execute(
    root: str, config: QueryConfig, tool_name: str, arguments: dict[str, Any]
) -> dict[str, Any]:
    engine = QueryEngine(root, config)
    # One-shot commands see the complete rule set
    await engine.wait_ready()
    return await QueryTools(engine).execute_tool(tool_name, arguments)


def _run_tool(ctx: click.Context, tool_name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Execute a tool and exit with an error panel on failure."""
    try:
        result = asyncio.run(
            _execute(ctx.obj["root"], ctx.obj["config"], tool_name, arguments)
        )
    except QueryError as e:
        console.print(f"[bold red]{e.error_type}:[/bold red] {e}", markup=True)
        sys.exit(1)

    if ctx.obj["json"]:
        console.print_json(json.dumps(result))
        if not result["success"]:
            sys.exit(1)
        return result

    if not result["success"]:
        console.print(f"[bold red]{result['error_type']}:[/bold red] ", end="")
        console.print(result["error"], markup=False, highlight=False)
        sys.exit(1)
    return result


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--root",
    "-r",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Project root all queries are confined to",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML or JSON config file",
)
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON results")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, root: str, config_path: Optional[str], as_json: bool, verbose: bool):
    """Codebase Query CLI - sandboxed, ignore-aware project queries."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    ctx.obj["config"] = load_config(config_path)
    ctx.obj["json"] = as_json


@cli.command()
@click.argument("directory", default=".")
@click.pass_context
def ls(ctx, directory: str):
    """List entries in DIRECTORY (relative to the root)."""
    result = _run_tool(ctx, "ls", {"directory": directory})
    if ctx.obj["json"]:
        return
    for name in result["files"]:
        console.print(name, markup=False, highlight=False)


@cli.command()
@click.argument("file_path")
@click.pass_context
def read(ctx, file_path: str):
    """Print the contents of FILE_PATH."""
    result = _run_tool(ctx, "readFile", {"filePath": file_path})
    if not ctx.obj["json"]:
        console.print(result["content"], markup=False, highlight=False, end="")


@cli.command()
@click.argument("file_path")
@click.argument("start_line", type=int)
@click.argument("end_line", type=int)
@click.pass_context
def lines(ctx, file_path: str, start_line: int, end_line: int):
    """
    Print lines START_LINE to END_LINE of FILE_PATH (1-based, inclusive).

    Examples:

        codebase-query lines src/main.py 10 20
    """
    result = _run_tool(
        ctx,
        "readFileLines",
        {"filePath": file_path, "startLine": start_line, "endLine": end_line},
    )
    if not ctx.obj["json"]:
        console.print(result["content"], markup=False, highlight=False)


@cli.command()
@click.argument("pattern")
@click.option("--dir", "-d", "directory", default=".", help="Directory to search in")
@click.option(
    "--files", "-f", "file_pattern", default="**/*", help="Glob selecting files to search"
)
@click.pass_context
def grep(ctx, pattern: str, directory: str, file_pattern: str):
    """
    Search files for a regular expression PATTERN.

    Examples:

        codebase-query grep "def main"

        codebase-query grep "TODO|FIXME" -d src -f "**/*.py"
    """
    result = _run_tool(
        ctx,
        "grep",
        {"pattern": pattern, "directory": directory, "filePattern": file_pattern},
    )
    if ctx.obj["json"]:
        return

    if not result["matches"]:
        console.print("[yellow]No matches.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("File", style="cyan", no_wrap=True)
    table.add_column("Line", justify="right", style="green")
    table.add_column("Content")
    for match in result["matches"]:
        table.add_row(match["file"], str(match["line"]), match["content"])
    console.print(table)
    console.print(f"\n[dim]{result['count']} matches[/dim]")


@cli.command(name="glob")
@click.argument("pattern")
@click.option("--dir", "-d", "directory", default=".", help="Directory to search in")
@click.pass_context
def glob_command(ctx, pattern: str, directory: str):
    """Find files matching a glob PATTERN (e.g. "**/*.py")."""
    result = _run_tool(ctx, "glob", {"pattern": pattern, "directory": directory})
    if ctx.obj["json"]:
        return
    for path in result["files"]:
        console.print(path, markup=False, highlight=False)


@cli.command()
@click.pass_context
def tools(ctx):
    """Print the function-calling schemas as JSON."""
    engine = QueryEngine(ctx.obj["root"], ctx.obj["config"])
    console.print_json(json.dumps(QueryTools(engine).get_tool_schemas()))


if __name__ == "__main__":
    cli()
