"""
Read-only query operations over a single project root.
"""

import asyncio
import logging
import os
import re
from collections.abc import Awaitable
from pathlib import Path
from typing import Optional, TypeVar, Union

from codebase_query.filesystem.config import QueryConfig
from codebase_query.filesystem.exceptions import (
    FileAccessDeniedError,
    FileSizeLimitExceededError,
    IgnoredPathError,
    InvalidArgumentError,
    InvalidPatternError,
    IOFailureError,
    OperationTimeoutError,
)
from codebase_query.filesystem.globbing import expand_glob
from codebase_query.filesystem.guard import PathGuard
from codebase_query.filesystem.ignore import IgnoreIndex, RuleSet, normalize_relative
from codebase_query.filesystem.models import SearchMatch

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _split_lines(content: str) -> list[str]:
    """Split on newlines; a trailing newline does not start an extra line."""
    lines = content.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def _scan_entries(directory: Path) -> list[tuple[str, bool]]:
    """Entry names with a no-follow directory flag."""
    with os.scandir(directory) as it:
        return [(entry.name, entry.is_dir(follow_symlinks=False)) for entry in it]


class QueryEngine:
    """
    Sandboxed, ignore-aware queries against a project root.

    Every path argument is interpreted relative to the root and must
    resolve at or below it. Every path in a result is relative to the root.
    Ignore-file discovery starts in the background as soon as the engine is
    built inside a running event loop (or on the first operation otherwise)
    and is not awaited by queries.

    Usage:
        engine = QueryEngine("/srv/project")
        await engine.wait_ready()  # optional

        names = await engine.list_directory("src")
        text = await engine.read_file("src/main.py")
        matches = await engine.search_pattern(r"def \\w+", "src", "**/*.py")
    """

    def __init__(self, root: Union[str, Path], config: Optional[QueryConfig] = None):
        """
        Initialize the engine.

        Args:
            root: Project root directory
            config: Query configuration (defaults apply when omitted)

        Raises:
            FileAccessDeniedError: If the root is not an existing directory
        """
        self.config = config or QueryConfig()
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise FileAccessDeniedError(str(root), "Project root is not a directory")

        self.guard = PathGuard(self.root)
        self.ignore_index = IgnoreIndex(self.root, self.config)
        self.ignore_index.start()

    @property
    def rules(self) -> RuleSet:
        return self.ignore_index.rules

    async def wait_ready(self) -> RuleSet:
        """Wait until ignore-file discovery has finished."""
        return await self.ignore_index.wait_ready()

    async def list_directory(self, directory: str = ".") -> list[str]:
        """
        List entry names in a directory, dropping excluded entries.

        Raises:
            FileAccessDeniedError: If the directory is outside the root or missing
            IOFailureError: If the directory cannot be listed
        """
        return await self._run("list", self._list_directory(directory))

    async def read_file(self, file_path: str) -> str:
        """
        Read a whole file.

        The exclusion check runs on the raw argument before any filesystem
        access, so an ignored file is reported as ignored even if missing.

        Raises:
            IgnoredPathError: If the path matches an ignore rule
            FileAccessDeniedError: If the path is outside the root or missing
            FileSizeLimitExceededError: If the file is too large
            IOFailureError: If the file cannot be read
        """
        return await self._run("readFile", self._read_file(file_path))

    async def read_file_lines(
        self, file_path: str, start_line: int, end_line: int
    ) -> str:
        """
        Read the inclusive, 1-based line range ``[start_line, end_line]``.

        Ranges running past the end of the file are clamped.

        Raises:
            InvalidArgumentError: If start_line < 1 or end_line < start_line
            (plus everything ``read_file`` raises)
        """
        if start_line < 1 or end_line < start_line:
            raise InvalidArgumentError(
                f"Invalid line range {start_line}-{end_line}: "
                "startLine must be >= 1 and endLine >= startLine"
            )
        content = await self._run("readFileLines", self._read_file(file_path))
        lines = _split_lines(content)
        return "\n".join(lines[start_line - 1 : end_line])

    async def search_pattern(
        self,
        pattern: str,
        directory: str = ".",
        file_pattern: str = "**/*",
        case_sensitive: bool = True,
    ) -> list[SearchMatch]:
        """
        Search file contents for a regular expression.

        Args:
            pattern: Regular expression, tested against each line
            directory: Directory to search in (relative to the root)
            file_pattern: Glob selecting files, relative to ``directory``
            case_sensitive: Whether matching is case-sensitive

        Returns:
            Matches in file then line order, capped at ``max_search_results``

        Raises:
            InvalidPatternError: If the regex or glob does not compile
            FileAccessDeniedError: If the directory is outside the root or missing
        """
        return await self._run(
            "grep",
            self._search_pattern(pattern, directory, file_pattern, case_sensitive),
        )

    async def search_glob(self, pattern: str, directory: str = ".") -> list[str]:
        """
        Find files matching a glob.

        Returns:
            Sorted root-relative file paths, capped at ``max_search_results``

        Raises:
            InvalidPatternError: If the glob does not parse
            FileAccessDeniedError: If the directory is outside the root or missing
        """
        return await self._run("glob", self._search_glob(pattern, directory))

    async def _run(self, operation: str, coro: Awaitable[T]) -> T:
        """Run an operation under the configured deadline, if any."""
        self.ignore_index.start()
        timeout = self.config.operation_timeout_seconds
        if timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"{operation} timed out after {timeout}s")
            raise OperationTimeoutError(operation, timeout)

    def _relative(self, path: str) -> str:
        """Root-relative POSIX form of a path argument, without touching disk."""
        candidate = Path(path)
        if candidate.is_absolute():
            # Paths outside the root come back as "../..." and never match a rule
            return normalize_relative(os.path.relpath(candidate, self.root))
        return normalize_relative(candidate.as_posix())

    def _join(self, directory: str, name: str) -> str:
        return f"{directory}/{name}" if directory else name

    def _entry_excluded(self, relative: str, is_dir: bool) -> bool:
        # Directory-only rules such as "build/" need the trailing slash
        return self.ignore_index.is_excluded(relative + "/" if is_dir else relative)

    async def _list_directory(self, directory: str) -> list[str]:
        logger.debug(f"list called for directory: {directory}")
        target = self.guard.resolve(directory)
        relative_dir = self._relative(directory)

        try:
            scanned = await asyncio.to_thread(_scan_entries, target)
        except OSError as e:
            logger.error(f"list failed for directory {directory}: {e}")
            raise IOFailureError(directory, e, operation="list") from e

        entries = sorted(
            name
            for name, is_dir in scanned
            if not self._entry_excluded(self._join(relative_dir, name), is_dir)
        )
        logger.info(f"list found {len(entries)} entries in {directory}")
        return entries

    async def _read_file(self, file_path: str) -> str:
        if self.ignore_index.is_excluded(self._relative(file_path)):
            logger.info(f"read ignored by {self.config.ignore_filename}: {file_path}")
            raise IgnoredPathError(file_path, self.config.ignore_filename)

        target = self.guard.resolve(file_path)

        try:
            content = await asyncio.to_thread(
                self._read_text, target, self.config.max_file_size_bytes
            )
        except FileSizeLimitExceededError as e:
            logger.warning(
                f"File too large: {file_path} ({e.size} bytes > {e.limit} bytes)"
            )
            raise FileSizeLimitExceededError(file_path, e.size, e.limit) from e
        except OSError as e:
            logger.error(f"read failed for {file_path}: {e}")
            raise IOFailureError(file_path, e) from e

        logger.debug(f"Read {file_path} ({len(content)} characters)")
        return content

    def _read_text(self, path: Path, max_size: Optional[int] = None) -> str:
        with open(path, "r", encoding=self.config.encoding, errors="replace", newline="") as f:
            if max_size is not None:
                size = os.fstat(f.fileno()).st_size
                if size > max_size:
                    raise FileSizeLimitExceededError(str(path), size, max_size)
            return f.read()

    def _compile_regex(self, pattern: str, case_sensitive: bool) -> re.Pattern:
        flags = 0 if case_sensitive else re.IGNORECASE
        try:
            return re.compile(pattern, flags)
        except re.error as e:
            raise InvalidPatternError(pattern, f"Invalid regex pattern: {e}") from e

    async def _expand(self, directory: str, pattern: str) -> list[str]:
        """Expand a glob in a directory; returns root-relative survivors."""
        search_dir = self.guard.resolve(directory)
        if not search_dir.is_dir():
            raise FileAccessDeniedError(directory, "Path is not a directory")

        relative_dir = search_dir.relative_to(self.root).as_posix()
        relative_dir = "" if relative_dir == "." else relative_dir

        try:
            candidates = await asyncio.to_thread(
                expand_glob,
                self.root,
                search_dir,
                pattern,
                self.config.ignore_filename,
            )
        except OSError as e:
            raise IOFailureError(directory, e, operation="search") from e

        survivors = []
        for candidate in candidates:
            relative = self._join(relative_dir, candidate)
            if self.ignore_index.is_excluded(relative):
                continue
            # Symlinked files must still land inside the root
            is_allowed, reason = self.guard.check(relative)
            if is_allowed:
                survivors.append(relative)
            else:
                logger.debug(f"Dropping glob candidate {relative}: {reason}")
        return survivors

    async def _search_pattern(
        self,
        pattern: str,
        directory: str,
        file_pattern: str,
        case_sensitive: bool,
    ) -> list[SearchMatch]:
        logger.debug(f"grep called for pattern {pattern!r} in directory: {directory}")
        regex = self._compile_regex(pattern, case_sensitive)
        files = await self._expand(directory, file_pattern)
        limit = self.config.max_search_results

        results: list[SearchMatch] = []
        for relative in files:
            try:
                content = await asyncio.to_thread(
                    self._read_text, self.root / relative, self.config.max_file_size_bytes
                )
            except (OSError, FileSizeLimitExceededError) as e:
                logger.debug(f"Skipping unreadable file {relative}: {e}")
                continue

            for line_number, line in enumerate(_split_lines(content), start=1):
                if regex.search(line):
                    results.append(
                        SearchMatch(file=relative, line=line_number, content=line.strip())
                    )
                    if len(results) >= limit:
                        logger.warning(f"Reached max results ({limit})")
                        return results

        logger.info(f"grep found {len(results)} matches for {pattern!r} in {directory}")
        return results

    async def _search_glob(self, pattern: str, directory: str) -> list[str]:
        logger.debug(f"glob called for pattern {pattern!r} in directory: {directory}")
        files = await self._expand(directory, pattern)

        limit = self.config.max_search_results
        if len(files) > limit:
            logger.warning(f"glob returned {len(files)} files, limiting to {limit}")
            files = files[:limit]

        logger.info(f"glob found {len(files)} files matching {pattern!r} in {directory}")
        return files
