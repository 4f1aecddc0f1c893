"""
Ignore-file discovery and exclusion matching.

Every ignore file under the project root is collected and its patterns are
rescoped to the directory that declared them, so a single compiled rule set
can answer "is this root-relative path excluded?" for the whole tree.
"""

import asyncio
import logging
import os
import posixpath
from collections import deque
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pathspec

from codebase_query.filesystem.config import QueryConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IgnoreRule:
    """A single ignore pattern and the directory it was declared in."""

    pattern: str
    negated: bool = False
    base: str = ""

    @property
    def effective_pattern(self) -> str:
        """The pattern rewritten to be rooted at the project root."""
        prefix = "!" if self.negated else ""
        if not self.base:
            return f"{prefix}{self.pattern}"

        anchored = self.pattern.startswith("/")
        body = self.pattern[1:] if anchored else self.pattern
        if anchored or "/" in body.rstrip("/"):
            return f"{prefix}{self.base}/{body}"
        # A bare name matches at any depth below its ignore file
        return f"{prefix}{self.base}/**/{body}"


def parse_ignore_file(text: str, base: str = "") -> list[IgnoreRule]:
    """
    Split ignore-file text into rules.

    Blank lines and ``#`` comments are dropped. ``base`` is the directory of
    the ignore file relative to the root, in POSIX form (empty for the root).
    """
    rules = []
    for raw_line in text.split("\n"):
        line = raw_line.rstrip("\r")
        if not line.strip() or line.startswith("#"):
            continue
        if line.startswith("!"):
            rules.append(IgnoreRule(pattern=line[1:], negated=True, base=base))
        else:
            rules.append(IgnoreRule(pattern=line, negated=False, base=base))
    return rules


def normalize_relative(path: str) -> str:
    """Normalize a root-relative path to POSIX form without ``./`` prefixes."""
    normalized = posixpath.normpath(path.replace("\\", "/"))
    if normalized == ".":
        return ""
    return normalized.lstrip("/")


class RuleSet:
    """
    Immutable, compiled set of ignore rules.

    Rules are evaluated in declaration order; a later negated rule
    re-includes a path excluded by an earlier one. ``extend`` returns a new
    RuleSet and leaves this one untouched.
    """

    __slots__ = ("_rules", "_spec")

    def __init__(self, rules: Iterable[IgnoreRule] = ()):
        self._rules = tuple(rules)
        self._spec = pathspec.GitIgnoreSpec.from_lines(
            rule.effective_pattern for rule in self._rules
        )

    @property
    def rules(self) -> tuple[IgnoreRule, ...]:
        return self._rules

    @property
    def patterns(self) -> list[str]:
        return [rule.effective_pattern for rule in self._rules]

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"RuleSet(rules={len(self._rules)})"

    def extend(self, rules: Iterable[IgnoreRule]) -> "RuleSet":
        return RuleSet(self._rules + tuple(rules))

    def is_excluded(self, relative_path: str) -> bool:
        """Check a root-relative path. Directories may carry a trailing slash."""
        trailing = relative_path.endswith(("/", "\\"))
        normalized = normalize_relative(relative_path)
        if not normalized or normalized == ".." or normalized.startswith("../"):
            return False
        if trailing:
            normalized += "/"
        return self._spec.match_file(normalized)


def _scan_directory(directory: Path) -> list[tuple[str, bool, bool]]:
    """List (name, is_dir, is_file) for a directory without following links."""
    with os.scandir(directory) as it:
        entries = [
            (entry.name, entry.is_dir(follow_symlinks=False), entry.is_file())
            for entry in it
        ]
    return sorted(entries)


async def iter_ignore_files(
    root: Path,
    ignore_filename: str = ".gitignore",
    vendor_directory: str = "node_modules",
) -> AsyncIterator[tuple[str, str]]:
    """
    Walk the tree breadth-first and yield (relative_dir, text) per ignore file.

    Hidden directories and the vendor directory are never entered. Ancestor
    directories are always yielded before their descendants. Unreadable
    directories and files are skipped.
    """
    worklist: deque[tuple[Path, str]] = deque([(root, "")])

    while worklist:
        directory, relative_dir = worklist.popleft()
        try:
            entries = await asyncio.to_thread(_scan_directory, directory)
        except OSError as e:
            logger.debug(f"Skipping unreadable directory {directory}: {e}")
            continue

        for name, is_dir, is_file in entries:
            if is_file and name == ignore_filename:
                ignore_path = directory / name
                try:
                    text = await asyncio.to_thread(
                        ignore_path.read_text, encoding="utf-8"
                    )
                except (OSError, UnicodeDecodeError) as e:
                    logger.debug(f"Skipping unreadable ignore file {ignore_path}: {e}")
                    continue
                yield relative_dir, text
            elif is_dir and not name.startswith(".") and name != vendor_directory:
                child = f"{relative_dir}/{name}" if relative_dir else name
                worklist.append((directory / name, child))


async def discover(
    root: Path,
    ignore_filename: str = ".gitignore",
    vendor_directory: str = "node_modules",
) -> RuleSet:
    """Collect every ignore file under ``root`` into a single RuleSet."""
    rules: list[IgnoreRule] = []
    async for relative_dir, text in iter_ignore_files(
        root, ignore_filename, vendor_directory
    ):
        rules.extend(parse_ignore_file(text, relative_dir))
    return RuleSet(rules)


class IgnoreIndex:
    """
    Session-scoped exclusion index for a project root.

    Discovery runs as a background task started by ``start()``. Until it
    finishes, ``is_excluded`` answers against whatever rules have been
    loaded so far.

    Usage:
        index = IgnoreIndex(Path("/srv/project"))
        index.start()
        ...
        await index.wait_ready()
        index.is_excluded("build/output.js")
    """

    def __init__(self, root: Path, config: Optional[QueryConfig] = None):
        self.root = Path(root).resolve()
        self.config = config or QueryConfig()
        self._rules = RuleSet()
        self._task: Optional[asyncio.Task] = None

    @property
    def rules(self) -> RuleSet:
        return self._rules

    @property
    def ready(self) -> bool:
        return self._task is not None and self._task.done()

    def start(self) -> Optional[asyncio.Task]:
        """
        Schedule discovery on the running loop (idempotent).

        Returns None when called outside an event loop; discovery is then
        started by the next call made from inside one.
        """
        if self._task is not None:
            return self._task
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; ignore discovery deferred")
            return None
        self._task = loop.create_task(self._discover())
        return self._task

    async def wait_ready(self) -> RuleSet:
        """Wait for discovery to finish and return the complete rule set."""
        task = self.start()
        if task is not None:
            await asyncio.shield(task)
        return self._rules

    def is_excluded(self, relative_path: str) -> bool:
        return self._rules.is_excluded(relative_path)

    async def _discover(self) -> None:
        files = 0
        try:
            async for relative_dir, text in iter_ignore_files(
                self.root, self.config.ignore_filename, self.config.vendor_directory
            ):
                rules = parse_ignore_file(text, relative_dir)
                self._rules = self._rules.extend(rules)
                files += 1
        except Exception as e:
            logger.warning(f"Ignore discovery stopped early under {self.root}: {e}")
        logger.debug(
            f"Loaded {len(self._rules)} ignore rules from {files} files under {self.root}"
        )
