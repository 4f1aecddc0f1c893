"""
Glob compilation and ignore-aware glob expansion.
"""

import logging
import os
import re
from pathlib import Path

from codebase_query.filesystem.exceptions import InvalidPatternError
from codebase_query.filesystem.ignore import IgnoreRule, RuleSet, parse_ignore_file

logger = logging.getLogger(__name__)


def expand_braces(pattern: str) -> list[str]:
    """
    Expand ``{a,b}`` alternations into separate patterns.

    Raises:
        InvalidPatternError: If braces are unbalanced
    """
    depth = 0
    start = -1
    for i, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                start = i
            depth += 1
        elif char == "}":
            if depth == 0:
                raise InvalidPatternError(pattern, "Unbalanced '}' in glob")
            depth -= 1
            if depth == 0:
                return _expand_group(pattern, start, i)
    if depth:
        raise InvalidPatternError(pattern, "Unbalanced '{' in glob")
    return [pattern]


def _expand_group(pattern: str, start: int, end: int) -> list[str]:
    prefix, inner, suffix = pattern[:start], pattern[start + 1 : end], pattern[end + 1 :]

    alternatives = []
    depth = 0
    current = ""
    for char in inner:
        if char == "," and depth == 0:
            alternatives.append(current)
            current = ""
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current += char
    alternatives.append(current)

    expanded = []
    for alternative in alternatives:
        expanded.extend(expand_braces(prefix + alternative + suffix))
    return expanded


def _translate_segment(segment: str, pattern: str) -> str:
    """Translate one path segment; ``*`` and ``?`` never match ``/``."""
    out = []
    i = 0
    while i < len(segment):
        char = segment[i]
        if char == "*":
            while i + 1 < len(segment) and segment[i + 1] == "*":
                i += 1
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            close = segment.find("]", i + 2 if segment[i + 1 : i + 2] in ("!", "^") else i + 1)
            if close == -1:
                raise InvalidPatternError(pattern, "Unterminated character class in glob")
            body = segment[i + 1 : close]
            if body[:1] in ("!", "^"):
                body = "^" + body[1:].replace("\\", "\\\\")
            else:
                body = body.replace("\\", "\\\\")
            out.append(f"[{body}]")
            i = close
        elif char == "\\" and i + 1 < len(segment):
            i += 1
            out.append(re.escape(segment[i]))
        else:
            out.append(re.escape(char))
        i += 1
    return "".join(out)


def _translate(pattern: str, original: str) -> str:
    parts = [part for part in pattern.split("/") if part not in ("", ".")]
    if not parts:
        raise InvalidPatternError(original, "Empty glob")

    regex = ""
    for index, part in enumerate(parts):
        last = index == len(parts) - 1
        if part == "**":
            regex += ".*" if last else "(?:[^/]+/)*"
        else:
            regex += _translate_segment(part, original) + ("" if last else "/")
    return regex


def compile_glob(pattern: str) -> re.Pattern:
    """
    Compile a glob into a regex over POSIX relative paths.

    Supports ``**`` (any number of directories), ``*``, ``?``, ``[...]``
    classes and ``{a,b}`` alternation.

    Raises:
        InvalidPatternError: If the glob cannot be parsed
    """
    normalized = pattern.strip()
    if not normalized:
        raise InvalidPatternError(pattern, "Empty glob")

    alternatives = [_translate(p, pattern) for p in expand_braces(normalized)]
    try:
        return re.compile("^(?:" + "|".join(alternatives) + ")$")
    except re.error as e:
        raise InvalidPatternError(pattern, f"Invalid glob pattern: {e}") from e


def _wants_hidden(pattern: str) -> bool:
    return any(part.startswith(".") and part not in (".", "..") for part in pattern.split("/"))


def _read_rules(
    directory: Path, relative_dir: str, ignore_filename: str
) -> list[IgnoreRule]:
    ignore_path = directory / ignore_filename
    if not ignore_path.is_file():
        return []
    try:
        text = ignore_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Skipping unreadable ignore file {ignore_path}: {e}")
        return []
    return parse_ignore_file(text, relative_dir)


def expand_glob(
    root: Path,
    search_dir: Path,
    pattern: str,
    ignore_filename: str = ".gitignore",
) -> list[str]:
    """
    Expand a glob under ``search_dir`` honoring ignore files.

    Ignore files are read at call time, from ``root`` down through every
    visited directory, and excluded directories are not descended into.
    Hidden entries are skipped unless the pattern names one explicitly.

    Args:
        root: Project root (resolved)
        search_dir: Directory to expand in (resolved, inside root)
        pattern: Glob relative to ``search_dir``
        ignore_filename: Name of the per-directory ignore file

    Returns:
        Sorted regular-file paths relative to ``search_dir``
    """
    regex = compile_glob(pattern)
    include_hidden = _wants_hidden(pattern)

    base = search_dir.relative_to(root).as_posix()
    base = "" if base == "." else base

    # Rules declared above the search directory still apply inside it
    rules = RuleSet(_read_rules(root, "", ignore_filename)) if base else RuleSet()
    if base:
        parts = base.split("/")
        for depth in range(1, len(parts)):
            relative_dir = "/".join(parts[:depth])
            inherited = _read_rules(root / relative_dir, relative_dir, ignore_filename)
            if inherited:
                rules = rules.extend(inherited)

    def root_relative(relative: str) -> str:
        if not base:
            return relative
        return f"{base}/{relative}" if relative else base

    matches = []
    for dirpath, dirnames, filenames in os.walk(search_dir):
        current = Path(dirpath)
        relative_dir = current.relative_to(search_dir).as_posix()
        relative_dir = "" if relative_dir == "." else relative_dir

        local = _read_rules(current, root_relative(relative_dir), ignore_filename)
        if local:
            rules = rules.extend(local)

        kept = []
        for name in sorted(dirnames):
            if not include_hidden and name.startswith("."):
                continue
            child = f"{relative_dir}/{name}" if relative_dir else name
            if rules.is_excluded(root_relative(child) + "/"):
                continue
            kept.append(name)
        dirnames[:] = kept

        for name in filenames:
            if not include_hidden and name.startswith("."):
                continue
            relative = f"{relative_dir}/{name}" if relative_dir else name
            if not (current / name).is_file():
                continue
            if rules.is_excluded(root_relative(relative)):
                continue
            if regex.match(relative):
                matches.append(relative)

    return sorted(matches)
