"""
Path containment checks for the project root.
"""

import logging
import os
from pathlib import Path
from typing import Union

from codebase_query.filesystem.exceptions import FileAccessDeniedError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _is_within_directory(path: Path, directory: Path) -> bool:
    """Check if path is directory or below it, segment by segment."""
    try:
        path.relative_to(directory)
        return True
    except ValueError:
        return False


def is_safe_path(root: PathLike, candidate: PathLike) -> bool:
    """
    Check that ``candidate`` resolves inside ``root`` and currently exists.

    Relative candidates are interpreted against ``root``. Both paths are
    resolved with symlinks followed, so a link pointing out of the root is
    rejected.
    """
    return PathGuard(root).validate(candidate)


class PathGuard:
    """
    Containment check for a single project root.

    Usage:
        guard = PathGuard("/srv/project")
        guard.validate("src/main.py")       # True if it exists
        guard.validate("../other/secret")   # False
        path = guard.resolve("src")         # raises FileAccessDeniedError
    """

    def __init__(self, root: PathLike):
        self.root = Path(root).expanduser().resolve()

    def check(self, candidate: PathLike) -> tuple[bool, str]:
        """
        Check a candidate path.

        Returns:
            Tuple of (is_allowed, reason)
        """
        target = self.root / Path(candidate)
        try:
            resolved = target.resolve()
        except (OSError, RuntimeError, ValueError) as e:
            # ValueError covers embedded null bytes
            return False, f"Cannot resolve path: {e}"

        if not _is_within_directory(resolved, self.root):
            return False, "Path is outside the project root"

        try:
            exists = os.access(resolved, os.F_OK)
        except ValueError:
            exists = False
        if not exists:
            return False, "Path does not exist or is not accessible"

        return True, "Path is allowed"

    def validate(self, candidate: PathLike) -> bool:
        """Return True if the candidate is contained in the root and exists."""
        is_allowed, reason = self.check(candidate)
        if not is_allowed:
            logger.warning(f"Access denied to {candidate} (root {self.root}): {reason}")
        return is_allowed

    def resolve(self, candidate: PathLike) -> Path:
        """
        Resolve a candidate to an absolute path inside the root.

        Raises:
            FileAccessDeniedError: If the path escapes the root or is missing
        """
        is_allowed, reason = self.check(candidate)
        if not is_allowed:
            logger.warning(f"Access denied to {candidate} (root {self.root}): {reason}")
            raise FileAccessDeniedError(str(candidate), reason)
        return (self.root / Path(candidate)).resolve()
