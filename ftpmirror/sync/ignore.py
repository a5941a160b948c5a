"""Glob-style ignore patterns for tree walks.

Patterns are matched with ``fnmatch`` against both the full root-relative
path (``/docs/notes.txt``) and its base name (``notes.txt``):

- ``*.mp3`` ignores every mp3 file at any depth (base-name match)
- ``/backgrounds`` ignores that directory at the root only
- ``/docs/*.tmp`` ignores tmp files directly inside ``/docs``
"""

import fnmatch
import logging
import posixpath
from collections.abc import Iterable
from typing import Optional

logger = logging.getLogger(__name__)


class IgnoreMatcher:
    """Decides whether a root-relative path is excluded from a walk.

    Examples:
        >>> matcher = IgnoreMatcher(["*.mp3", "/folder"])
        >>> matcher.is_ignored("/music/song.mp3")
        True
        >>> matcher.is_ignored("/folder")
        True
        >>> matcher.is_ignored("/other/folder")
        False
        >>> matcher.is_ignored("/docs/readme.txt")
        False
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None) -> None:
        """Initialize with patterns.

        Args:
            patterns: Glob patterns; blank entries and ``#`` comments are dropped
        """
        self._patterns: list[str] = []
        for pattern in patterns or []:
            self.add_pattern(pattern)

    @property
    def patterns(self) -> list[str]:
        """Configured patterns."""
        return list(self._patterns)

    def add_pattern(self, pattern: str) -> None:
        """Add an ignore pattern."""
        pattern = pattern.strip()
        if not pattern or pattern.startswith("#"):
            return
        # Directory patterns like "cache/" match the directory itself
        if len(pattern) > 1:
            pattern = pattern.rstrip("/")
        self._patterns.append(pattern)

    def is_ignored(self, relative_path: str) -> bool:
        """Check if a path should be ignored.

        Args:
            relative_path: Root-relative path, with or without a leading slash

        Returns:
            True if any pattern matches the full path or the base name
        """
        if not self._patterns:
            return False

        full = "/" + relative_path.strip("/")
        bare = full[1:]
        name = posixpath.basename(full)

        for pattern in self._patterns:
            if pattern.startswith("/"):
                # Anchored at the sync root
                if fnmatch.fnmatchcase(full, pattern):
                    return True
            elif (
                fnmatch.fnmatchcase(bare, pattern)
                or fnmatch.fnmatchcase(name, pattern)
            ):
                return True
        return False

    def __repr__(self) -> str:
        return f"IgnoreMatcher({self._patterns!r})"
