"""Tree snapshots and directory scanning utilities."""

import logging
import posixpath
import stat
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .ignore import IgnoreMatcher

logger = logging.getLogger(__name__)


# =============================================================================
# Path-Id helpers
# =============================================================================


def is_valid_path_id(path_id: str) -> bool:
    """Check that a value is a well-formed Path-Id.

    A Path-Id starts with ``/``, has no trailing slash and no empty,
    ``.`` or ``..`` segments.

    Examples:
        >>> is_valid_path_id("/docs/readme.txt")
        True
        >>> is_valid_path_id("docs/readme.txt")
        False
        >>> is_valid_path_id("/docs/")
        False
    """
    if not isinstance(path_id, str) or not path_id.startswith("/"):
        return False
    segments = path_id[1:].split("/")
    return all(s and s not in (".", "..") for s in segments)


def join_path(root: str, path_id: str) -> str:
    """Join a Path-Id onto a ``/``-separated root.

    Examples:
        >>> join_path("/files", "/docs/readme.txt")
        '/files/docs/readme.txt'
        >>> join_path("/", "/docs")
        '/docs'
    """
    return posixpath.join(root.rstrip("/") or "/", path_id.lstrip("/"))


def path_depth(path_id: str) -> int:
    """Number of segments in a Path-Id (``/a/b`` has depth 2)."""
    return path_id.count("/")


def is_under(path_id: str, directory: str) -> bool:
    """Check whether ``path_id`` lies strictly inside ``directory``."""
    return path_id.startswith(directory + "/")


# =============================================================================
# Tree model
# =============================================================================


@dataclass(frozen=True)
class FileEntry:
    """A file in a tree snapshot."""

    id: str
    """Path-Id relative to the walked root"""

    size: int
    """File size in bytes"""

    mtime: float
    """Last modification time (Unix timestamp)"""


@dataclass(frozen=True)
class Tree:
    """An ignore-filtered snapshot of one side at one instant."""

    dirs: frozenset[str] = field(default_factory=frozenset)
    """Path-Ids of all directories"""

    files: tuple[FileEntry, ...] = ()
    """All files, in walk order"""

    @classmethod
    def from_entries(
        cls, dirs: Iterable[str], files: Iterable[FileEntry]
    ) -> "Tree":
        """Build a Tree from any iterables of directories and files."""
        return cls(dirs=frozenset(dirs), files=tuple(files))

    @property
    def file_count(self) -> int:
        """Number of files in the tree."""
        return len(self.files)

    @property
    def total_size(self) -> int:
        """Sum of all file sizes in bytes."""
        return sum(f.size for f in self.files)

    def file_map(self) -> dict[str, FileEntry]:
        """Map Path-Id to FileEntry."""
        return {f.id: f for f in self.files}


EMPTY_TREE = Tree()


# =============================================================================
# Local scanning
# =============================================================================


class DirectoryScanner:
    """Walks a local directory depth-first into a Tree.

    Examples:
        >>> scanner = DirectoryScanner(IgnoreMatcher(["*.tmp"]))
        >>> tree = scanner.scan_local(Path("/sync/folder"))  # doctest: +SKIP
        >>> sorted(tree.dirs)  # doctest: +SKIP
        ['/docs', '/docs/old']
    """

    def __init__(self, matcher: Optional[IgnoreMatcher] = None):
        """Initialize directory scanner.

        Args:
            matcher: Ignore matcher applied to every entry
        """
        self.matcher = matcher or IgnoreMatcher()

    def scan_local(self, directory: Union[str, Path]) -> Tree:
        """Recursively scan a local directory.

        Ignored directories are skipped together with their subtree.
        Entries that are neither regular files nor directories are skipped.

        Args:
            directory: Root directory of the scan

        Returns:
            Tree with Path-Ids relative to ``directory``

        Raises:
            OSError: If a directory cannot be listed
        """
        base_path = Path(directory)
        dirs: list[str] = []
        files: list[FileEntry] = []
        self._scan(base_path, base_path, dirs, files)
        return Tree.from_entries(dirs, files)

    def _scan(
        self,
        directory: Path,
        base_path: Path,
        dirs: list[str],
        files: list[FileEntry],
    ) -> None:
        for item in sorted(directory.iterdir(), key=lambda p: p.name):
            path_id = "/" + item.relative_to(base_path).as_posix()
            if self.matcher.is_ignored(path_id):
                logger.debug(f"Ignoring: {path_id}")
                continue

            try:
                item_stat = item.stat()
            except FileNotFoundError:
                # Removed while walking, or a dangling symlink
                logger.debug(f"Skipping vanished entry: {path_id}")
                continue

            if stat.S_ISDIR(item_stat.st_mode):
                dirs.append(path_id)
                self._scan(item, base_path, dirs, files)
            elif stat.S_ISREG(item_stat.st_mode):
                files.append(
                    FileEntry(
                        id=path_id,
                        size=item_stat.st_size,
                        mtime=item_stat.st_mtime,
                    )
                )
            else:
                logger.debug(f"Skipping special file: {path_id}")
