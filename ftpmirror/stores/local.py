"""Local filesystem store."""

import logging
import shutil
from pathlib import Path
from typing import Optional, Union

from ..sync.ignore import IgnoreMatcher
from ..sync.scanner import DirectoryScanner, Tree

logger = logging.getLogger(__name__)


class LocalStore:
    """Store rooted at a local directory.

    Path-Ids are resolved against ``root``; the walk is the depth-first
    DirectoryScanner walk.
    """

    recursive_remove = True
    """remove_directory() deletes the directory contents as well"""

    def __init__(self, root: Union[str, Path], matcher: Optional[IgnoreMatcher] = None):
        self.root = Path(root)
        self.scanner = DirectoryScanner(matcher)

    def absolute(self, path_id: str) -> Path:
        """Local path of a Path-Id.

        Examples:
            >>> LocalStore("/data").absolute("/docs/a.txt").as_posix()
            '/data/docs/a.txt'
        """
        return self.root.joinpath(*[s for s in path_id.split("/") if s])

    def walk(self, root: Optional[Union[str, Path]] = None) -> Tree:
        """Walk the local tree (defaults to the store root)."""
        directory = Path(root) if root is not None else self.root
        logger.debug(f"Walking local {directory}")
        tree = self.scanner.scan_local(directory)
        logger.debug(
            f"Walked local {directory}: {len(tree.dirs)} dirs, {tree.file_count} files"
        )
        return tree

    def make_directory(self, path_id: str) -> None:
        path = self.absolute(path_id)
        path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Created local directory {path}")

    def remove_directory(self, path_id: str, recursive: bool = True) -> None:
        """Remove a directory.

        Args:
            path_id: Directory to remove
            recursive: Remove its contents as well; otherwise the directory
                must be empty
        """
        path = self.absolute(path_id)
        if recursive:
            shutil.rmtree(path)
        else:
            path.rmdir()
        logger.debug(f"Removed local directory {path}")

    def remove_file(self, path_id: str) -> None:
        path = self.absolute(path_id)
        path.unlink()
        logger.debug(f"Removed local file {path}")

    def __repr__(self) -> str:
        return f"LocalStore({self.root})"
