"""Reconciliation of two tree snapshots into an operation plan."""

import logging
from collections.abc import Iterable, Sequence

from ..exceptions import ConsolidateError
from ..utils import DEFAULT_MTIME_TOLERANCE
from .modes import Direction, Side
from .plan import OperationPlan
from .scanner import FileEntry, Tree, is_under, is_valid_path_id, path_depth

logger = logging.getLogger(__name__)


def collapse_subdirectories(dirs: Iterable[str]) -> list[str]:
    """Reduce a set of directories to their minimal ancestors.

    Removing a directory recursively also removes everything below it, so
    descendants of another entry are dropped.

    Args:
        dirs: Directory Path-Ids

    Returns:
        Sorted list of the directories that have no ancestor in ``dirs``

    Examples:
        >>> collapse_subdirectories(["/a", "/a/b", "/a/b/c", "/a/b/c2", "/x"])
        ['/a', '/x']
        >>> collapse_subdirectories(["/a/b", "/a-b", "/a"])
        ['/a', '/a-b']
    """
    collapsed: list[str] = []
    kept: set[str] = set()
    for directory in sorted(dirs):
        # "/a-b" sorts between "/a" and "/a/b", so check every ancestor
        if any(ancestor in kept for ancestor in _ancestors(directory)):
            continue
        collapsed.append(directory)
        kept.add(directory)
    return collapsed


def _ancestors(path_id: str) -> list[str]:
    """Proper ancestors of a Path-Id, excluding the root."""
    segments = path_id.split("/")[1:-1]
    return ["/" + "/".join(segments[: i + 1]) for i in range(len(segments))]


def order_deepest_first(dirs: Iterable[str]) -> list[str]:
    """Order directories so children come before their parents.

    Examples:
        >>> order_deepest_first(["/a", "/a/b/c", "/x", "/a/b"])
        ['/a/b/c', '/a/b', '/a', '/x']
    """
    return sorted(dirs, key=lambda d: (-path_depth(d), d))


def order_parents_first(dirs: Iterable[str]) -> list[str]:
    """Order directories so parents come before their children.

    Examples:
        >>> order_parents_first(["/a/b", "/x", "/a"])
        ['/a', '/x', '/a/b']
    """
    return sorted(dirs, key=lambda d: (path_depth(d), d))


def exclude_files_in_dirs(
    files: Iterable[FileEntry], dirs: Sequence[str]
) -> list[FileEntry]:
    """Drop files located inside any of the given directories.

    Args:
        files: File entries to filter
        dirs: Directory Path-Ids

    Returns:
        Files that are not below any directory in ``dirs``
    """
    return [f for f in files if not any(is_under(f.id, d) for d in dirs)]


class FileComparator:
    """Compares an authoritative file with its mirror counterpart.

    The authoritative file counts as modified when the sizes differ or when it
    is newer than the mirror file by more than ``mtime_tolerance`` seconds.
    Both stores may report timestamps with different resolutions (FTP LIST
    only carries minutes), so small differences are not treated as changes.
    """

    def __init__(self, mtime_tolerance: float = DEFAULT_MTIME_TOLERANCE):
        """Initialize file comparator.

        Args:
            mtime_tolerance: Seconds of clock skew/resolution to tolerate
        """
        if mtime_tolerance < 0:
            raise ValueError("mtime_tolerance cannot be negative")
        self.mtime_tolerance = mtime_tolerance

    @staticmethod
    def is_different(source: FileEntry, target: FileEntry) -> bool:
        """Check whether two files differ in size."""
        return source.size != target.size

    def is_newer(self, source: FileEntry, target: FileEntry) -> bool:
        """Check whether ``source`` was modified after ``target``."""
        return source.mtime - target.mtime > self.mtime_tolerance

    def needs_update(self, source: FileEntry, target: FileEntry) -> bool:
        """Check whether ``target`` must be overwritten by ``source``."""
        return self.is_different(source, target) or self.is_newer(source, target)


class Reconciler:
    """Builds the operation plan that makes the mirror tree match.

    Examples:
        >>> from ftpmirror.sync.scanner import FileEntry, Tree
        >>> local = Tree.from_entries(
        ...     ["/docs"], [FileEntry("/docs/readme.txt", 10, 0.0)]
        ... )
        >>> plan = Reconciler(Direction.LOCAL_TO_REMOTE).reconcile(local, Tree())
        >>> plan.make_dirs, [f.id for f in plan.add_files]
        (('/docs',), ['/docs/readme.txt'])
    """

    def __init__(
        self,
        direction: Direction,
        recursive_remove: bool = True,
        mtime_tolerance: float = DEFAULT_MTIME_TOLERANCE,
    ):
        """Initialize reconciler.

        Args:
            direction: Sync direction selecting the authoritative tree
            recursive_remove: Whether the mirror store removes directories
                together with their contents
            mtime_tolerance: Seconds of timestamp difference to tolerate
        """
        self.direction = direction
        self.recursive_remove = recursive_remove
        self.comparator = FileComparator(mtime_tolerance)

    def reconcile(self, local: Tree, remote: Tree) -> OperationPlan:
        """Compare both trees and return the plan for the mirror side.

        Args:
            local: Snapshot of the local side
            remote: Snapshot of the remote side

        Returns:
            OperationPlan for the configured direction

        Raises:
            ConsolidateError: If either tree contains a malformed Path-Id
        """
        self._validate(local, "local")
        self._validate(remote, "remote")

        if self.direction.authoritative == Side.LOCAL:
            source, target = local, remote
        else:
            source, target = remote, local

        make_dirs, remove_dirs = self.consolidate_directories(
            source.dirs, target.dirs
        )
        add_files, update_files, remove_files = self.consolidate_files(
            source.files, target.files, remove_dirs
        )

        plan = OperationPlan(
            make_dirs=tuple(make_dirs),
            remove_dirs=tuple(remove_dirs),
            add_files=tuple(add_files),
            update_files=tuple(update_files),
            remove_files=tuple(remove_files),
        )
        logger.debug(f"Reconciled {self.direction.value}: {plan.summary()}")
        return plan

    def consolidate_directories(
        self, source_dirs: Iterable[str], target_dirs: Iterable[str]
    ) -> tuple[list[str], list[str]]:
        """Split directories into the make and remove queues.

        Args:
            source_dirs: Directories of the authoritative tree
            target_dirs: Directories of the mirror tree

        Returns:
            Tuple of (make_dirs, remove_dirs)
        """
        source_set = set(source_dirs)
        target_set = set(target_dirs)

        make_dirs = order_parents_first(source_set - target_set)
        candidates = target_set - source_set

        if self.recursive_remove:
            remove_dirs = collapse_subdirectories(candidates)
        else:
            remove_dirs = order_deepest_first(candidates)

        return make_dirs, remove_dirs

    def consolidate_files(
        self,
        source_files: Iterable[FileEntry],
        target_files: Iterable[FileEntry],
        remove_dirs: Sequence[str],
    ) -> tuple[list[FileEntry], list[FileEntry], list[FileEntry]]:
        """Split files into the add, update and remove queues.

        Mirror files inside a directory that is removed recursively are left
        out; they disappear with their directory.

        Args:
            source_files: Files of the authoritative tree
            target_files: Files of the mirror tree
            remove_dirs: Final remove-directory queue

        Returns:
            Tuple of (add_files, update_files, remove_files)
        """
        if self.recursive_remove:
            target_files = exclude_files_in_dirs(target_files, remove_dirs)

        unprocessed = {f.id: f for f in target_files}
        add_files: list[FileEntry] = []
        update_files: list[FileEntry] = []

        for source_file in sorted(source_files, key=lambda f: f.id):
            target_file = unprocessed.pop(source_file.id, None)
            if target_file is None:
                add_files.append(source_file)
            elif self.comparator.needs_update(source_file, target_file):
                update_files.append(source_file)

        remove_files = sorted(unprocessed.values(), key=lambda f: f.id)
        return add_files, update_files, remove_files

    @staticmethod
    def _validate(tree: Tree, side: str) -> None:
        for directory in tree.dirs:
            if not is_valid_path_id(directory):
                raise ConsolidateError(
                    f"Malformed directory Path-Id in {side} tree: {directory!r}"
                )
        seen: set[str] = set()
        for entry in tree.files:
            if not is_valid_path_id(entry.id):
                raise ConsolidateError(
                    f"Malformed file Path-Id in {side} tree: {entry.id!r}"
                )
            if entry.size < 0:
                raise ConsolidateError(
                    f"Negative size for {entry.id} in {side} tree: {entry.size}"
                )
            if entry.id in seen:
                raise ConsolidateError(f"Duplicate file in {side} tree: {entry.id}")
            seen.add(entry.id)
