"""Operation plan produced by consolidation and consumed by commit."""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .scanner import FileEntry


class QueueName(str, Enum):
    """The five queues of an operation plan."""

    MAKE_DIRS = "make_dirs"
    """Directories to create on the mirror side"""

    REMOVE_DIRS = "remove_dirs"
    """Directories to remove from the mirror side"""

    ADD_FILES = "add_files"
    """Files missing on the mirror side"""

    UPDATE_FILES = "update_files"
    """Files that differ on the mirror side"""

    REMOVE_FILES = "remove_files"
    """Files only present on the mirror side"""

    @property
    def label(self) -> str:
        """Human-readable queue label."""
        return self.value.replace("_", " ")


@dataclass(frozen=True)
class OperationPlan:
    """Immutable five-queue result of reconciling two trees."""

    make_dirs: tuple[str, ...] = ()
    remove_dirs: tuple[str, ...] = ()
    add_files: tuple[FileEntry, ...] = ()
    update_files: tuple[FileEntry, ...] = ()
    remove_files: tuple[FileEntry, ...] = ()

    @property
    def total_change_count(self) -> int:
        """Number of operations across all five queues."""
        return (
            len(self.make_dirs)
            + len(self.remove_dirs)
            + len(self.add_files)
            + len(self.update_files)
            + len(self.remove_files)
        )

    @property
    def total_transfer_size(self) -> int:
        """Bytes to transfer for additions and updates."""
        return sum(f.size for f in self.add_files) + sum(
            f.size for f in self.update_files
        )

    @property
    def is_empty(self) -> bool:
        """True if there is nothing to do."""
        return self.total_change_count == 0

    def queue(self, name: QueueName) -> tuple[Union[str, FileEntry], ...]:
        """Return the entries of a queue by name."""
        return getattr(self, QueueName(name).value)

    def summary(self) -> dict[str, int]:
        """Queue sizes keyed by queue name."""
        return {name.value: len(self.queue(name)) for name in QueueName}


EMPTY_PLAN = OperationPlan()
