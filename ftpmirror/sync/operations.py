"""Sync operations wrapper binding plan verbs to store calls."""

import logging
from typing import Any, Callable, Optional

from .modes import Direction, DirectionStrategy, Side
from .plan import QueueName
from .retry import ResilientOperation
from .scanner import FileEntry

logger = logging.getLogger(__name__)


class SyncOperations:
    """Unified mirror-side operations for both directions.

    Directory and removal verbs run against the mirror store, transfers move
    a file from the authoritative side onto the mirror side. Every call that
    touches the remote store goes through the resilient wrapper.
    """

    def __init__(
        self,
        direction: Direction,
        local_store: Any,
        remote_store: Any,
        retry: Optional[ResilientOperation] = None,
        on_transferred: Optional[Callable[[int], None]] = None,
    ):
        """Initialize sync operations.

        Args:
            direction: Sync direction
            local_store: Store for the local root
            remote_store: Store for the remote root
            retry: Wrapper for remote calls (a single attempt if omitted)
            on_transferred: Called with the file size after each transfer
        """
        self.direction = direction
        self.strategy: DirectionStrategy = direction.strategy
        self.local_store = local_store
        self.remote_store = remote_store
        self.retry = retry or ResilientOperation(retry_limit=0)
        self.on_transferred = on_transferred

    @property
    def mirror_store(self) -> Any:
        if self.strategy.mirror == Side.REMOTE:
            return self.remote_store
        return self.local_store

    @property
    def recursive_remove(self) -> bool:
        """Whether the mirror store removes directories with their contents."""
        return bool(getattr(self.mirror_store, "recursive_remove", False))

    def _mirror_call(self, func: Callable[..., Any], *args: Any) -> Any:
        if self.strategy.mirror == Side.REMOTE:
            return self.retry.call(func, *args)
        return func(*args)

    def make_directory(self, path_id: str) -> None:
        self._mirror_call(self.mirror_store.make_directory, path_id)

    def remove_directory(self, path_id: str) -> None:
        self._mirror_call(self.mirror_store.remove_directory, path_id)

    def remove_file(self, entry: FileEntry) -> None:
        self._mirror_call(self.mirror_store.remove_file, entry.id)

    def transfer(self, entry: FileEntry) -> None:
        """Copy a file from the authoritative side onto the mirror side.

        Args:
            entry: Authoritative file entry
        """
        local_path = self.local_store.absolute(entry.id)
        if self.strategy.transfer == "upload":
            self.retry.call(self.remote_store.upload, local_path, entry.id)
        else:
            self.retry.call(self.remote_store.download, entry.id, local_path)
        logger.debug(f"{self.strategy.transfer.capitalize()}ed {entry.id}")
        if self.on_transferred is not None:
            self.on_transferred(entry.size)

    def for_queue(self, name: QueueName) -> Callable[[Any], None]:
        """Return the operation that processes entries of a plan queue."""
        return {
            QueueName.MAKE_DIRS: self.make_directory,
            QueueName.REMOVE_DIRS: self.remove_directory,
            QueueName.ADD_FILES: self.transfer,
            QueueName.UPDATE_FILES: self.transfer,
            QueueName.REMOVE_FILES: self.remove_file,
        }[QueueName(name)]
