"""Execution of an operation plan against the mirror side."""

import logging
import threading
from collections.abc import Sequence
from itertools import groupby
from typing import Any, Optional

from ..exceptions import CommitError, SyncCancelledError
from .operations import SyncOperations
from .plan import OperationPlan, QueueName
from .pool import WorkerPool
from .scanner import path_depth

logger = logging.getLogger(__name__)


def _entry_id(entry: Any) -> str:
    return getattr(entry, "id", entry)


def group_by_depth(dirs: Sequence[str], deepest_first: bool = False) -> list[list[str]]:
    """Split directories into batches of equal depth.

    Examples:
        >>> group_by_depth(["/a", "/b", "/a/c", "/a/c/d"])
        [['/a', '/b'], ['/a/c'], ['/a/c/d']]
        >>> group_by_depth(["/a", "/a/c"], deepest_first=True)
        [['/a/c'], ['/a']]
    """
    ordered = sorted(dirs, key=lambda d: (path_depth(d), d), reverse=deepest_first)
    return [list(batch) for _, batch in groupby(ordered, key=path_depth)]


class Committer:
    """Runs the plan queues in the direction's commit order.

    Each queue is processed by a worker pool of width ``width``. The first
    failing operation aborts the commit: nothing further is dispatched and
    the remaining queues are skipped.
    """

    def __init__(
        self,
        operations: SyncOperations,
        width: int = 1,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Initialize committer.

        Args:
            operations: Verb binding for the sync direction
            width: Maximum concurrent operations per queue
            cancel_event: Set to stop dispatching new operations
        """
        self.operations = operations
        self.cancel_event = cancel_event
        self.pool = WorkerPool(width=width, cancel_event=cancel_event)

    def _batches(self, name: QueueName, entries: Sequence[Any]) -> list[list[Any]]:
        # Workers must never create a child before its parent, or remove a
        # parent before its children on a non-recursive store
        if name == QueueName.MAKE_DIRS:
            return group_by_depth(entries)
        if name == QueueName.REMOVE_DIRS and not self.operations.recursive_remove:
            return group_by_depth(entries, deepest_first=True)
        return [list(entries)]

    def _check_cancelled(self, name: QueueName) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise SyncCancelledError(f"Sync cancelled before {name.label}", "commit")

    def commit(self, plan: OperationPlan) -> int:
        """Execute every queue of ``plan``.

        Args:
            plan: Plan to execute

        Returns:
            Number of completed operations

        Raises:
            CommitError: If an operation failed
            SyncCancelledError: If cancellation was requested
        """
        completed = 0
        for name in self.operations.strategy.commit_order:
            entries = plan.queue(name)
            if not entries:
                logger.debug(f"Nothing to do for {name.label}")
                continue

            self._check_cancelled(name)
            logger.info(f"Committing {len(entries)} {name.label}")
            operation = self.operations.for_queue(name)
            for batch in self._batches(name, entries):
                result = self.pool.run(batch, operation)
                completed += result.completed
                if result.error is not None:
                    path = _entry_id(result.failed_item)
                    logger.error(f"{name.label} failed at {path}: {result.error}")
                    raise CommitError(name.value, result.error, path) from result.error
                if result.cancelled:
                    raise SyncCancelledError(
                        f"Sync cancelled during {name.label}", "commit"
                    )

        logger.debug(f"Commit finished: {completed} operations")
        return completed
