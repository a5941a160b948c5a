"""Bounded worker pool for commit queues."""

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PoolResult(Generic[T]):
    """Outcome of running one queue through the pool."""

    completed: int = 0
    """Operations that finished successfully"""

    failed_item: Optional[T] = None
    """Entry whose operation failed first"""

    error: Optional[BaseException] = None
    """First error observed"""

    cancelled: bool = False
    """True if dispatching stopped because cancellation was requested"""

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


class WorkerPool:
    """Runs an operation over a queue with at most ``width`` in flight.

    Once an operation fails (or cancellation is requested) no further
    operations are started; the ones already running finish before
    ``run`` returns.

    Usage:
        pool = WorkerPool(width=2, cancel_event=event)
        result = pool.run(["/a", "/b", "/c"], store.make_directory)
        if result.error:
            ...
    """

    def __init__(
        self,
        width: int = 1,
        cancel_event: Optional[threading.Event] = None,
        name: str = "ftpmirror",
    ):
        """Initialize the pool.

        Args:
            width: Maximum concurrent operations
            cancel_event: Set to stop dispatching new operations
            name: Thread name prefix
        """
        if width < 1:
            raise ValueError("width must be at least 1")
        self.width = width
        self.cancel_event = cancel_event
        self.name = name

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def run(self, items: Sequence[T], operation: Callable[[T], Any]) -> PoolResult[T]:
        """Run ``operation`` for every item.

        Args:
            items: Queue entries
            operation: Called once per entry

        Returns:
            PoolResult with the first error, if any
        """
        result: PoolResult[T] = PoolResult()
        if not items:
            return result

        next_index = 0
        in_flight: dict[Future, T] = {}
        stop = False

        with ThreadPoolExecutor(
            max_workers=min(self.width, len(items)), thread_name_prefix=self.name
        ) as executor:

            def fill() -> None:
                nonlocal next_index
                while (
                    not stop
                    and len(in_flight) < self.width
                    and next_index < len(items)
                ):
                    if self._cancelled():
                        result.cancelled = True
                        return
                    item = items[next_index]
                    next_index += 1
                    in_flight[executor.submit(operation, item)] = item

            fill()
            while in_flight:
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    item = in_flight.pop(future)
                    error = future.exception()
                    if error is None:
                        result.completed += 1
                    elif result.error is None:
                        result.error = error
                        result.failed_item = item
                        stop = True
                        logger.debug(f"Operation on {item} failed: {error}")
                if not stop:
                    fill()

        return result

