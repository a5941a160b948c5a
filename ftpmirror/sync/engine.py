"""Core sync engine driving the setup/collect/consolidate/commit phases."""

import logging
import threading
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional, Union

from ..config import SyncConfig, config_to_dict
from ..exceptions import (
    CollectError,
    SetupError,
    StalePlanError,
    SyncCancelledError,
    SyncError,
    SyncInProgressError,
)
from ..stores.ftp import FtpStore
from ..stores.local import LocalStore
from .committer import Committer
from .comparator import Reconciler
from .ignore import IgnoreMatcher
from .modes import Direction, Side
from .operations import SyncOperations
from .plan import EMPTY_PLAN, OperationPlan
from .retry import ResilientOperation
from .scanner import EMPTY_TREE, Tree
from .status import StatusCounters, SyncPhase, SyncStatus


class _CancelToken:
    """Cancellation view over the engine event and an optional caller event.

    Only reads the caller event, which stays owned by the caller.
    """

    def __init__(self, *events: threading.Event):
        self._events = events

    def is_set(self) -> bool:
        return any(event.is_set() for event in self._events)


class SyncEngine:
    """Core sync engine that makes the mirror side match the authoritative side.

    A run goes through four strictly sequential phases:

    1. setup: check the local root and connect to the remote store
    2. collect: walk both sides concurrently into fresh Trees
    3. consolidate: reconcile the Trees into an OperationPlan
    4. commit: execute the plan queues on the mirror side

    A failure moves the engine to ``FAILED`` and skips the later phases.
    ``get_status()`` may be polled from another thread while ``run()``
    is executing.

    Examples:
        >>> config = SyncConfig.from_dict(
        ...     {"local": "/data", "remote": "/backup", "host": "ftp.example.com"}
        ... )
        >>> with SyncEngine(config, Direction.LOCAL_TO_REMOTE) as engine:
        ...     status = engine.run()  # doctest: +SKIP
        >>> print(f"{status.change_count} changes")  # doctest: +SKIP
    """

    def __init__(
        self,
        config: SyncConfig,
        direction: Optional[Union[Direction, str]] = None,
        local_store: Optional[Any] = None,
        remote_store: Optional[Any] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize sync engine.

        Args:
            config: Sync settings
            direction: Which side is authoritative (``config.direction`` if
                omitted)
            local_store: Local store (a LocalStore on ``config.local`` if omitted)
            remote_store: Remote store (an FtpStore on ``config.remote`` if omitted)
            logger: Log sink (the module logger if omitted)
        """
        self.config = config
        self.direction = Direction.from_string(
            direction if direction is not None else config.direction
        )
        self.logger = logger or logging.getLogger(__name__)

        matcher = IgnoreMatcher(config.ignore)
        if local_store is None:
            local_store = LocalStore(config.local, matcher)
        if remote_store is None:
            remote_store = FtpStore(config.connection, config.remote, matcher)
        self.local_store = local_store
        self.remote_store = remote_store

        # The reconnect run before a retry has its own retry budget
        self._connector = ResilientOperation(
            retry_limit=config.retry_limit, retry_delay=config.retry_delay
        )
        self._retry = ResilientOperation(
            recover=self._reconnect,
            retry_limit=config.retry_limit,
            retry_delay=config.retry_delay,
        )

        self._status = StatusCounters()
        self.operations = SyncOperations(
            self.direction,
            self.local_store,
            self.remote_store,
            retry=self._retry,
            on_transferred=self._status.add_transferred,
        )

        self._local_tree: Tree = EMPTY_TREE
        self._remote_tree: Tree = EMPTY_TREE
        self._plan: OperationPlan = EMPTY_PLAN
        self._plan_pending = False
        self._connected = False
        self._cancel_event = threading.Event()
        self._cancel = _CancelToken(self._cancel_event)
        self._run_lock = threading.Lock()

    # =========================
    # Properties
    # =========================

    @property
    def plan(self) -> OperationPlan:
        """Plan produced by the last consolidate phase."""
        return self._plan

    @property
    def local_tree(self) -> Tree:
        return self._local_tree

    @property
    def remote_tree(self) -> Tree:
        return self._remote_tree

    @property
    def phase(self) -> SyncPhase:
        return self._status.phase

    @property
    def is_running(self) -> bool:
        """True while run() is executing."""
        return self._run_lock.locked()

    # =========================
    # Phase handling
    # =========================

    @contextmanager
    def _phase(self, phase: SyncPhase) -> Iterator[None]:
        self._status.set_phase(phase)
        self.logger.debug(f"Entering {phase.value} phase")
        try:
            yield
        except SyncError as e:
            self._status.set_phase(SyncPhase.FAILED)
            if isinstance(e, SyncCancelledError):
                self.logger.info(f"Sync cancelled in {phase.value} phase")
            else:
                self.logger.error(f"{phase.value.capitalize()} failed: {e.message}")
            raise
        except Exception as e:
            self._status.set_phase(SyncPhase.FAILED)
            self.logger.error(f"{phase.value.capitalize()} failed: {e}")
            raise

    def _check_cancelled(self, phase: SyncPhase) -> None:
        if self._cancel.is_set():
            self._status.set_phase(SyncPhase.FAILED)
            self.logger.info(f"Sync cancelled before {phase.value} phase")
            raise SyncCancelledError(
                f"Sync cancelled before {phase.value} phase", phase.value
            )

    def _reconnect(self) -> Any:
        self.logger.debug("Re-establishing remote session")
        return self._connector.call(self.remote_store.reconnect)

    def setup(self) -> None:
        """Validate the local root and establish the remote session.

        Raises:
            SetupError: If the local root is missing or the remote store
                cannot be reached
        """
        with self._phase(SyncPhase.SETUP):
            local = Path(self.config.local)
            if not local.exists():
                raise SetupError(f"Local directory does not exist: {local}")
            if not local.is_dir():
                raise SetupError(f"Local path is not a directory: {local}")

            if self.config.verbose:
                self.logger.info(f"Settings: {config_to_dict(self.config)}")
                self.logger.info(f"Direction: {self.direction.value}")

            if self._connected:
                self.logger.debug("Remote session already established")
                return
            try:
                welcome = self._connector.call(self.remote_store.connect)
            except Exception as e:
                raise SetupError(f"Cannot connect to remote store: {e}") from e
            self._connected = True
            self.logger.debug(f"Remote session established: {welcome}")

    def collect(self) -> tuple[Tree, Tree]:
        """Walk both sides concurrently and replace both Trees.

        Returns:
            Tuple of (local_tree, remote_tree)

        Raises:
            CollectError: If either walk fails
        """
        with self._phase(SyncPhase.COLLECT):
            with ThreadPoolExecutor(
                max_workers=2, thread_name_prefix="ftpmirror-collect"
            ) as executor:
                local_future = executor.submit(self.local_store.walk)
                remote_future = executor.submit(
                    self._retry.call, self.remote_store.walk
                )
                local_tree = self._walk_result(local_future, Side.LOCAL)
                remote_tree = self._walk_result(remote_future, Side.REMOTE)

            self._local_tree = local_tree
            self._remote_tree = remote_tree
            self._status.record_trees(local_tree, remote_tree)
            self.logger.debug(
                f"Collected {local_tree.file_count} local and "
                f"{remote_tree.file_count} remote file(s)"
            )
            return local_tree, remote_tree

    @staticmethod
    def _walk_result(future: "Future[Tree]", side: Side) -> Tree:
        try:
            return future.result()
        except Exception as e:
            raise CollectError(
                f"Walking {side.value} tree failed: {e}", side.value
            ) from e

    def consolidate(self) -> OperationPlan:
        """Reconcile the collected Trees into a new plan.

        Returns:
            The new OperationPlan

        Raises:
            ConsolidateError: If a Tree contains malformed entries
        """
        with self._phase(SyncPhase.CONSOLIDATE):
            self._status.reset_plan()
            reconciler = Reconciler(
                self.direction,
                recursive_remove=self.operations.recursive_remove,
                mtime_tolerance=self.config.mtime_tolerance,
            )
            plan = reconciler.reconcile(self._local_tree, self._remote_tree)
            self._plan = plan
            self._plan_pending = True
            self._status.record_plan(plan)

            log = self.logger.info if self.config.verbose else self.logger.debug
            log(f"Plan: {plan.summary()}")
            return plan

    def commit(self) -> int:
        """Execute the current plan.

        Returns:
            Number of completed operations

        Raises:
            StalePlanError: If the current plan was already committed
            CommitError: If an operation failed
            SyncCancelledError: If cancellation was requested
        """
        with self._phase(SyncPhase.COMMIT):
            if not self._plan_pending:
                raise StalePlanError("No pending plan; run consolidate() first")
            self._plan_pending = False

            committer = Committer(
                self.operations,
                width=self.config.connections,
                cancel_event=self._cancel,
            )
            return committer.commit(self._plan)

    # =========================
    # Run control
    # =========================

    def run(self, cancel_event: Optional[threading.Event] = None) -> SyncStatus:
        """Run all four phases.

        Args:
            cancel_event: Event that cancels the run when set (optional). The
                engine only reads it; cancel() does not set it.

        Returns:
            Final SyncStatus

        Raises:
            SyncInProgressError: If another run is in flight
            SyncError: The error of the failing phase
        """
        if not self._run_lock.acquire(blocking=False):
            raise SyncInProgressError("A sync run is already in progress")
        try:
            self._cancel_event = threading.Event()
            events = [self._cancel_event]
            if cancel_event is not None:
                events.append(cancel_event)
            self._cancel = _CancelToken(*events)

            self.logger.debug(
                f"Starting sync {self.config.local} -> {self.config.remote} "
                f"({self.direction.value})"
            )
            steps = (
                (SyncPhase.SETUP, self.setup),
                (SyncPhase.COLLECT, self.collect),
                (SyncPhase.CONSOLIDATE, self.consolidate),
                (SyncPhase.COMMIT, self.commit),
            )
            for phase, step in steps:
                self._check_cancelled(phase)
                step()

            self._status.set_phase(SyncPhase.DONE)
            status = self._status.snapshot()
            self.logger.debug(f"Sync finished: {status.change_count} change(s)")
            return status
        finally:
            self._run_lock.release()

    def get_status(self) -> SyncStatus:
        """Snapshot of the counters, safe to call from any thread."""
        return self._status.snapshot()

    def cancel(self) -> None:
        """Request cancellation of the current run.

        In-flight operations finish; no new commit operations are started.
        """
        self.logger.debug("Cancellation requested")
        self._cancel_event.set()

    def reset(self) -> None:
        """Clear counters, Trees and plan. The remote session is kept.

        Raises:
            SyncInProgressError: If a run is in flight
        """
        if self.is_running:
            raise SyncInProgressError("Cannot reset while a sync is running")
        self._local_tree = EMPTY_TREE
        self._remote_tree = EMPTY_TREE
        self._plan = EMPTY_PLAN
        self._plan_pending = False
        self._cancel_event = threading.Event()
        self._cancel = _CancelToken(self._cancel_event)
        self._status.reset()

    def close(self) -> None:
        """Close the remote store."""
        close = getattr(self.remote_store, "close", None)
        if close is not None:
            close()
        self._connected = False

    def __enter__(self) -> "SyncEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
