"""Sync phases and thread-safe progress counters."""

import threading
from dataclasses import dataclass
from enum import Enum

from .plan import OperationPlan
from .scanner import Tree


class SyncPhase(str, Enum):
    """Phase of the sync state machine."""

    IDLE = "idle"
    SETUP = "setup"
    COLLECT = "collect"
    CONSOLIDATE = "consolidate"
    COMMIT = "commit"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_running(self) -> bool:
        """True while a phase is executing."""
        return self not in (SyncPhase.IDLE, SyncPhase.DONE, SyncPhase.FAILED)


@dataclass(frozen=True)
class SyncStatus:
    """Snapshot of a sync run's counters."""

    change_count: int = 0
    """Number of operations in the current plan"""

    local_file_count: int = 0
    """Files found on the local side"""

    remote_file_count: int = 0
    """Files found on the remote side"""

    local_total_size: int = 0
    """Bytes found on the local side"""

    remote_total_size: int = 0
    """Bytes found on the remote side"""

    transfer_size: int = 0
    """Bytes the current plan transfers"""

    transferred_size: int = 0
    """Bytes transferred so far"""

    phase: SyncPhase = SyncPhase.IDLE
    """Phase the engine was in when the snapshot was taken"""

    @property
    def progress(self) -> float:
        """Fraction of ``transfer_size`` already transferred (1.0 if none)."""
        if self.transfer_size <= 0:
            return 1.0
        return min(1.0, self.transferred_size / self.transfer_size)


class StatusCounters:
    """Counters written by the engine thread and read from any thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._phase = SyncPhase.IDLE
        self._clear()

    def _clear(self) -> None:
        self._change_count = 0
        self._local_file_count = 0
        self._remote_file_count = 0
        self._local_total_size = 0
        self._remote_total_size = 0
        self._transfer_size = 0
        self._transferred_size = 0

    @property
    def phase(self) -> SyncPhase:
        with self._lock:
            return self._phase

    def set_phase(self, phase: SyncPhase) -> None:
        with self._lock:
            self._phase = phase

    def reset(self) -> None:
        """Zero every counter and return to IDLE."""
        with self._lock:
            self._clear()
            self._phase = SyncPhase.IDLE

    def reset_plan(self) -> None:
        """Zero the plan and transfer counters, keeping the tree counters."""
        with self._lock:
            self._change_count = 0
            self._transfer_size = 0
            self._transferred_size = 0

    def record_trees(self, local: Tree, remote: Tree) -> None:
        with self._lock:
            self._local_file_count = local.file_count
            self._local_total_size = local.total_size
            self._remote_file_count = remote.file_count
            self._remote_total_size = remote.total_size

    def record_plan(self, plan: OperationPlan) -> None:
        with self._lock:
            self._change_count = plan.total_change_count
            self._transfer_size = plan.total_transfer_size
            self._transferred_size = 0

    def add_transferred(self, size: int) -> None:
        """Account for a completed transfer."""
        with self._lock:
            self._transferred_size += size

    def snapshot(self) -> SyncStatus:
        with self._lock:
            return SyncStatus(
                change_count=self._change_count,
                local_file_count=self._local_file_count,
                remote_file_count=self._remote_file_count,
                local_total_size=self._local_total_size,
                remote_total_size=self._remote_total_size,
                transfer_size=self._transfer_size,
                transferred_size=self._transferred_size,
                phase=self._phase,
            )
