"""Sync engine for ftpmirror - one-way local/remote mirroring."""

from .comparator import FileComparator, Reconciler, collapse_subdirectories
from .ignore import IgnoreMatcher
from .modes import STRATEGIES, Direction, DirectionStrategy, Side
from .plan import EMPTY_PLAN, OperationPlan, QueueName
from .pool import PoolResult, WorkerPool
from .retry import ResilientOperation, is_transient
from .scanner import EMPTY_TREE, DirectoryScanner, FileEntry, Tree
from .status import SyncPhase, SyncStatus
from .operations import SyncOperations
from .committer import Committer
from .engine import SyncEngine

__all__ = [
    "SyncEngine",
    "SyncPhase",
    "SyncStatus",
    "SyncOperations",
    "Committer",
    "Reconciler",
    "FileComparator",
    "collapse_subdirectories",
    "Direction",
    "DirectionStrategy",
    "STRATEGIES",
    "Side",
    "OperationPlan",
    "EMPTY_PLAN",
    "QueueName",
    "WorkerPool",
    "PoolResult",
    "ResilientOperation",
    "is_transient",
    "DirectoryScanner",
    "FileEntry",
    "Tree",
    "EMPTY_TREE",
    "IgnoreMatcher",
]
