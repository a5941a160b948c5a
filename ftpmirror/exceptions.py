"""Exceptions raised by ftpmirror."""

from typing import Optional


class FtpMirrorError(Exception):
    """Base exception for all ftpmirror errors."""


class ConfigError(FtpMirrorError):
    """Raised when the sync configuration is invalid."""


class RemoteStoreError(FtpMirrorError):
    """Raised when a remote store operation fails permanently."""


class RemoteConnectionError(RemoteStoreError):
    """Raised when a remote store operation fails with a transient fault.

    Timeouts, dropped control connections and temporary (4xx) server replies
    end up here. These are the only errors that are retried.
    """


class SyncError(FtpMirrorError):
    """Base exception for failures of a sync phase."""

    phase = "sync"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SetupError(SyncError):
    """The remote session could not be established."""

    phase = "setup"


class CollectError(SyncError):
    """Walking one side of the sync failed."""

    phase = "collect"

    def __init__(self, message: str, side: Optional[str] = None):
        super().__init__(message)
        self.side = side


class ConsolidateError(SyncError):
    """A tree violated the data model while being diffed."""

    phase = "consolidate"


class CommitError(SyncError):
    """An operation in a commit queue failed.

    Attributes:
        queue: Name of the queue that failed
        cause: The underlying store error
        path: Path-Id of the entry whose operation failed
    """

    phase = "commit"

    def __init__(
        self,
        queue: str,
        cause: BaseException,
        path: Optional[str] = None,
    ):
        target = f" ({path})" if path else ""
        super().__init__(f"{queue} failed{target}: {cause}")
        self.queue = queue
        self.cause = cause
        self.path = path


class StalePlanError(SyncError):
    """Raised when committing a plan that was already committed."""

    phase = "commit"


class SyncCancelledError(SyncError):
    """Raised when a run is cancelled before it completes."""

    def __init__(self, message: str, phase: str):
        super().__init__(message)
        self.phase = phase


class SyncInProgressError(SyncError):
    """Raised when run() is called while another run is in flight."""
