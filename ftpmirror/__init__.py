"""ftpmirror - one-way directory mirroring between a local folder and an FTP server."""

__version__ = "0.1.0"

from .config import ConnectionConfig, SyncConfig, load_config
from .exceptions import (
    CollectError,
    CommitError,
    ConfigError,
    ConsolidateError,
    FtpMirrorError,
    RemoteConnectionError,
    RemoteStoreError,
    SetupError,
    StalePlanError,
    SyncCancelledError,
    SyncError,
    SyncInProgressError,
)
from .sync import Direction, SyncEngine, SyncPhase, SyncStatus
from .stores import FtpStore, LocalStore

__all__ = [
    "__version__",
    "ConnectionConfig",
    "SyncConfig",
    "load_config",
    "SyncEngine",
    "SyncPhase",
    "SyncStatus",
    "Direction",
    "FtpStore",
    "LocalStore",
    "FtpMirrorError",
    "ConfigError",
    "RemoteStoreError",
    "RemoteConnectionError",
    "SyncError",
    "SetupError",
    "CollectError",
    "ConsolidateError",
    "CommitError",
    "StalePlanError",
    "SyncCancelledError",
    "SyncInProgressError",
]
