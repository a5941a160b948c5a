"""Configuration for sync runs."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import ConfigError
from .utils import (
    DEFAULT_CONNECTIONS,
    DEFAULT_FTP_PASSWORD,
    DEFAULT_FTP_PORT,
    DEFAULT_FTP_USER,
    DEFAULT_KEEPALIVE,
    DEFAULT_MTIME_TOLERANCE,
    DEFAULT_RETRY_DELAY,
    DEFAULT_RETRY_LIMIT,
    DEFAULT_TIMEOUT,
)


@dataclass
class ConnectionConfig:
    """Connection settings for the FTP endpoint."""

    host: str = ""
    """Server hostname"""

    port: int = DEFAULT_FTP_PORT
    """Control connection port"""

    user: str = DEFAULT_FTP_USER
    """Login user"""

    password: str = field(default=DEFAULT_FTP_PASSWORD, repr=False)
    """Login password"""

    keepalive: float = DEFAULT_KEEPALIVE
    """Idle seconds before TCP keepalive starts on the control socket (0 disables)"""

    timeout: float = DEFAULT_TIMEOUT
    """Socket timeout in seconds"""

    passive: bool = True
    """Use passive mode data connections"""

    def __post_init__(self) -> None:
        try:
            self.port = int(self.port)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid port: {self.port!r}") from e
        if not 0 < self.port < 65536:
            raise ConfigError(f"Port out of range: {self.port}")
        if self.timeout <= 0:
            raise ConfigError("Timeout must be positive")
        if self.keepalive < 0:
            raise ConfigError("Keepalive cannot be negative")


@dataclass
class SyncConfig:
    """Settings for a sync between a local root and a remote root.

    Examples:
        >>> config = SyncConfig(local="/data", remote="/backup/", ignore=["*.tmp"])
        >>> config.remote
        '/backup'
    """

    local: Union[str, Path] = field(default_factory=os.getcwd)
    """Local root directory"""

    remote: str = "/"
    """Remote root directory"""

    ignore: list[str] = field(default_factory=list)
    """Glob patterns excluded from both sides"""

    connections: int = DEFAULT_CONNECTIONS
    """Maximum concurrent operations per commit queue"""

    retry_limit: int = DEFAULT_RETRY_LIMIT
    """Retries for a remote call failing with a transient fault"""

    verbose: bool = False
    """Log settings and full plans (no behavioral effect)"""

    mtime_tolerance: float = DEFAULT_MTIME_TOLERANCE
    """Seconds an authoritative file must be newer by to count as modified"""

    retry_delay: float = DEFAULT_RETRY_DELAY
    """Base delay before a retry, doubled per attempt (0 disables)"""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    """FTP connection settings"""

    direction: str = "localToRemote"
    """Authoritative side: localToRemote or remoteToLocal"""

    def __post_init__(self) -> None:
        # Normalize local path
        self.local = Path(self.local).expanduser()

        # Normalize remote root to a leading slash and no trailing slash
        remote = (self.remote or "/").replace("\\", "/").strip()
        remote = "/" + remote.strip("/")
        self.remote = remote

        self.ignore = list(self.ignore or [])

        if self.connections < 1:
            raise ConfigError("connections must be at least 1")
        if self.retry_limit < 0:
            raise ConfigError("retryLimit cannot be negative")
        if self.mtime_tolerance < 0:
            raise ConfigError("mtimeTolerance cannot be negative")
        if self.retry_delay < 0:
            raise ConfigError("retryDelay cannot be negative")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncConfig":
        """Create a SyncConfig from a dictionary.

        Both the camelCase keys of a JSON config file and the snake_case
        attribute names are accepted.

        Args:
            data: Dictionary with config values

        Returns:
            SyncConfig instance

        Raises:
            ConfigError: If a value has the wrong type or is out of range

        Examples:
            >>> config = SyncConfig.from_dict(
            ...     {"host": "example.com", "pass": "secret", "retryLimit": 5}
            ... )
            >>> config.connection.host, config.retry_limit
            ('example.com', 5)
        """
        if not isinstance(data, dict):
            raise ConfigError("Config must be a JSON object")

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        ignore = pick("ignore", default=[])
        if isinstance(ignore, str):
            ignore = [ignore]
        elif isinstance(ignore, (tuple, set)):
            ignore = list(ignore)
        if not isinstance(ignore, list):
            raise ConfigError("ignore must be a list of patterns")

        try:
            connection = ConnectionConfig(
                host=str(pick("host", default="")),
                port=pick("port", default=DEFAULT_FTP_PORT),
                user=str(pick("user", default=DEFAULT_FTP_USER)),
                password=str(pick("pass", "password", default=DEFAULT_FTP_PASSWORD)),
                keepalive=float(pick("keepalive", default=DEFAULT_KEEPALIVE)),
                timeout=float(pick("timeout", default=DEFAULT_TIMEOUT)),
                passive=bool(pick("passive", default=True)),
            )
            return cls(
                local=pick("local", default=os.getcwd()),
                remote=str(pick("remote", default="/")),
                ignore=[str(p) for p in ignore],
                connections=int(pick("connections", default=DEFAULT_CONNECTIONS)),
                retry_limit=int(
                    pick("retryLimit", "retry_limit", default=DEFAULT_RETRY_LIMIT)
                ),
                verbose=bool(pick("verbose", default=False)),
                mtime_tolerance=float(
                    pick(
                        "mtimeTolerance",
                        "mtime_tolerance",
                        default=DEFAULT_MTIME_TOLERANCE,
                    )
                ),
                retry_delay=float(
                    pick("retryDelay", "retry_delay", default=DEFAULT_RETRY_DELAY)
                ),
                connection=connection,
                direction=str(pick("direction", default="localToRemote")),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid config value: {e}") from e


def load_config(path: Union[str, Path]) -> SyncConfig:
    """Load a SyncConfig from a JSON file.

    Args:
        path: Path to the JSON config file

    Returns:
        SyncConfig instance

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    config_path = Path(path)
    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {config_path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e

    return SyncConfig.from_dict(data)


def config_to_dict(config: SyncConfig, include_password: bool = False) -> dict:
    """Convert a SyncConfig back to the camelCase JSON layout.

    The password is masked unless ``include_password`` is set, so the result
    can be logged.
    """
    conn = config.connection
    return {
        "host": conn.host,
        "port": conn.port,
        "user": conn.user,
        "pass": conn.password if include_password else "***",
        "keepalive": conn.keepalive,
        "timeout": conn.timeout,
        "passive": conn.passive,
        "local": str(config.local),
        "remote": config.remote,
        "ignore": list(config.ignore),
        "connections": config.connections,
        "retryLimit": config.retry_limit,
        "verbose": config.verbose,
        "mtimeTolerance": config.mtime_tolerance,
        "retryDelay": config.retry_delay,
        "direction": config.direction,
    }


def merge_options(config: Optional[SyncConfig], **overrides: Any) -> SyncConfig:
    """Return a config with non-None overrides applied on top of ``config``.

    Connection keys (host, port, user, password) are applied to the nested
    connection settings.
    """
    data = config_to_dict(config, include_password=True) if config else {}
    key_map = {
        "password": "pass",
        "retry_limit": "retryLimit",
        "mtime_tolerance": "mtimeTolerance",
        "retry_delay": "retryDelay",
    }
    for key, value in overrides.items():
        if value is None:
            continue
        if key == "ignore":
            data["ignore"] = list(data.get("ignore", [])) + list(value)
            continue
        data[key_map.get(key, key)] = value
    return SyncConfig.from_dict(data)
