"""Utility functions for ftpmirror."""

from datetime import datetime, timezone
from typing import Optional

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_FTP_PORT: int = 21
DEFAULT_FTP_USER: str = "anonymous"
DEFAULT_FTP_PASSWORD: str = "guest"

# Idle time before TCP keepalive starts on control connections (seconds)
DEFAULT_KEEPALIVE: float = 30.0

# Socket timeout for control and data connections (seconds)
DEFAULT_TIMEOUT: float = 30.0

# Retry configuration for transient errors
DEFAULT_RETRY_LIMIT: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Number of concurrent operations per commit queue
DEFAULT_CONNECTIONS: int = 1

# FTP LIST output only carries minutes, so anything finer is noise
DEFAULT_MTIME_TOLERANCE: float = 60.0  # seconds


# =============================================================================
# Timestamp parsing utilities
# =============================================================================


def parse_mlsd_timestamp(value: Optional[str]) -> Optional[float]:
    """Parse the ``modify`` fact of an MLSD/MDTM reply.

    The format is ``YYYYMMDDHHMMSS`` with optional fractional seconds and is
    always expressed in UTC (RFC 3659).

    Args:
        value: Timestamp string (e.g., "20250115103000" or "20250115103000.123")

    Returns:
        Unix timestamp or None if parsing fails

    Examples:
        >>> parse_mlsd_timestamp("19700101000010")
        10.0
        >>> parse_mlsd_timestamp("19700101000010.5")
        10.5
        >>> parse_mlsd_timestamp("garbage") is None
        True
    """
    if not value:
        return None

    whole, _, fraction = value.partition(".")
    try:
        dt = datetime.strptime(whole, "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
        seconds = dt.timestamp()
        if fraction:
            seconds += float(f"0.{fraction}")
        return seconds
    except ValueError:
        return None


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
