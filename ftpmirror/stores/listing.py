"""Parsing of FTP directory listings.

MLSD (RFC 3659) is preferred because it is machine readable and carries
second-resolution UTC timestamps. Servers without MLSD are listed with LIST,
whose output is parsed for the common Unix ``ls -l`` and MS-DOS formats. LIST
timestamps carry minutes at best and are interpreted as UTC.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..utils import parse_mlsd_timestamp


@dataclass(frozen=True)
class ListEntry:
    """One entry of a remote directory listing."""

    name: str
    is_dir: bool
    size: int = 0
    mtime: float = 0.0


_MONTHS = {
    name: index
    for index, name in enumerate(
        ["jan", "feb", "mar", "apr", "may", "jun",
         "jul", "aug", "sep", "oct", "nov", "dec"],
        start=1,
    )
}

# drwxr-xr-x   2 user  group      4096 Jan 15 10:30 name
# -rw-r--r--   1 user  group       123 Jan 15  2023 name
_UNIX_RE = re.compile(
    r"^(?P<mode>[\-dlbcps])[\w\-\+@\.]{9,10}\s+"
    r"\d+\s+\S+\s+(?:\S+\s+)?"
    r"(?P<size>\d+)\s+"
    r"(?P<month>[A-Za-z]{3})\s+(?P<day>\d{1,2})\s+"
    r"(?:(?P<hour>\d{1,2}):(?P<minute>\d{2})|(?P<year>\d{4}))\s"
    r"(?P<name>.+)$"
)

# 01-15-25  10:30AM       <DIR>          name
# 01-15-2025  10:30PM               123 name
_DOS_RE = re.compile(
    r"^(?P<month>\d{2})-(?P<day>\d{2})-(?P<year>\d{2}|\d{4})\s+"
    r"(?P<hour>\d{1,2}):(?P<minute>\d{2})(?P<ampm>[AaPp][Mm])?\s+"
    r"(?:(?P<dir><DIR>)|(?P<size>\d+))\s+"
    r"(?P<name>.+)$"
)


def parse_mlsd_entry(name: str, facts: dict[str, str]) -> Optional[ListEntry]:
    """Convert an MLSD ``(name, facts)`` pair into a ListEntry.

    Returns None for ``.``/``..`` entries and anything that is neither a
    file nor a directory.

    Examples:
        >>> parse_mlsd_entry("a.txt", {"type": "file", "size": "3",
        ...                            "modify": "19700101000100"})
        ListEntry(name='a.txt', is_dir=False, size=3, mtime=60.0)
        >>> parse_mlsd_entry(".", {"type": "cdir"}) is None
        True
    """
    kind = facts.get("type", "").lower()
    if name in (".", "..") or kind in ("cdir", "pdir"):
        return None
    if kind == "dir":
        return ListEntry(name=name, is_dir=True)
    if kind != "file":
        return None

    try:
        size = int(facts.get("size", 0))
    except ValueError:
        size = 0
    mtime = parse_mlsd_timestamp(facts.get("modify")) or 0.0
    return ListEntry(name=name, is_dir=False, size=size, mtime=mtime)


def parse_list_line(line: str, now: Optional[datetime] = None) -> Optional[ListEntry]:
    """Parse one line of LIST output.

    Args:
        line: Raw listing line
        now: Reference time for Unix entries without a year

    Returns:
        ListEntry, or None for totals, symlinks, ``.``/``..`` and
        unrecognized lines

    Examples:
        >>> entry = parse_list_line(
        ...     "-rw-r--r--   1 ftp ftp   10 Jan 15  2023 readme.txt")
        >>> entry.name, entry.is_dir, entry.size
        ('readme.txt', False, 10)
        >>> parse_list_line("total 8") is None
        True
    """
    line = line.rstrip("\r\n")
    if not line or line.lower().startswith("total "):
        return None

    match = _UNIX_RE.match(line)
    if match:
        return _from_unix(match, now or datetime.now(timezone.utc))

    match = _DOS_RE.match(line)
    if match:
        return _from_dos(match)

    return None


def _from_unix(match: "re.Match[str]", now: datetime) -> Optional[ListEntry]:
    mode = match.group("mode")
    name = match.group("name")
    if mode not in ("-", "d") or name in (".", ".."):
        return None

    month = _MONTHS.get(match.group("month").lower())
    if month is None:
        return None
    day = int(match.group("day"))

    try:
        if match.group("year"):
            dt = datetime(int(match.group("year")), month, day, tzinfo=timezone.utc)
        else:
            hour, minute = int(match.group("hour")), int(match.group("minute"))
            dt = datetime(now.year, month, day, hour, minute, tzinfo=timezone.utc)
            # Entries without a year are from the last six months
            if dt > now.replace(tzinfo=timezone.utc):
                dt = dt.replace(year=now.year - 1)
    except ValueError:
        return None

    is_dir = mode == "d"
    return ListEntry(
        name=name,
        is_dir=is_dir,
        size=0 if is_dir else int(match.group("size")),
        mtime=dt.timestamp(),
    )


def _from_dos(match: "re.Match[str]") -> Optional[ListEntry]:
    name = match.group("name")
    if name in (".", ".."):
        return None

    year = int(match.group("year"))
    if year < 100:
        year += 2000 if year < 70 else 1900
    hour = int(match.group("hour"))
    ampm = (match.group("ampm") or "").lower()
    if ampm == "pm" and hour < 12:
        hour += 12
    elif ampm == "am" and hour == 12:
        hour = 0

    try:
        dt = datetime(
            year,
            int(match.group("month")),
            int(match.group("day")),
            hour,
            int(match.group("minute")),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None

    is_dir = match.group("dir") is not None
    return ListEntry(
        name=name,
        is_dir=is_dir,
        size=0 if is_dir else int(match.group("size")),
        mtime=dt.timestamp(),
    )
