"""Local and remote stores exposing the tree walk and mirror operations."""

from .ftp import FtpStore
from .listing import ListEntry, parse_list_line, parse_mlsd_entry
from .local import LocalStore

__all__ = [
    "FtpStore",
    "ListEntry",
    "LocalStore",
    "parse_list_line",
    "parse_mlsd_entry",
]
