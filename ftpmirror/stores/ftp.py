"""Remote store backed by an FTP server."""

import ftplib
import logging
import os
import socket
import threading
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

from ..config import ConnectionConfig
from ..exceptions import RemoteConnectionError, RemoteStoreError
from ..sync.ignore import IgnoreMatcher
from ..sync.scanner import FileEntry, Tree, join_path
from .listing import ListEntry, parse_list_line, parse_mlsd_entry

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Reply codes meaning the server does not implement a command
_UNSUPPORTED_CODES = ("500", "501", "502", "504")


def _reply_code(error: BaseException) -> str:
    return str(error)[:3]


class _LocalFileError(Exception):
    """Carries an OSError raised by the local end of a transfer."""

    def __init__(self, error: OSError):
        super().__init__(str(error))
        self.error = error


class _LocalFile:
    """File wrapper that keeps local I/O errors apart from socket errors.

    ``ftplib`` reads the upload source and writes the download target from
    inside the transfer, where a disk error would look like a network fault.
    """

    def __init__(self, f):
        self._f = f

    def read(self, size: int = -1) -> bytes:
        try:
            return self._f.read(size)
        except OSError as e:
            raise _LocalFileError(e) from e

    def write(self, data: bytes) -> int:
        try:
            return self._f.write(data)
        except OSError as e:
            raise _LocalFileError(e) from e


class FtpStore:
    """Remote store speaking FTP through ``ftplib``.

    Sessions are pooled: every operation borrows an idle control connection
    (opening one if none is idle) and returns it afterwards, so up to
    ``connections`` operations can run at once without sharing a session.
    A session that hit a transient fault is closed instead of returned.

    All errors are translated into ``RemoteConnectionError`` (transient:
    timeouts, dropped connections, 4xx replies) or ``RemoteStoreError``
    (permanent: 5xx replies, protocol errors). Local file errors hit during a
    transfer are raised as the original ``OSError``.
    """

    recursive_remove = True
    """remove_directory() deletes the directory contents first"""

    def __init__(
        self,
        connection: ConnectionConfig,
        root: str = "/",
        matcher: Optional[IgnoreMatcher] = None,
        ftp_factory: Callable[[], ftplib.FTP] = ftplib.FTP,
    ):
        """Initialize the store.

        Args:
            connection: Connection settings
            root: Remote root directory all Path-Ids are relative to
            matcher: Ignore matcher applied during walks
            ftp_factory: Creates unconnected ``ftplib.FTP`` objects
        """
        self.connection = connection
        self.root = "/" + root.strip("/")
        self.matcher = matcher or IgnoreMatcher()
        self._ftp_factory = ftp_factory
        self._idle: list[ftplib.FTP] = []
        self._lock = threading.Lock()
        self._use_mlsd = True

    # =========================
    # Session management
    # =========================

    def _open_session(self) -> ftplib.FTP:
        conn = self.connection
        ftp = self._ftp_factory()
        try:
            ftp.connect(conn.host, conn.port, timeout=conn.timeout)
            ftp.login(conn.user, conn.password)
            ftp.set_pasv(conn.passive)
        except BaseException:
            self._close_session(ftp)
            raise
        if conn.keepalive and getattr(ftp, "sock", None) is not None:
            _enable_keepalive(ftp.sock, conn.keepalive)
        logger.debug(f"Opened FTP session to {conn.host}:{conn.port}")
        return ftp

    @staticmethod
    def _close_session(ftp: ftplib.FTP) -> None:
        try:
            ftp.quit()
        except (OSError, EOFError, ftplib.Error):
            ftp.close()

    def _acquire(self) -> ftplib.FTP:
        with self._lock:
            if self._idle:
                return self._idle.pop()
        return self._translate("connect", self.connection.host, self._open_session)

    def _release(self, ftp: ftplib.FTP) -> None:
        with self._lock:
            self._idle.append(ftp)

    def connect(self, config: Optional[ConnectionConfig] = None) -> str:
        """Open a session and park it in the idle pool.

        Args:
            config: Replacement connection settings (optional)

        Returns:
            The server's welcome message

        Raises:
            RemoteConnectionError: On timeouts and dropped connections
            RemoteStoreError: On login failures and other permanent errors
        """
        if config is not None:
            self.connection = config
        ftp = self._translate("connect", self.connection.host, self._open_session)
        self._release(ftp)
        welcome = ftp.getwelcome() or ""
        logger.debug(f"Connected to {self.connection.host}: {welcome}")
        return welcome

    def reconnect(self) -> str:
        """Drop idle sessions and establish a fresh one."""
        self._close_idle()
        return self.connect()

    def close(self) -> None:
        """Close all idle sessions."""
        self._close_idle()

    def _close_idle(self) -> None:
        with self._lock:
            sessions, self._idle = self._idle, []
        for ftp in sessions:
            self._close_session(ftp)

    # =========================
    # Error translation
    # =========================

    @staticmethod
    def _translate(action: str, target: str, func: Callable[[], T]) -> T:
        try:
            return func()
        except ftplib.error_temp as e:
            raise RemoteConnectionError(f"{action} {target}: {e}") from e
        except (ftplib.error_perm, ftplib.error_proto, ftplib.error_reply) as e:
            raise RemoteStoreError(f"{action} {target}: {e}") from e
        except (socket.timeout, TimeoutError, ConnectionError, EOFError) as e:
            raise RemoteConnectionError(f"{action} {target}: {e}") from e
        except OSError as e:
            # Unknown host, unreachable network and the like
            raise RemoteStoreError(f"{action} {target}: {e}") from e

    def _run(self, action: str, target: str, func: Callable[[ftplib.FTP], T]) -> T:
        """Run ``func`` on a pooled session with error translation."""
        ftp = self._acquire()
        try:
            result = self._translate(action, target, lambda: func(ftp))
        except _LocalFileError as e:
            # The server still owes the reply to the aborted transfer
            self._close_session(ftp)
            raise e.error from None
        except RemoteConnectionError:
            # The session may be half-dead after a timeout
            self._close_session(ftp)
            raise
        except BaseException:
            self._release(ftp)
            raise
        self._release(ftp)
        return result

    def remote_path(self, path_id: str) -> str:
        """Absolute remote path of a Path-Id."""
        return join_path(self.root, path_id)

    # =========================
    # Listing
    # =========================

    def list_directory(self, path: str) -> list[ListEntry]:
        """List one remote directory (absolute path)."""
        if self._use_mlsd:
            try:
                return self._run("list", path, lambda ftp: self._mlsd(ftp, path))
            except RemoteStoreError as e:
                if isinstance(e, RemoteConnectionError) or not isinstance(
                    e.__cause__, ftplib.error_perm
                ):
                    raise
                if _reply_code(e.__cause__) not in _UNSUPPORTED_CODES:
                    raise
                logger.debug("Server does not support MLSD, falling back to LIST")
                self._use_mlsd = False
        return self._run("list", path, lambda ftp: self._list(ftp, path))

    @staticmethod
    def _mlsd(ftp: ftplib.FTP, path: str) -> list[ListEntry]:
        entries = []
        for name, facts in ftp.mlsd(path, facts=["type", "size", "modify"]):
            entry = parse_mlsd_entry(name, facts)
            if entry is not None:
                entries.append(entry)
        return entries

    @staticmethod
    def _list(ftp: ftplib.FTP, path: str) -> list[ListEntry]:
        lines: list[str] = []
        ftp.retrlines(f"LIST {path}", lines.append)
        entries = []
        for line in lines:
            entry = parse_list_line(line)
            if entry is not None:
                entries.append(entry)
        return entries

    def walk(self, path: Optional[str] = None) -> Tree:
        """Walk the remote tree depth-first.

        Args:
            path: Absolute remote directory (defaults to the store root)

        Returns:
            Tree with Path-Ids relative to ``path``
        """
        base = "/" + (path or self.root).strip("/")
        logger.debug(f"Walking remote {base}")
        dirs: list[str] = []
        files: list[FileEntry] = []
        self._walk(base, "", dirs, files)
        logger.debug(f"Walked remote {base}: {len(dirs)} dirs, {len(files)} files")
        return Tree.from_entries(dirs, files)

    def _walk(
        self,
        base: str,
        relative: str,
        dirs: list[str],
        files: list[FileEntry],
    ) -> None:
        directory = join_path(base, relative) if relative else base
        for entry in sorted(self.list_directory(directory), key=lambda e: e.name):
            path_id = f"{relative}/{entry.name}"
            if self.matcher.is_ignored(path_id):
                logger.debug(f"Ignoring: {path_id}")
                continue
            if entry.is_dir:
                dirs.append(path_id)
                self._walk(base, path_id, dirs, files)
            else:
                files.append(FileEntry(id=path_id, size=entry.size, mtime=entry.mtime))

    # =========================
    # Directory operations
    # =========================

    def make_directory(self, path_id: str) -> None:
        """Create a directory; an already existing directory is fine."""
        path = self.remote_path(path_id)

        def mkd(ftp: ftplib.FTP) -> None:
            try:
                ftp.mkd(path)
            except ftplib.error_perm:
                # 550 is also returned when the directory exists
                current = ftp.pwd()
                try:
                    ftp.cwd(path)
                except ftplib.error_perm:
                    pass
                else:
                    ftp.cwd(current)
                    return
                raise

        self._run("mkdir", path, mkd)
        logger.debug(f"Created remote directory {path}")

    def remove_directory(self, path_id: str) -> None:
        """Remove a directory and everything below it."""
        path = self.remote_path(path_id)
        for entry in self.list_directory(path):
            child = f"{path_id}/{entry.name}"
            if entry.is_dir:
                self.remove_directory(child)
            else:
                self.remove_file(child)
        self._run("rmdir", path, lambda ftp: ftp.rmd(path))
        logger.debug(f"Removed remote directory {path}")

    # =========================
    # File operations
    # =========================

    def remove_file(self, path_id: str) -> None:
        """Delete a remote file."""
        path = self.remote_path(path_id)
        self._run("delete", path, lambda ftp: ftp.delete(path))
        logger.debug(f"Removed remote file {path}")

    def upload(self, local_path: Union[str, Path], path_id: str) -> None:
        """Upload a local file, replacing the remote file.

        Raises:
            OSError: If the local file cannot be opened or read
        """
        path = self.remote_path(path_id)
        with open(local_path, "rb") as f:
            source = _LocalFile(f)
            self._run(
                "upload", path, lambda ftp: ftp.storbinary(f"STOR {path}", source)
            )
        logger.debug(f"Uploaded {local_path} to {path}")

    def download(self, path_id: str, local_path: Union[str, Path]) -> None:
        """Download a remote file, replacing the local file.

        Data is written to a ``.part`` file that replaces the target only
        once the transfer completed.
        """
        path = self.remote_path(path_id)
        target = Path(local_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        try:
            with open(partial, "wb") as f:
                sink = _LocalFile(f)
                self._run(
                    "download",
                    path,
                    lambda ftp: ftp.retrbinary(f"RETR {path}", sink.write),
                )
            os.replace(partial, target)
        finally:
            if partial.exists():
                partial.unlink()
        logger.debug(f"Downloaded {path} to {target}")

    def __repr__(self) -> str:
        return (
            f"FtpStore({self.connection.user}@{self.connection.host}:"
            f"{self.connection.port}{self.root})"
        )


def _enable_keepalive(sock: socket.socket, interval: float) -> None:
    """Turn on TCP keepalive for an idle control connection."""
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
        if hasattr(socket, "TCP_KEEPIDLE"):
            sock.setsockopt(
                socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, max(1, int(interval))
            )
    except OSError as e:
        logger.debug(f"Could not enable keepalive: {e}")
