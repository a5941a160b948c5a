"""Shared fixtures for ftpmirror tests."""

import tempfile
import threading
import time
from pathlib import Path
from typing import Optional

import pytest

from ftpmirror.config import ConnectionConfig, SyncConfig
from ftpmirror.sync.scanner import FileEntry, Tree


class FakeRemoteStore:
    """In-memory remote store with failure injection.

    ``failures`` maps a method name to a list of exceptions raised by the next
    calls of that method, one per call.
    """

    recursive_remove = True

    def __init__(self, recursive_remove: bool = True):
        self.recursive_remove = recursive_remove
        self.dirs: set[str] = set()
        self.files: dict[str, tuple[bytes, float]] = {}
        self.failures: dict[str, list[BaseException]] = {}
        self.calls: list[tuple[str, str]] = []
        self.connect_count = 0
        self.reconnect_count = 0
        self.closed = False
        self._lock = threading.Lock()

    # Test helpers

    def add_dir(self, path_id: str) -> None:
        self.dirs.add(path_id)

    def add_file(self, path_id: str, data: bytes = b"", mtime: float = 0.0) -> None:
        self.files[path_id] = (data, mtime)

    def fail(self, method: str, *errors: BaseException) -> None:
        self.failures.setdefault(method, []).extend(errors)

    def _record(self, method: str, target: str = "") -> None:
        with self._lock:
            self.calls.append((method, target))
            pending = self.failures.get(method)
            error = pending.pop(0) if pending else None
        if error is not None:
            raise error

    def calls_to(self, method: str) -> list[str]:
        return [target for name, target in self.calls if name == method]

    # Store interface

    def connect(self, config: Optional[ConnectionConfig] = None) -> str:
        self._record("connect")
        self.connect_count += 1
        return "220 fake"

    def reconnect(self) -> str:
        self._record("reconnect")
        self.reconnect_count += 1
        return "220 fake"

    def close(self) -> None:
        self.closed = True

    def walk(self, path: Optional[str] = None) -> Tree:
        self._record("walk")
        with self._lock:
            files = [
                FileEntry(id=path_id, size=len(data), mtime=mtime)
                for path_id, (data, mtime) in sorted(self.files.items())
            ]
            return Tree.from_entries(set(self.dirs), files)

    def make_directory(self, path_id: str) -> None:
        self._record("make_directory", path_id)
        with self._lock:
            self.dirs.add(path_id)

    def remove_directory(self, path_id: str) -> None:
        self._record("remove_directory", path_id)
        prefix = path_id + "/"
        with self._lock:
            children = [d for d in self.dirs if d.startswith(prefix)]
            children += [f for f in self.files if f.startswith(prefix)]
            if children and not self.recursive_remove:
                raise OSError(f"Directory not empty: {path_id}")
            self.dirs = {
                d for d in self.dirs if d != path_id and not d.startswith(prefix)
            }
            self.files = {
                f: v for f, v in self.files.items() if not f.startswith(prefix)
            }

    def remove_file(self, path_id: str) -> None:
        self._record("remove_file", path_id)
        with self._lock:
            del self.files[path_id]

    def upload(self, local_path, path_id: str) -> None:
        self._record("upload", path_id)
        data = Path(local_path).read_bytes()
        with self._lock:
            self.files[path_id] = (data, time.time())

    def download(self, path_id: str, local_path) -> None:
        self._record("download", path_id)
        with self._lock:
            data, _ = self.files[path_id]
        target = Path(local_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def local_root(temp_dir):
    """Local sync root inside the temporary directory."""
    root = temp_dir / "local"
    root.mkdir()
    return root


@pytest.fixture
def remote_store():
    """Provide an empty in-memory remote store."""
    return FakeRemoteStore()


@pytest.fixture
def make_config(local_root):
    """Factory for a SyncConfig rooted at ``local_root``."""

    def factory(**kwargs) -> SyncConfig:
        kwargs.setdefault("local", local_root)
        kwargs.setdefault("remote", "/remote")
        kwargs.setdefault("retry_delay", 0)
        kwargs.setdefault("connection", ConnectionConfig(host="ftp.example.com"))
        return SyncConfig(**kwargs)

    return factory
