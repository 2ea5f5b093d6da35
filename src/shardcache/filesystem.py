"""
Filesystem capability used by the cache.

The cache never touches ``os`` directly; it goes through a FileSystem so
tests (and callers with unusual storage) can inject their own. Every method
raises OSError on failure and leaves the decision to log-and-continue or
propagate to the caller.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path

from shardcache.types import DirEntry


class FileSystem(ABC):
    """Abstract interface for the filesystem operations the cache needs."""

    @abstractmethod
    def is_dir(self, path: Path) -> bool:
        """Check whether path is an existing directory."""
        ...

    @abstractmethod
    def exists(self, path: Path) -> bool:
        """Check whether anything exists at path."""
        ...

    @abstractmethod
    def is_writable(self, path: Path) -> bool:
        """Check whether path exists and the process may write to it."""
        ...

    @abstractmethod
    def make_dir(self, path: Path, mode: int) -> None:
        """Create a single directory (parents must exist)."""
        ...

    @abstractmethod
    def chmod(self, path: Path, mode: int) -> None:
        """Set permission bits on path."""
        ...

    @abstractmethod
    def read_bytes(self, path: Path) -> bytes:
        """Read a whole file."""
        ...

    @abstractmethod
    def write_bytes(self, path: Path, data: bytes) -> None:
        """Create or truncate a file and write data to it."""
        ...

    @abstractmethod
    def replace(self, src: Path, dst: Path) -> None:
        """Atomically rename src over dst."""
        ...

    @abstractmethod
    def remove_file(self, path: Path) -> None:
        """Delete a file."""
        ...

    @abstractmethod
    def remove_dir(self, path: Path) -> None:
        """Delete an empty directory. Raises OSError if it is not empty."""
        ...

    @abstractmethod
    def list_dir(self, path: Path) -> list[DirEntry]:
        """List a directory, excluding the ``.`` and ``..`` pseudo-entries.

        The directory handle must be released before this returns.
        """
        ...


class LocalFileSystem(FileSystem):
    """FileSystem backed by the local OS."""

    def is_dir(self, path: Path) -> bool:
        return os.path.isdir(path)

    def exists(self, path: Path) -> bool:
        return os.path.lexists(path)

    def is_writable(self, path: Path) -> bool:
        return os.path.exists(path) and os.access(path, os.W_OK)

    def make_dir(self, path: Path, mode: int) -> None:
        os.mkdir(path, mode)

    def chmod(self, path: Path, mode: int) -> None:
        os.chmod(path, mode)

    def read_bytes(self, path: Path) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def write_bytes(self, path: Path, data: bytes) -> None:
        with open(path, "wb") as f:
            f.write(data)

    def replace(self, src: Path, dst: Path) -> None:
        os.replace(src, dst)

    def remove_file(self, path: Path) -> None:
        os.unlink(path)

    def remove_dir(self, path: Path) -> None:
        os.rmdir(path)

    def list_dir(self, path: Path) -> list[DirEntry]:
        # scandir never yields "." or "..".
        with os.scandir(path) as it:
            return [
                DirEntry(
                    name=entry.name,
                    path=Path(entry.path),
                    is_dir=entry.is_dir(follow_symlinks=False),
                )
                for entry in it
            ]
