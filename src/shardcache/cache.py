"""
Filesystem-backed key/value cache with checksum-sharded directories.

Layout on disk, for shard depth 2:

    {root}/{prefix}3/{prefix}3f/{prefix}{key}

Each entry is the serialized (and optionally DEFLATE-compressed) value with
no header. The filesystem is the only index: every operation re-derives the
path from the key.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from shardcache.codecs import decode, encode
from shardcache.exceptions import CacheIOError, EntryNotFoundError, UnsafeKeyError
from shardcache.filesystem import FileSystem, LocalFileSystem
from shardcache.logging import get_logger, log_context
from shardcache.sharding import derive_path, full_file_path
from shardcache.types import CacheOptions, ShardPath

if TYPE_CHECKING:
    from shardcache.config import Settings

logger = get_logger(__name__)


def check_key(key: str) -> None:
    """Reject keys that are not a single safe path component.

    Raises:
        UnsafeKeyError: If the key is empty, is a relative directory
            reference, contains a path separator or NUL byte, or cannot be
            encoded as a filename.
    """
    reason: str | None = None
    if not isinstance(key, str) or not key:
        reason = "key must be a non-empty string"
    elif key in (".", ".."):
        reason = "key must not be a directory reference"
    elif "\x00" in key:
        reason = "key must not contain NUL"
    elif any(sep and sep in key for sep in ("/", "\\", os.sep, os.altsep)):
        reason = "key must not contain a path separator"
    else:
        try:
            os.fsencode(key)
        except UnicodeEncodeError:
            reason = "key cannot be encoded as a filename"

    if reason is not None:
        raise UnsafeKeyError("Unsafe cache key", context={"key": key, "reason": reason})


class ShardedFileCache:
    """Key/value cache storing one file per key under a sharded directory tree.

    Configuration is fixed at construction. Directory levels are created
    lazily on the first save that needs them.

    Example:
        cache = ShardedFileCache("/var/cache/app", CacheOptions(shard_depth=2))
        cache.save({"a": 1}, "alpha.json")
        cache.load("alpha.json")  # {"a": 1}
    """

    def __init__(
        self,
        cache_dir: str | Path,
        options: CacheOptions | None = None,
        fs: FileSystem | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            cache_dir: Root directory of the cache. Relative paths are resolved
                against the current directory once, here. It is not created.
            options: Cache configuration. Defaults to CacheOptions().
            fs: Filesystem capability. Defaults to LocalFileSystem().
        """
        self._root = Path(os.path.abspath(cache_dir))
        self._options = options or CacheOptions()
        self._fs = fs or LocalFileSystem()
        self._root_norm = os.path.normpath(self._root)

    @classmethod
    def from_settings(cls, settings: Settings, fs: FileSystem | None = None) -> ShardedFileCache:
        """Create a cache from loaded Settings."""
        return cls(settings.CACHE_DIR, settings.to_options(), fs=fs)

    @property
    def root(self) -> Path:
        """Cache root directory."""
        return self._root

    @property
    def options(self) -> CacheOptions:
        """Cache configuration."""
        return self._options

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({str(self._root)!r}, {self._options!r})"

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def derive_path(self, key: str) -> ShardPath:
        """Derive the shard directory and its levels for a key."""
        return derive_path(
            self._root, key, self._options.shard_depth, self._options.filename_prefix
        )

    def path_for(self, key: str) -> Path:
        """Full path of the entry file for a key."""
        return full_file_path(
            self._root, key, self._options.shard_depth, self._options.filename_prefix
        )

    def _validate(self, key: str) -> None:
        if self._options.strict_keys:
            check_key(key)

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def ensure_dir_structure(self, key: str) -> bool:
        """Create every missing shard directory for a key.

        Creation and chmod failures are logged and skipped; the caller's
        writability check decides whether provisioning worked.

        Returns:
            Always True.
        """
        if self._options.shard_depth <= 0:
            return True

        mode = self._options.dir_mode
        for segment in self.derive_path(key).segments:
            if self._fs.is_dir(segment):
                continue
            try:
                self._fs.make_dir(segment, mode)
                logger.debug("Created shard directory", path=str(segment))
            except OSError as e:
                logger.debug("Could not create shard directory", path=str(segment), error=str(e))
            # mkdir applies the process umask, so set the mode explicitly.
            try:
                self._fs.chmod(segment, mode)
            except OSError as e:
                logger.debug("Could not set shard directory mode", path=str(segment), error=str(e))
        return True

    # ------------------------------------------------------------------
    # Entry operations
    # ------------------------------------------------------------------

    def save(self, value: Any, key: str) -> bool:
        """Serialize and store a value under key.

        Args:
            value: Value to cache. Must be representable by the configured
                serialization method.
            key: Cache key, used verbatim as the filename.

        Returns:
            True if the entry was written, False if the shard directory
            could not be provisioned or the write failed.

        Raises:
            UnsafeKeyError: If strict_keys is on and the key is unsafe.
            EncodeError: If the value cannot be serialized.
        """
        self._validate(key)
        opts = self._options

        with log_context(cache_root=str(self._root), operation="save"):
            shard = self.derive_path(key)
            file_path = self.path_for(key)

            if opts.shard_depth > 0:
                if not self._fs.is_writable(shard.directory):
                    self.ensure_dir_structure(key)
                if not self._fs.is_writable(shard.directory):
                    logger.warning(
                        "Shard directory is not writable, entry not saved",
                        key=key,
                        path=str(shard.directory),
                    )
                    return False

            data = encode(value, opts.serialization_method, opts.compression_level)

            try:
                self._write(file_path, data)
            except OSError as e:
                logger.warning(
                    "Failed to write cache entry", key=key, path=str(file_path), error=str(e)
                )
                return False

            try:
                self._fs.chmod(file_path, opts.file_mode)
            except OSError as e:
                logger.debug("Could not set entry file mode", path=str(file_path), error=str(e))

            logger.debug("Saved cache entry", key=key, size=len(data))
            return True

    def _write(self, path: Path, data: bytes) -> None:
        if not self._options.atomic_writes:
            self._fs.write_bytes(path, data)
            return

        tmp_path = path.with_name(f".{path.name}.{uuid4().hex[:12]}.tmp")
        try:
            self._fs.write_bytes(tmp_path, data)
            self._fs.replace(tmp_path, path)
        except OSError:
            try:
                self._fs.remove_file(tmp_path)
            except OSError as cleanup_error:
                logger.debug(
                    "Could not remove temp file", path=str(tmp_path), error=str(cleanup_error)
                )
            raise

    def load(self, key: str) -> Any:
        """Read and decode the value stored under key.

        Raises:
            UnsafeKeyError: If strict_keys is on and the key is unsafe.
            EntryNotFoundError: If no entry exists for the key.
            CacheIOError: If the entry file cannot be read.
            DecodeError: If the stored bytes do not match the configured
                serialization method or compression setting.
        """
        self._validate(key)
        path = self.path_for(key)

        try:
            data = self._fs.read_bytes(path)
        except FileNotFoundError as e:
            raise EntryNotFoundError(
                "Cache entry not found", context={"key": key, "path": str(path)}
            ) from e
        except OSError as e:
            raise CacheIOError(
                "Failed to read cache entry",
                context={"key": key, "path": str(path), "error": str(e)},
            ) from e

        opts = self._options
        return decode(data, opts.serialization_method, opts.compression_level)

    def get(self, key: str, default: Any = None) -> Any:
        """Like load(), but return default when the key is missing."""
        try:
            return self.load(key)
        except EntryNotFoundError:
            return default

    def exists(self, key: str) -> bool:
        """Check whether an entry file exists for key."""
        self._validate(key)
        return self._fs.exists(self.path_for(key))

    def remove(self, key: str) -> bool:
        """Delete the entry for key.

        Returns:
            True if a file was removed, False if it was missing or could
            not be deleted.
        """
        self._validate(key)
        path = self.path_for(key)

        with log_context(cache_root=str(self._root), operation="remove"):
            try:
                self._fs.remove_file(path)
            except FileNotFoundError:
                logger.debug("No cache entry to remove", key=key)
                return False
            except OSError as e:
                logger.warning("Failed to remove cache entry", key=key, path=str(path), error=str(e))
                return False

            logger.debug("Removed cache entry", key=key)
            return True

    # ------------------------------------------------------------------
    # Bulk clear
    # ------------------------------------------------------------------

    def clear(self, directory: str | Path | None = None) -> None:
        """Delete everything below directory (the cache root by default).

        Subdirectories are removed directly when empty, otherwise swept
        bottom-up first. Files or directories that cannot be removed are
        skipped. The cache root itself is never removed.

        An empty path ('', '.' or Path()) means the cache root, not the
        current directory.
        """
        if directory is None or Path(directory) == Path():
            target = self._root
        else:
            target = Path(directory)
        with log_context(cache_root=str(self._root), operation="clear"):
            self._sweep(target)

    def _is_root(self, directory: Path) -> bool:
        return os.path.normpath(os.path.abspath(directory)) == self._root_norm

    def _sweep(self, directory: Path) -> None:
        try:
            entries = self._fs.list_dir(directory)
        except OSError as e:
            logger.debug("Cannot list directory, nothing to clear", path=str(directory), error=str(e))
            return

        for entry in entries:
            if entry.is_dir:
                try:
                    self._fs.remove_dir(entry.path)
                except FileNotFoundError:
                    continue
                except OSError:
                    # Not empty: empty it first; the nested sweep removes it.
                    self._sweep(entry.path)
            else:
                try:
                    self._fs.remove_file(entry.path)
                except FileNotFoundError:
                    continue
                except OSError as e:
                    logger.debug("Could not remove file", path=str(entry.path), error=str(e))

        if not self._is_root(directory):
            try:
                self._fs.remove_dir(directory)
            except OSError as e:
                logger.debug("Could not remove directory", path=str(directory), error=str(e))
