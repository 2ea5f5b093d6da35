"""
Custom exception hierarchy for shardcache.

All exceptions inherit from ShardCacheError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class ShardCacheError(Exception):
    """Base exception for all cache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(ShardCacheError):
    """Raised when cache options or settings are invalid.

    Examples:
        - Shard depth wider than the checksum
        - Compression level outside 0-9
        - Filename prefix containing a path separator
    """

    pass


class UnsafeKeyError(ShardCacheError):
    """Raised when a cache key could escape its shard directory.

    Context should include:
        - key: The rejected key
        - reason: Why it was rejected
    """

    pass


class EntryNotFoundError(ShardCacheError, KeyError):
    """Raised when loading a key that has no file on disk.

    Context should include:
        - key: The missing key
        - path: The path that was probed
    """

    def __str__(self) -> str:
        return ShardCacheError.__str__(self)


class CacheIOError(ShardCacheError):
    """Raised when the filesystem fails while reading an entry.

    Context should include:
        - path: The path being accessed
        - error: The underlying OSError message
    """

    pass


class EncodeError(ShardCacheError):
    """Raised when a value cannot be serialized with the configured method."""

    pass


class DecodeError(ShardCacheError):
    """Raised when stored bytes cannot be decompressed or deserialized.

    Usually means the entry was written with a different serialization
    method or compression setting than the one currently configured.
    """

    pass
