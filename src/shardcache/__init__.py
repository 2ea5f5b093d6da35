"""
Sharded filesystem key/value cache.

This package provides:
- ShardedFileCache: save/load/remove/clear of structured values, one file per key
- CacheOptions: immutable cache configuration
- Settings: environment-driven configuration (pydantic-settings)
"""

from shardcache.cache import ShardedFileCache, check_key
from shardcache.exceptions import (
    CacheIOError,
    ConfigurationError,
    DecodeError,
    EncodeError,
    EntryNotFoundError,
    ShardCacheError,
    UnsafeKeyError,
)
from shardcache.filesystem import FileSystem, LocalFileSystem
from shardcache.sharding import derive_path, key_checksum
from shardcache.types import CacheOptions, SerializationMethod, ShardPath

__version__ = "0.1.0"

__all__ = [
    "CacheIOError",
    "CacheOptions",
    "ConfigurationError",
    "DecodeError",
    "EncodeError",
    "EntryNotFoundError",
    "FileSystem",
    "LocalFileSystem",
    "SerializationMethod",
    "ShardCacheError",
    "ShardPath",
    "ShardedFileCache",
    "UnsafeKeyError",
    "__version__",
    "check_key",
    "derive_path",
    "key_checksum",
]
