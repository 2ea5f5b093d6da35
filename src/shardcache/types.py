"""
Core types for shardcache.

This module defines the data structures shared across the package:
- SerializationMethod enum for the payload codec
- CacheOptions, the frozen configuration of a cache instance
- ShardPath, the result of deriving a key's directory
- DirEntry, a directory listing item returned by the filesystem layer
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from shardcache.exceptions import ConfigurationError

# Width of the hex-rendered adler32 checksum, and so the deepest usable shard.
CHECKSUM_WIDTH = 8
MAX_SHARD_DEPTH = CHECKSUM_WIDTH

DEFAULT_DIR_MODE = 0o700
DEFAULT_FILE_MODE = 0o666


class SerializationMethod(str, Enum):
    """Codec used to turn values into bytes.

    JSON is faster and portable but limited to plain data.
    NATIVE uses pickle and round-trips most Python objects.
    """

    JSON = "json"
    NATIVE = "native"


@dataclass(frozen=True)
class CacheOptions:
    """Immutable configuration of a ShardedFileCache.

    Attributes:
        shard_depth: Number of nested checksum directories (0 disables sharding).
        filename_prefix: Prepended to every shard directory and entry filename.
        dir_mode: Permission bits applied to created shard directories.
        file_mode: Permission bits applied to written entry files.
        compression_level: DEFLATE level, 0 for no compression.
        serialization_method: Payload codec.
        atomic_writes: Write to a temp file and rename it into place.
        strict_keys: Reject keys that could escape the shard directory.
    """

    shard_depth: int = 1
    filename_prefix: str = ""
    dir_mode: int = DEFAULT_DIR_MODE
    file_mode: int = DEFAULT_FILE_MODE
    compression_level: int = 0
    serialization_method: SerializationMethod = SerializationMethod.JSON
    atomic_writes: bool = False
    strict_keys: bool = True

    def __post_init__(self) -> None:
        for name in ("shard_depth", "compression_level", "dir_mode", "file_mode"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(
                    f"{name} must be an integer",
                    context={name: value, "type": type(value).__name__},
                )
        if not isinstance(self.filename_prefix, str):
            raise ConfigurationError(
                "filename_prefix must be a string",
                context={"filename_prefix": self.filename_prefix},
            )
        if not 0 <= self.shard_depth <= MAX_SHARD_DEPTH:
            raise ConfigurationError(
                f"shard_depth must be between 0 and {MAX_SHARD_DEPTH}",
                context={"shard_depth": self.shard_depth},
            )
        if not 0 <= self.compression_level <= 9:
            raise ConfigurationError(
                "compression_level must be between 0 and 9",
                context={"compression_level": self.compression_level},
            )
        for sep in (os.sep, os.altsep, "/"):
            if sep and sep in self.filename_prefix:
                raise ConfigurationError(
                    "filename_prefix must not contain a path separator",
                    context={"filename_prefix": self.filename_prefix},
                )
        for name in ("dir_mode", "file_mode"):
            mode = getattr(self, name)
            if not 0 <= mode <= 0o7777:
                raise ConfigurationError(
                    f"{name} must be a permission mask between 0 and 0o7777",
                    context={name: oct(mode)},
                )
        # Accept the plain string form ("json"/"native") from callers.
        if not isinstance(self.serialization_method, SerializationMethod):
            try:
                method = SerializationMethod(self.serialization_method)
            except ValueError as e:
                raise ConfigurationError(
                    "serialization_method must be 'json' or 'native'",
                    context={"serialization_method": self.serialization_method},
                ) from e
            object.__setattr__(self, "serialization_method", method)

    @property
    def compressed(self) -> bool:
        """Whether payloads are DEFLATE-compressed."""
        return self.compression_level > 0


@dataclass(frozen=True)
class ShardPath:
    """Derived location of a key.

    Attributes:
        directory: Leaf directory that holds the entry file.
        segments: Every shard directory from the first level to the leaf,
            in creation order. Empty when sharding is disabled.
    """

    directory: Path
    segments: tuple[Path, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DirEntry:
    """A single item of a directory listing."""

    name: str
    path: Path
    is_dir: bool
