"""
Key sharding: map a cache key to a nested checksum directory.

A key is hashed with adler32 and rendered as 8 hex characters. Level i of
the shard tree is named after the first i characters of that string, so
each level narrows within its parent:

    {root}/{prefix}3/{prefix}3f/{prefix}3f2/.../{prefix}{key}
"""

from __future__ import annotations

import zlib
from pathlib import Path

from shardcache.exceptions import ConfigurationError
from shardcache.types import CHECKSUM_WIDTH, MAX_SHARD_DEPTH, ShardPath


def key_checksum(key: str) -> str:
    """Compute the fixed-width hex adler32 checksum of a key.

    Args:
        key: Cache key.

    Returns:
        8 lowercase hex characters.
    """
    # surrogatepass keeps lone surrogates hashable; valid text encodes as plain UTF-8.
    value = zlib.adler32(key.encode("utf-8", "surrogatepass")) & 0xFFFFFFFF
    return f"{value:0{CHECKSUM_WIDTH}x}"


def derive_path(root: str | Path, key: str, depth: int, prefix: str = "") -> ShardPath:
    """Derive the shard directory for a key.

    Args:
        root: Cache root directory.
        key: Cache key.
        depth: Number of shard levels. 0 keeps every entry directly in root.
        prefix: Filename prefix applied to each shard directory name.

    Returns:
        ShardPath with the leaf directory and the ordered list of levels.

    Raises:
        ConfigurationError: If depth is negative or wider than the checksum.
    """
    if not 0 <= depth <= MAX_SHARD_DEPTH:
        raise ConfigurationError(
            f"shard depth must be between 0 and {MAX_SHARD_DEPTH}",
            context={"depth": depth},
        )

    directory = Path(root)
    if depth == 0:
        return ShardPath(directory=directory)

    checksum = key_checksum(key)
    segments: list[Path] = []
    for i in range(1, depth + 1):
        directory = directory / f"{prefix}{checksum[:i]}"
        segments.append(directory)

    return ShardPath(directory=directory, segments=tuple(segments))


def full_file_path(root: str | Path, key: str, depth: int, prefix: str = "") -> Path:
    """Full path of the entry file for a key."""
    return derive_path(root, key, depth, prefix).directory / f"{prefix}{key}"
