"""
Pytest configuration and fixtures for shardcache tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Generator
from unittest.mock import patch

import pytest

from shardcache.cache import ShardedFileCache
from shardcache.config import clear_settings_cache
from shardcache.filesystem import FileSystem
from shardcache.types import CacheOptions


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def cache_root(temp_dir: Path) -> Path:
    """Provide an existing, empty cache root directory."""
    root = temp_dir / "cache"
    root.mkdir()
    return root


@pytest.fixture
def make_cache(cache_root: Path) -> Callable[..., ShardedFileCache]:
    """Factory building a cache over cache_root with the given options.

    Usage:
        cache = make_cache(shard_depth=2, compression_level=6)
        cache = make_cache(fs=RecordingFileSystem())
    """

    def _make(fs: FileSystem | None = None, **options: Any) -> ShardedFileCache:
        return ShardedFileCache(cache_root, CacheOptions(**options), fs=fs)

    return _make


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide SHARDCACHE_* environment variables pointing at temp_dir."""
    env_vars = {
        "SHARDCACHE_CACHE_DIR": str(temp_dir / "env-cache"),
        "SHARDCACHE_SHARD_DEPTH": "2",
        "SHARDCACHE_FILENAME_PREFIX": "",
        "SHARDCACHE_DIR_MODE": "0750",
        "SHARDCACHE_FILE_MODE": "0640",
        "SHARDCACHE_COMPRESSION_LEVEL": "6",
        "SHARDCACHE_SERIALIZATION_METHOD": "json",
        "SHARDCACHE_LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars

    clear_settings_cache()
