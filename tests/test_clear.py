"""
Tests for the recursive clear sweep.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from shardcache.cache import ShardedFileCache
from shardcache.filesystem import LocalFileSystem
from shardcache.types import CacheOptions, DirEntry

CacheFactory = Callable[..., ShardedFileCache]


class RecordingFileSystem(LocalFileSystem):
    """Local filesystem that records listing and removal calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Path]] = []

    def list_dir(self, path: Path) -> list[DirEntry]:
        self.calls.append(("list_dir", path))
        return super().list_dir(path)

    def remove_dir(self, path: Path) -> None:
        self.calls.append(("remove_dir", path))
        super().remove_dir(path)


class VanishingEntriesFileSystem(LocalFileSystem):
    """Lists phantom entries that are already gone when removed."""

    def list_dir(self, path: Path) -> list[DirEntry]:
        entries = super().list_dir(path)
        return entries + [
            DirEntry(name="ghost-file", path=path / "ghost-file", is_dir=False),
            DirEntry(name="ghost-dir", path=path / "ghost-dir", is_dir=True),
        ]


class StubbornFileSystem(LocalFileSystem):
    """Refuses to delete files with a given name."""

    def __init__(self, stubborn_name: str) -> None:
        self.stubborn_name = stubborn_name

    def remove_file(self, path: Path) -> None:
        if path.name == self.stubborn_name:
            raise PermissionError(13, "Permission denied", str(path))
        super().remove_file(path)


def _populate(cache: ShardedFileCache, count: int = 20) -> None:
    for i in range(count):
        assert cache.save({"i": i}, f"key-{i}.json")


class TestClear:
    """Tests for clear()."""

    def test_clear_empties_but_keeps_root(
        self, make_cache: CacheFactory, cache_root: Path
    ) -> None:
        """Test that clear removes every descendant and leaves root."""
        cache = make_cache(shard_depth=3)
        _populate(cache)
        assert any(cache_root.iterdir())

        cache.clear()

        assert cache_root.is_dir()
        assert list(cache_root.iterdir()) == []

    def test_clear_twice_is_noop(self, make_cache: CacheFactory, cache_root: Path) -> None:
        """Test that clearing an empty root does nothing."""
        cache = make_cache(shard_depth=2)
        _populate(cache, 3)

        cache.clear()
        cache.clear()

        assert cache_root.is_dir()
        assert list(cache_root.iterdir()) == []

    def test_clear_flat_cache(self, make_cache: CacheFactory, cache_root: Path) -> None:
        """Test clearing a depth-0 cache of plain files."""
        cache = make_cache(shard_depth=0)
        _populate(cache, 5)

        cache.clear()

        assert list(cache_root.iterdir()) == []

    def test_clear_missing_root_does_not_raise(self, temp_dir: Path) -> None:
        """Test that an unlistable directory is treated as empty."""
        cache = ShardedFileCache(temp_dir / "does-not-exist", CacheOptions())
        cache.clear()

    def test_clear_removes_foreign_content(self, make_cache: CacheFactory, cache_root: Path) -> None:
        """Test that clear also sweeps files and dirs the cache did not create."""
        (cache_root / "a" / "b" / "c").mkdir(parents=True)
        (cache_root / "a" / "b" / "c" / "deep.txt").write_text("x")
        (cache_root / "a" / "empty").mkdir()
        (cache_root / "top.txt").write_text("y")

        make_cache().clear()

        assert list(cache_root.iterdir()) == []

    def test_clear_subdirectory_removes_it(
        self, make_cache: CacheFactory, cache_root: Path
    ) -> None:
        """Test that clearing a non-root directory removes it as well."""
        cache = make_cache(shard_depth=2)
        _populate(cache)
        target = cache.derive_path("key-0.json").segments[0]

        cache.clear(target)

        assert not target.exists()
        assert cache_root.is_dir()
        assert not cache.exists("key-0.json")

    def test_clear_root_given_explicitly_is_kept(
        self, make_cache: CacheFactory, cache_root: Path
    ) -> None:
        """Test that passing the root path (even unnormalized) keeps it."""
        cache = make_cache(shard_depth=1)
        _populate(cache, 3)

        cache.clear(cache_root / "." / "")

        assert cache_root.is_dir()
        assert list(cache_root.iterdir()) == []

    def test_empty_dirs_removed_without_listing(
        self, make_cache: CacheFactory, cache_root: Path
    ) -> None:
        """Test that already-empty subdirectories are not descended into."""
        fs = RecordingFileSystem()
        cache = make_cache(fs=fs, shard_depth=0)
        for name in ("one", "two", "three"):
            (cache_root / name).mkdir()

        cache.clear()

        listed = [path for op, path in fs.calls if op == "list_dir"]
        assert listed == [cache_root]
        assert list(cache_root.iterdir()) == []

    def test_non_empty_dir_swept_then_removed(
        self, make_cache: CacheFactory, cache_root: Path
    ) -> None:
        """Test the try-remove, recurse, remove order for a full directory."""
        fs = RecordingFileSystem()
        cache = make_cache(fs=fs, shard_depth=0)
        full = cache_root / "full"
        full.mkdir()
        (full / "f").write_text("x")

        cache.clear()

        assert fs.calls == [
            ("list_dir", cache_root),
            ("remove_dir", full),
            ("list_dir", full),
            ("remove_dir", full),
        ]

    def test_vanished_entries_are_ignored(
        self, make_cache: CacheFactory, cache_root: Path
    ) -> None:
        """Test that entries deleted between listing and removal do not raise."""
        cache = make_cache(fs=VanishingEntriesFileSystem(), shard_depth=2)
        _populate(cache, 5)

        cache.clear()

        assert list(cache_root.iterdir()) == []

    def test_stubborn_file_is_skipped(self, make_cache: CacheFactory, cache_root: Path) -> None:
        """Test that an undeletable file does not abort the sweep."""
        cache = make_cache(fs=StubbornFileSystem("key-3.json"), shard_depth=2)
        _populate(cache, 10)
        stubborn = cache.path_for("key-3.json")

        cache.clear()

        assert stubborn.is_file()
        remaining = sorted(p for p in cache_root.rglob("*") if p.is_file())
        assert remaining == [stubborn]

    @pytest.mark.parametrize("directory", ["", ".", Path()])
    def test_empty_directory_means_root(
        self,
        make_cache: CacheFactory,
        cache_root: Path,
        temp_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
        directory: str | Path,
    ) -> None:
        """Test that an empty path clears the cache, not the working directory."""
        work = temp_dir / "work"
        work.mkdir()
        precious = work / "precious.txt"
        precious.write_text("keep")
        cache = make_cache(shard_depth=2)
        _populate(cache, 5)
        monkeypatch.chdir(work)

        cache.clear(directory)

        assert precious.read_text() == "keep"
        assert cache_root.is_dir()
        assert list(cache_root.iterdir()) == []

    def test_relative_root_survives_chdir(
        self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a relative root is pinned when the cache is created."""
        (temp_dir / "cache").mkdir()
        elsewhere = temp_dir / "elsewhere"
        elsewhere.mkdir()
        monkeypatch.chdir(temp_dir)
        cache = ShardedFileCache("cache", CacheOptions(shard_depth=2))
        _populate(cache, 5)

        monkeypatch.chdir(elsewhere)
        assert cache.root.resolve() == (temp_dir / "cache").resolve()
        assert cache.load("key-1.json") == {"i": 1}

        cache.clear()

        assert (temp_dir / "cache").is_dir()
        assert list((temp_dir / "cache").iterdir()) == []
        assert elsewhere.is_dir()
