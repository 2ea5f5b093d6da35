"""
Configuration management using pydantic-settings.

Loads cache configuration from SHARDCACHE_* environment variables and .env
files, validates it, and converts it to the immutable CacheOptions used by
ShardedFileCache.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shardcache.types import (
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    MAX_SHARD_DEPTH,
    CacheOptions,
    SerializationMethod,
)


class Settings(BaseSettings):
    """Cache settings loaded from environment variables.

    All variables are prefixed with SHARDCACHE_, e.g. SHARDCACHE_CACHE_DIR.

    Optional:
        CACHE_DIR: Root directory of the cache
        SHARD_DEPTH: Number of nested checksum directories
        FILENAME_PREFIX: Prefix for shard directories and entry files
        DIR_MODE: Octal permission mask for shard directories (e.g. "0700")
        FILE_MODE: Octal permission mask for entry files (e.g. "0666")
        COMPRESSION_LEVEL: DEFLATE level, 0 disables compression
        SERIALIZATION_METHOD: json or native
        ATOMIC_WRITES: Write through a temp file and rename
        STRICT_KEYS: Reject keys containing path separators or traversal
        LOG_LEVEL: Logging level
        LOG_FILE: Optional JSON-lines log file
    """

    model_config = SettingsConfigDict(
        env_prefix="SHARDCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    CACHE_DIR: Path = Field(default=Path(".cache"), description="Cache root directory")
    SHARD_DEPTH: int = Field(
        default=1, ge=0, le=MAX_SHARD_DEPTH, description="Number of shard levels"
    )
    FILENAME_PREFIX: str = Field(default="", description="Filename prefix")
    DIR_MODE: int = Field(default=DEFAULT_DIR_MODE, description="Shard directory mode")
    FILE_MODE: int = Field(default=DEFAULT_FILE_MODE, description="Entry file mode")
    COMPRESSION_LEVEL: int = Field(default=0, ge=0, le=9, description="DEFLATE level")
    SERIALIZATION_METHOD: SerializationMethod = Field(
        default=SerializationMethod.JSON, description="Payload codec"
    )
    ATOMIC_WRITES: bool = Field(default=False, description="Write via temp file + rename")
    STRICT_KEYS: bool = Field(default=True, description="Reject unsafe cache keys")

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON-lines log file")

    @field_validator("DIR_MODE", "FILE_MODE", mode="before")
    @classmethod
    def parse_octal_mode(cls, v: Any) -> Any:
        """Read permission masks written as octal strings ("0700", "0o700")."""
        if isinstance(v, str):
            text = v.strip().lower()
            if text.startswith("0o"):
                text = text[2:]
            try:
                return int(text, 8)
            except ValueError as e:
                raise ValueError(f"permission mask must be octal, got {v!r}") from e
        return v

    @field_validator("DIR_MODE", "FILE_MODE")
    @classmethod
    def validate_mode_range(cls, v: int) -> int:
        if not 0 <= v <= 0o7777:
            raise ValueError("permission mask must be between 0 and 0o7777")
        return v

    @field_validator("FILENAME_PREFIX")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        if "/" in v or "\\" in v:
            raise ValueError("FILENAME_PREFIX must not contain a path separator")
        return v

    def to_options(self) -> CacheOptions:
        """Build the immutable CacheOptions for these settings."""
        return CacheOptions(
            shard_depth=self.SHARD_DEPTH,
            filename_prefix=self.FILENAME_PREFIX,
            dir_mode=self.DIR_MODE,
            file_mode=self.FILE_MODE,
            compression_level=self.COMPRESSION_LEVEL,
            serialization_method=self.SERIALIZATION_METHOD,
            atomic_writes=self.ATOMIC_WRITES,
            strict_keys=self.STRICT_KEYS,
        )

    def display(self) -> dict[str, str | int | bool | None]:
        """Return settings as display-friendly values."""
        return {
            "CACHE_DIR": str(self.CACHE_DIR),
            "SHARD_DEPTH": self.SHARD_DEPTH,
            "FILENAME_PREFIX": self.FILENAME_PREFIX,
            "DIR_MODE": oct(self.DIR_MODE),
            "FILE_MODE": oct(self.FILE_MODE),
            "COMPRESSION_LEVEL": self.COMPRESSION_LEVEL,
            "SERIALIZATION_METHOD": self.SERIALIZATION_METHOD.value,
            "ATOMIC_WRITES": self.ATOMIC_WRITES,
            "STRICT_KEYS": self.STRICT_KEYS,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
