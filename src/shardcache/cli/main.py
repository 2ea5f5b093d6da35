"""
CLI for shardcache.

Commands:
    shardcache put KEY VALUE - Store a JSON value under KEY
    shardcache get KEY - Print the value stored under KEY
    shardcache rm KEY - Remove KEY
    shardcache path KEY - Show where KEY lives on disk
    shardcache clear - Empty the cache
    shardcache config - Show current configuration
    shardcache version - Print version
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Annotated, Any, Optional

import orjson
import typer
from rich.console import Console
from rich.table import Table

from shardcache import __version__
from shardcache.cache import ShardedFileCache
from shardcache.config import Settings, clear_settings_cache, get_settings
from shardcache.exceptions import EntryNotFoundError, ShardCacheError
from shardcache.logging import setup_logging
from shardcache.sharding import key_checksum

app = typer.Typer(
    name="shardcache",
    help="Sharded filesystem key/value cache",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

CacheDirOption = Annotated[
    Optional[Path],
    typer.Option("--cache-dir", "-d", help="Cache root (default: SHARDCACHE_CACHE_DIR)"),
]
DepthOption = Annotated[
    Optional[int],
    typer.Option("--depth", help="Shard depth (default: SHARDCACHE_SHARD_DEPTH)"),
]


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except ValueError:
        return None


def _open_cache(cache_dir: Path | None, depth: int | None) -> ShardedFileCache:
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'shardcache config' to see what's wrong."
        )
        raise typer.Exit(1)

    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    try:
        options = settings.to_options()
        if depth is not None:
            options = replace(options, shard_depth=depth)
    except ShardCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    return ShardedFileCache(cache_dir or settings.CACHE_DIR, options)


def _render(value: Any) -> str:
    try:
        return orjson.dumps(
            value, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS
        ).decode("utf-8")
    except TypeError:
        return repr(value)


@app.command()
def put(
    key: Annotated[str, typer.Argument(help="Cache key")],
    value: Annotated[str, typer.Argument(help="Value as JSON text")],
    cache_dir: CacheDirOption = None,
    depth: DepthOption = None,
) -> None:
    """Store a JSON value under KEY."""
    try:
        parsed = orjson.loads(value)
    except orjson.JSONDecodeError as e:
        error_console.print(f"[red]Error:[/red] VALUE is not valid JSON: {e}")
        raise typer.Exit(1)

    cache = _open_cache(cache_dir, depth)
    cache.root.mkdir(parents=True, exist_ok=True)

    try:
        saved = cache.save(parsed, key)
    except ShardCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not saved:
        error_console.print(f"[red]Error:[/red] could not write {cache.path_for(key)}")
        raise typer.Exit(1)

    console.print(f"[green]Saved[/green] {key}")


@app.command()
def get(
    key: Annotated[str, typer.Argument(help="Cache key")],
    cache_dir: CacheDirOption = None,
    depth: DepthOption = None,
) -> None:
    """Print the value stored under KEY."""
    cache = _open_cache(cache_dir, depth)

    try:
        value = cache.load(key)
    except EntryNotFoundError:
        error_console.print(f"[yellow]Not found:[/yellow] {key}")
        raise typer.Exit(1)
    except ShardCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(_render(value), markup=False, highlight=False)


@app.command()
def rm(
    key: Annotated[str, typer.Argument(help="Cache key")],
    cache_dir: CacheDirOption = None,
    depth: DepthOption = None,
) -> None:
    """Remove KEY from the cache."""
    cache = _open_cache(cache_dir, depth)

    try:
        removed = cache.remove(key)
    except ShardCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not removed:
        error_console.print(f"[yellow]Not removed:[/yellow] {key}")
        raise typer.Exit(1)

    console.print(f"[green]Removed[/green] {key}")


@app.command()
def path(
    key: Annotated[str, typer.Argument(help="Cache key")],
    cache_dir: CacheDirOption = None,
    depth: DepthOption = None,
) -> None:
    """Show the checksum, shard directories and file path for KEY."""
    cache = _open_cache(cache_dir, depth)

    try:
        present = cache.exists(key)
    except ShardCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title=key, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("checksum", key_checksum(key))
    for level, segment in enumerate(cache.derive_path(key).segments, start=1):
        table.add_row(f"level {level}", str(segment))
    table.add_row("file", str(cache.path_for(key)))
    table.add_row("exists", "yes" if present else "no")

    console.print(table)


@app.command()
def clear(
    cache_dir: CacheDirOption = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation"),
    ] = False,
) -> None:
    """Delete every entry and shard directory below the cache root."""
    cache = _open_cache(cache_dir, None)

    if not yes:
        typer.confirm(f"Delete everything under {cache.root}?", abort=True)

    cache.clear()
    console.print(f"[green]Cleared[/green] {cache.root}")


@app.command()
def config() -> None:
    """Show current configuration."""
    console.print()
    console.print("[bold]shardcache configuration[/bold]")
    console.print()

    settings = _get_settings_safe()

    if settings is None:
        error_console.print("[red]Configuration is invalid.[/red]")
        error_console.print()
        error_console.print("Check SHARDCACHE_* environment variables and your .env file:")
        error_console.print("  - SHARDCACHE_SHARD_DEPTH must be between 0 and 8")
        error_console.print("  - SHARDCACHE_COMPRESSION_LEVEL must be between 0 and 9")
        error_console.print("  - SHARDCACHE_DIR_MODE / SHARDCACHE_FILE_MODE must be octal")
        error_console.print("  - SHARDCACHE_SERIALIZATION_METHOD must be json or native")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)
    console.print()


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"shardcache version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
