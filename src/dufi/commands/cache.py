"""Fingerprint cache maintenance commands."""

from pathlib import Path

import typer

from dufi.core.cache import FingerprintCache
from dufi.core.errors import CacheError
from dufi.utils.config import get_config
from dufi.utils.console import console, err_console, format_size

app = typer.Typer(help="Fingerprint cache maintenance")

CacheOption = typer.Option(None, "--cache", help="Fingerprint cache file")


def _open_cache(cache_path: Path | None) -> FingerprintCache:
    return FingerprintCache(cache_path or get_config().cache_path)


@app.command()
def purge(cache_path: Path = CacheOption):
    """Delete every cached fingerprint."""
    cache = _open_cache(cache_path)
    try:
        cache.purge()
    except CacheError as e:
        err_console.print(f"[error]{e}[/error]")
        raise typer.Exit(1)
    console.print(f"[success]Cache purged![/success] {cache.path}")


@app.command()
def compact(cache_path: Path = CacheOption):
    """Rewrite the cache keeping only the latest entry per file."""
    cache = _open_cache(cache_path)
    try:
        dropped = cache.compact()
    except CacheError as e:
        err_console.print(f"[error]{e}[/error]")
        raise typer.Exit(1)
    console.print(f"[success]Compacted cache:[/success] {len(cache)} entries kept, {dropped} lines dropped")


@app.command()
def stats(cache_path: Path = CacheOption):
    """Show cache location, size and entry count."""
    cache = _open_cache(cache_path)
    if not cache.path.exists():
        console.print(f"[warning]Cache file does not exist:[/warning] {cache.path}")
        raise typer.Exit(0)
    try:
        lines = cache.load()
    except CacheError as e:
        err_console.print(f"[error]{e}[/error]")
        raise typer.Exit(1)

    console.print(f"[bold]Cache file:[/bold] {cache.path}")
    console.print(f"  Size: [bold]{format_size(cache.path.stat().st_size)}[/bold]")
    console.print(f"  Entries: [bold]{len(cache)}[/bold]")
    console.print(f"  Superseded lines: [bold]{lines - len(cache)}[/bold]")


@app.command()
def path(cache_path: Path = CacheOption):
    """Show the cache file path."""
    console.print(str(_open_cache(cache_path).path))
