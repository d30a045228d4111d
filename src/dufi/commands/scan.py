"""Duplicate scan command."""

import csv
import json
import os
import time
from pathlib import Path

import typer
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, MofNCompleteColumn

from dufi.core.cache import FingerprintCache
from dufi.core.errors import DufiError
from dufi.core.grouper import find_duplicates
from dufi.core.hasher import ContentFingerprinter
from dufi.core.models import ScanObserver, ScanResult
from dufi.core.scanner import normalize_extensions
from dufi.utils.config import get_config
from dufi.utils.console import (
    console,
    err_console,
    format_size,
    make_group_table,
    setup_logging,
    short_fingerprint,
)


class ProgressObserver(ScanObserver):
    """Drives a rich progress display from pipeline events."""

    def __init__(self, progress: Progress):
        self.progress = progress
        self.found = 0
        self.walk_task = progress.add_task("Discovering files...", total=None)
        self.hash_task = None

    def directory_entered(self, path: str) -> None:
        self.progress.update(self.walk_task, description=f"Scanning {escape(path)}...")

    def directory_scanned(self, path: str, file_count: int) -> None:
        self.found += file_count
        self.progress.update(self.walk_task, description=f"Found {self.found} files")

    def discovery_complete(self, total: int) -> None:
        self.progress.update(
            self.walk_task, total=total, completed=total, description=f"Found {total} files"
        )
        self.hash_task = self.progress.add_task("Computing fingerprints...", total=total)

    def hash_progress(self, index: int, total: int, path: str, fingerprint: str) -> None:
        self.progress.update(self.hash_task, completed=index)

    def file_skipped(self, path: str, reason: str) -> None:
        self.progress.console.print(f"[warning]Skipped {escape(path)}: {escape(reason)}[/warning]")


def scan(
    folders: list[Path] = typer.Argument(..., help="Directories to scan for duplicates"),
    extensions: list[str] = typer.Option(
        None, "--extension", "-e", help="Only include files with this extension (repeatable)"
    ),
    window: int = typer.Option(None, "--bytes", "-b", help="Bytes hashed at the start and end of each file"),
    batch_size: int = typer.Option(None, "--batch-size", help="Files fingerprinted concurrently per batch"),
    cache_path: Path = typer.Option(None, "--cache", help="Fingerprint cache file"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Do not read or write the fingerprint cache"),
    validate_stat: bool = typer.Option(False, "--validate-stat", help="Re-hash files whose size or mtime changed"),
    export: Path = typer.Option(None, "--export", help="Export duplicate groups to file"),
    export_format: str = typer.Option("json", "--format", "-f", help="Export format: json or csv"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging"),
):
    """Scan folders for duplicate files."""
    setup_logging(verbose)
    config = get_config()

    if export and export_format not in ("csv", "json"):
        console.print(f"[error]Invalid format: {export_format}. Use 'csv' or 'json'[/error]")
        raise typer.Exit(1)

    window = window if window is not None else config.get("scan", "bytes")
    batch_size = batch_size if batch_size is not None else config.get("scan", "batch_size")
    if window < 1 or batch_size < 1:
        console.print("[error]--bytes and --batch-size must be positive[/error]")
        raise typer.Exit(1)

    try:
        fingerprinter = ContentFingerprinter(window, config.get("scan", "algorithm"))
    except ValueError as e:
        console.print(f"[error]Invalid algorithm: {escape(str(e))}[/error]")
        raise typer.Exit(1)

    exts = normalize_extensions(extensions or config.get("scan", "extensions"))
    validate_stat = validate_stat or config.get("cache", "validate_stat")

    cache = None
    if not no_cache:
        cache = FingerprintCache(cache_path or config.cache_path, validate_stat=validate_stat)

    start = time.monotonic()
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
        ) as progress:
            result = find_duplicates(
                folders,
                extensions=exts,
                window=window,
                cache=cache,
                batch_size=batch_size,
                observer=ProgressObserver(progress),
                fingerprinter=fingerprinter,
            )
    except KeyboardInterrupt:
        console.print("\n[warning]Operation cancelled by user[/warning]")
        raise typer.Exit(130)
    except DufiError as e:
        err_console.print(f"[error]{escape(str(e))}[/error]")
        err_console.print("[error]No results reported[/error]")
        raise typer.Exit(1)
    elapsed = time.monotonic() - start

    _print_result(result, elapsed)

    if export:
        _export(result, export, export_format)


def _print_result(result: ScanResult, elapsed: float) -> None:
    if result.skipped:
        console.print(f"\n[warning]Skipped {result.skipped_count} unreadable files[/warning]")

    if not result.groups:
        console.print(f"\n[success]No duplicates found![/success] ({result.total_files} files, {elapsed:.2f}s)")
        return

    console.print(
        f"\n[success]Found {len(result.groups)} duplicate groups in {elapsed:.2f}s[/success]"
    )

    table = make_group_table(f"Duplicate Files ({len(result.groups)} groups)")
    total_wasted_space = 0

    for i, group in enumerate(result.groups, 1):
        try:
            file_size = os.stat(group.files[0]).st_size
        except OSError:
            file_size = 0
        wasted = file_size * (len(group.files) - 1)
        total_wasted_space += wasted

        table.add_row(
            str(i),
            short_fingerprint(group.fingerprint),
            str(len(group.files)),
            format_size(file_size),
            format_size(wasted),
        )

        console.print(f"\n[bold cyan]Group {i}:[/bold cyan] [fingerprint]{group.fingerprint}[/fingerprint]")
        for j, file_path in enumerate(group.files, 1):
            console.print(f"  {j}. [path]{escape(file_path)}[/path]")

    console.print()
    console.print(table)

    console.print("\n[bold]Summary:[/bold]")
    console.print(f"  Files scanned: [bold]{result.total_files}[/bold]")
    console.print(f"  Fingerprints from cache: [bold]{result.cache_hits}[/bold]")
    console.print(f"  Duplicate files: [bold]{result.duplicate_count}[/bold]")
    console.print(f"  Wasted space: [bold]{format_size(total_wasted_space)}[/bold]")
    if result.skipped:
        console.print(f"  [warning]Skipped files: {result.skipped_count}[/warning]")
    console.print()


def _export(result: ScanResult, export: Path, export_format: str) -> None:
    export_path = Path(export).expanduser().resolve()
    try:
        if export_format == "json":
            with open(export_path, "w") as f:
                json.dump([group.to_dict() for group in result.groups], f, indent=2)
        else:  # CSV
            with open(export_path, "w", newline="") as f:
                writer = csv.writer(f)
                writer.writerow(["group", "fingerprint", "path"])
                for i, group in enumerate(result.groups, 1):
                    for file_path in group.files:
                        writer.writerow([i, group.fingerprint, file_path])
    except OSError as e:
        console.print(f"[error]Export failed: {e}[/error]")
        raise typer.Exit(1)

    console.print(f"[success]Exported to: {export_path}[/success]")
