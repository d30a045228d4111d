"""Rich console setup and shared output helpers."""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.theme import Theme

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "fingerprint": "magenta",
        "path": "dim",
    }
)

console = Console(theme=custom_theme)
err_console = Console(stderr=True, theme=custom_theme)


def setup_logging(verbose: bool = False) -> None:
    """Route the dufi loggers through rich on stderr."""
    logger = logging.getLogger("dufi")
    logger.handlers.clear()
    handler = RichHandler(console=err_console, show_time=False, show_path=False)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def make_group_table(title: str = "Duplicate Files") -> Table:
    """Create a consistently styled table for duplicate group summaries."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Group", style="cyan", justify="right")
    table.add_column("Fingerprint", style="fingerprint")
    table.add_column("Files", justify="right")
    table.add_column("File Size", justify="right")
    table.add_column("Wasted Space", justify="right")
    return table


def format_size(size_bytes: int) -> str:
    """Format byte size as human-readable string (KB, MB, GB)."""
    if size_bytes >= 1024**3:
        return f"{size_bytes / 1024**3:.2f} GB"
    elif size_bytes >= 1024**2:
        return f"{size_bytes / 1024**2:.2f} MB"
    elif size_bytes >= 1024:
        return f"{size_bytes / 1024:.2f} KB"
    return f"{size_bytes} bytes"


def short_fingerprint(fingerprint: str, length: int = 8) -> str:
    """First characters of both halves, e.g. ``1a2b3c4d-5e6f7a8b``."""
    head, _, tail = fingerprint.partition("-")
    return f"{head[:length]}-{tail[:length]}" if tail else head[:length]
