"""Directory walker with extension filtering."""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from dufi.core.errors import WalkError
from dufi.core.models import ScanObserver

logger = logging.getLogger(__name__)


def normalize_extensions(extensions: Iterable[str] | None) -> frozenset[str]:
    """Turn user input like ``TXT`` or ``.Jpg`` into ``{".txt", ".jpg"}``."""
    result = set()
    for ext in extensions or ():
        ext = ext.strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = "." + ext
        result.add(ext)
    return frozenset(result)


def _matches(path: Path, extensions: frozenset[str]) -> bool:
    return not extensions or path.suffix.lower() in extensions


def _list_dir(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir())
    except OSError as e:
        raise WalkError(directory.as_posix(), e.strerror or e) from e


def iter_files(
    root: str | Path,
    extensions: Iterable[str] | None = None,
    observer: ScanObserver | None = None,
) -> Iterator[str]:
    """Yield absolute POSIX paths of files below root, depth-first.

    Entries are visited in sorted order. Symlinked directories are not
    followed. If root is a file, it is yielded directly when it matches.
    """
    exts = normalize_extensions(extensions)
    observer = observer or ScanObserver()
    root = Path(root).expanduser().resolve()

    if root.is_file():
        if _matches(root, exts):
            yield root.as_posix()
        return

    stack = [iter(_scan_dir(root, exts, observer))]
    while stack:
        entry = next(stack[-1], None)
        if entry is None:
            stack.pop()
        elif entry[0] == "dir":
            stack.append(iter(_scan_dir(entry[1], exts, observer)))
        else:
            yield entry[1].as_posix()


def _scan_dir(directory: Path, exts: frozenset[str], observer: ScanObserver) -> list[tuple[str, Path]]:
    """List one directory as ("dir", path) and ("file", path) pairs in sorted order."""
    dir_str = directory.as_posix()
    observer.directory_entered(dir_str)
    result = []
    for entry in _list_dir(directory):
        if entry.is_dir() and not entry.is_symlink():
            result.append(("dir", entry))
        elif entry.is_file() and _matches(entry, exts):
            result.append(("file", entry))

    file_count = sum(1 for kind, _ in result if kind == "file")
    observer.directory_scanned(dir_str, file_count)
    logger.debug("Scanned %s: %d files, %d subdirectories", dir_str, file_count, len(result) - file_count)
    return result


def walk_files(
    roots: Iterable[str | Path],
    extensions: Iterable[str] | None = None,
    observer: ScanObserver | None = None,
) -> list[str]:
    """Collect every matching file under all roots, in discovery order.

    A file reached through overlapping roots is listed once, at its first
    position.
    """
    observer = observer or ScanObserver()
    files: list[str] = []
    seen: set[str] = set()
    for root in roots:
        for path in iter_files(root, extensions, observer):
            if path not in seen:
                seen.add(path)
                files.append(path)
    observer.discovery_complete(len(files))
    return files
