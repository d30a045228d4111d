"""Boundary-window fingerprints for duplicate detection."""

import hashlib
import os
import threading
from pathlib import Path

CHUNK_SIZE = 8192
DEFAULT_WINDOW = 16 * 1024


def _digest_window(f, start: int, length: int, algorithm: str) -> str:
    """Digest up to length bytes of an open file starting at start."""
    h = hashlib.new(algorithm)
    f.seek(start)
    remaining = length
    while remaining > 0:
        chunk = f.read(min(CHUNK_SIZE, remaining))
        if not chunk:
            break
        h.update(chunk)
        remaining -= len(chunk)
    return h.hexdigest()


def boundary_fingerprint(
    path: str | Path, window: int = DEFAULT_WINDOW, algorithm: str = "sha256"
) -> str:
    """Fingerprint a file from its first and last `window` bytes.

    The two windows are digested independently and joined as
    ``<head>-<tail>``. They overlap for files shorter than twice the window
    and both cover the whole file when it is no longer than the window.
    """
    if window < 1:
        raise ValueError(f"window must be positive, got {window}")

    with open(path, "rb") as f:
        size = os.fstat(f.fileno()).st_size
        head = _digest_window(f, 0, window, algorithm)
        tail = _digest_window(f, max(size - window, 0), window, algorithm)

    return f"{head}-{tail}"


class ContentFingerprinter:
    """Callable fingerprinter with a fixed window and a content-read counter."""

    def __init__(self, window: int = DEFAULT_WINDOW, algorithm: str = "sha256"):
        if window < 1:
            raise ValueError(f"window must be positive, got {window}")
        if hashlib.new(algorithm).digest_size == 0:
            raise ValueError(f"{algorithm} has a variable-length digest; pick a fixed-size algorithm")
        self.window = window
        self.algorithm = algorithm
        self.reads = 0
        self._lock = threading.Lock()

    def __call__(self, path: str | Path) -> str:
        with self._lock:
            self.reads += 1
        return boundary_fingerprint(path, self.window, self.algorithm)
