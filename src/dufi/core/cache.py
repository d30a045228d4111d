"""Persistent path -> fingerprint cache backed by an append-only text file.

Each line is ``<path> <token>``. The token is the last space-delimited field,
so paths may contain spaces. Without stat validation the token is the bare
fingerprint; with it, ``<fingerprint>@<size>:<mtime_ns>``.
"""

import logging
import os
import shutil
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from dufi.core.errors import CacheError

logger = logging.getLogger(__name__)

ENCODING = "utf-8"
ERRORS = "surrogateescape"


@dataclass(frozen=True)
class CacheEntry:
    path: str
    fingerprint: str
    stamp: str | None = None

    def to_line(self) -> str:
        token = self.fingerprint if self.stamp is None else f"{self.fingerprint}@{self.stamp}"
        return f"{self.path} {token}\n"

    @classmethod
    def from_line(cls, line: str) -> "CacheEntry | None":
        path, sep, token = line.rstrip("\r\n").rpartition(" ")
        if not sep or not path or not token:
            return None
        fingerprint, _, stamp = token.partition("@")
        return cls(path, fingerprint, stamp or None)


class FingerprintCache:
    """Durable key-value store of file fingerprints, last write wins."""

    def __init__(self, path: str | Path, validate_stat: bool = False):
        self.path = Path(path).expanduser()
        self.validate_stat = validate_stat
        self._entries: dict[str, CacheEntry] = {}
        self._loaded = False

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        self._ensure_loaded()
        return path in self._entries

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def load(self) -> int:
        """Read the backing file into memory. Returns the number of lines read.

        A missing file is created empty.
        """
        self._entries = {}
        lines = 0
        try:
            if not self.path.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.touch()
            with open(self.path, encoding=ENCODING, errors=ERRORS) as f:
                for lineno, line in enumerate(f, 1):
                    if not line.strip():
                        continue
                    lines += 1
                    entry = CacheEntry.from_line(line)
                    if entry is None:
                        logger.warning("Ignoring malformed cache line %d in %s", lineno, self.path)
                        continue
                    self._entries[entry.path] = entry
        except OSError as e:
            raise CacheError(self.path, e, phase="load") from e

        self._loaded = True
        logger.debug("Loaded %d cache entries from %s", len(self._entries), self.path)
        return lines

    def stamp_for(self, path: str) -> str | None:
        """Current ``size:mtime_ns`` of a file, or None when not validating."""
        if not self.validate_stat:
            return None
        st = os.stat(path)
        return f"{st.st_size}:{st.st_mtime_ns}"

    def lookup(self, path: str, stamp: str | None = None) -> str | None:
        """Return the cached fingerprint for path, or None on a miss."""
        self._ensure_loaded()
        entry = self._entries.get(path)
        if entry is None:
            return None
        if self.validate_stat and entry.stamp != stamp:
            return None
        return entry.fingerprint

    def store(self, path: str, fingerprint: str, stamp: str | None = None) -> None:
        self.store_many([(path, fingerprint, stamp)])

    def store_many(self, items: Iterable[tuple[str, str, str | None]]) -> int:
        """Append a batch of (path, fingerprint, stamp) in a single write."""
        self._ensure_loaded()
        entries = []
        for path, fingerprint, stamp in items:
            if "\n" in path or "\r" in path:
                logger.warning("Not caching path with a line break: %r", path)
                continue
            entries.append(CacheEntry(path, fingerprint, stamp if self.validate_stat else None))

        if not entries:
            return 0

        try:
            with open(self.path, "a", encoding=ENCODING, errors=ERRORS) as f:
                f.write("".join(entry.to_line() for entry in entries))
        except OSError as e:
            raise CacheError(self.path, e, phase="store") from e

        for entry in entries:
            self._entries[entry.path] = entry
        return len(entries)

    def purge(self) -> None:
        """Truncate the cache file to empty."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding=ENCODING):
                pass
        except OSError as e:
            raise CacheError(self.path, e, phase="purge") from e
        self._entries = {}
        self._loaded = True
        logger.info("Purged cache %s", self.path)

    def compact(self) -> int:
        """Rewrite the file with one line per path. Returns lines dropped."""
        lines = self.load()
        entries = list(self._entries.values())

        try:
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".dufi-cache-")
            try:
                with os.fdopen(fd, "w", encoding=ENCODING, errors=ERRORS) as f:
                    f.writelines(entry.to_line() for entry in entries)
                shutil.copymode(self.path, tmp)
                os.replace(tmp, self.path)
            except BaseException:
                os.unlink(tmp)
                raise
        except OSError as e:
            raise CacheError(self.path, e, phase="compact") from e

        dropped = lines - len(entries)
        logger.info("Compacted cache %s: %d lines dropped", self.path, dropped)
        return dropped
