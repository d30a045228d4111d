"""Batched fingerprinting and grouping of files that share a fingerprint."""

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from dufi.core.cache import FingerprintCache
from dufi.core.hasher import DEFAULT_WINDOW, ContentFingerprinter
from dufi.core.models import DuplicateGroup, ScanObserver, ScanResult, SkippedFile
from dufi.core.scanner import walk_files

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


def batched(items: Sequence[str], size: int) -> Iterator[tuple[int, Sequence[str]]]:
    """Yield (start_index, chunk) pairs of at most size items."""
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield start, items[start:start + size]


class DuplicateGrouper:
    """Fingerprint files in bounded concurrent batches and group duplicates.

    Each batch is hashed on a thread pool sized to the batch, new
    fingerprints are flushed to the cache once per batch, and the final
    grouping follows the input order regardless of completion order.
    """

    def __init__(
        self,
        cache: FingerprintCache | None = None,
        fingerprinter: Callable[[str], str] | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        observer: ScanObserver | None = None,
    ):
        if batch_size < 1:
            raise ValueError(f"batch size must be positive, got {batch_size}")
        self.cache = cache
        self.fingerprinter = fingerprinter or ContentFingerprinter()
        self.batch_size = batch_size
        self.observer = observer or ScanObserver()

    def group(self, files: Sequence[str]) -> ScanResult:
        result = ScanResult(total_files=len(files))
        fingerprints: list[str | None] = [None] * len(files)

        if files:
            with ThreadPoolExecutor(max_workers=min(self.batch_size, len(files))) as executor:
                for start, chunk in batched(files, self.batch_size):
                    self._process_batch(executor, start, chunk, fingerprints, result)

        by_fingerprint: dict[str, list[str]] = {}
        for path, fingerprint in zip(files, fingerprints):
            if fingerprint is not None:
                by_fingerprint.setdefault(fingerprint, []).append(path)

        result.groups = [
            DuplicateGroup(fingerprint, paths)
            for fingerprint, paths in by_fingerprint.items()
            if len(paths) > 1
        ]
        logger.info(
            "Grouped %d files into %d duplicate groups (%d cached, %d hashed, %d skipped)",
            len(files), len(result.groups), result.cache_hits, result.hashed, result.skipped_count,
        )
        return result

    def _skip(self, result: ScanResult, path: str, error: Exception) -> None:
        reason = f"{type(error).__name__}: {error}"
        logger.warning("Skipping %s: %s", path, reason)
        result.skipped.append(SkippedFile(path, reason))
        self.observer.file_skipped(path, reason)

    def _process_batch(
        self,
        executor: ThreadPoolExecutor,
        start: int,
        chunk: Sequence[str],
        fingerprints: list[str | None],
        result: ScanResult,
    ) -> None:
        pending: list[tuple[int, str, str | None]] = []

        for offset, path in enumerate(chunk):
            index = start + offset
            stamp = None
            if self.cache is not None:
                try:
                    stamp = self.cache.stamp_for(path)
                except OSError as e:
                    self._skip(result, path, e)
                    continue
                cached = self.cache.lookup(path, stamp)
                if cached is not None:
                    fingerprints[index] = cached
                    result.cache_hits += 1
                    continue
            pending.append((index, path, stamp))

        futures = {executor.submit(self.fingerprinter, path): (index, path, stamp) for index, path, stamp in pending}
        fresh: list[tuple[int, str, str, str | None]] = []
        for future in as_completed(futures):
            index, path, stamp = futures[future]
            try:
                fingerprint = future.result()
            except OSError as e:
                self._skip(result, path, e)
                continue
            fingerprints[index] = fingerprint
            fresh.append((index, path, fingerprint, stamp))

        result.hashed += len(fresh)
        if self.cache is not None and fresh:
            fresh.sort()
            self.cache.store_many((path, fingerprint, stamp) for _, path, fingerprint, stamp in fresh)

        total = len(fingerprints)
        for offset, path in enumerate(chunk):
            index = start + offset
            if fingerprints[index] is not None:
                self.observer.hash_progress(index + 1, total, path, fingerprints[index])


def find_duplicates(
    roots: Iterable[str | Path],
    extensions: Iterable[str] | None = None,
    window: int = DEFAULT_WINDOW,
    cache: FingerprintCache | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    observer: ScanObserver | None = None,
    algorithm: str = "sha256",
    fingerprinter: Callable[[str], str] | None = None,
) -> ScanResult:
    """Walk roots, load the cache, fingerprint and group duplicates.

    Walk and cache-load failures propagate as WalkError and CacheError.
    Per-file read failures end up in ScanResult.skipped.
    """
    observer = observer or ScanObserver()
    fingerprinter = fingerprinter or ContentFingerprinter(window, algorithm)
    grouper = DuplicateGrouper(cache, fingerprinter, batch_size, observer)

    roots = list(roots)
    logger.debug("Walking %s", roots)
    files = walk_files(roots, extensions, observer)

    if cache is not None:
        logger.debug("Loading cache %s", cache.path)
        cache.load()

    return grouper.group(files)
