"""Pytest fixtures and test utilities."""

from pathlib import Path

import pytest

import dufi.utils.config as config_module
from dufi.core.cache import FingerprintCache
from dufi.core.models import ScanObserver


def write_file(path: Path, content: bytes) -> Path:
    """Write content to path, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def posix(path: Path) -> str:
    """The form in which the walker reports a path."""
    return path.resolve().as_posix()


class RecordingObserver(ScanObserver):
    """Observer that records every event it receives."""

    def __init__(self):
        self.events = []

    def directory_entered(self, path):
        self.events.append(("entered", path))

    def directory_scanned(self, path, file_count):
        self.events.append(("scanned", path, file_count))

    def discovery_complete(self, total):
        self.events.append(("complete", total))

    def hash_progress(self, index, total, path, fingerprint):
        self.events.append(("progress", index, total, path, fingerprint))

    def file_skipped(self, path, reason):
        self.events.append(("skipped", path, reason))

    def of(self, kind):
        return [e for e in self.events if e[0] == kind]


class CountingCache(FingerprintCache):
    """Cache that counts batch flushes."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.flushes = []

    def store_many(self, items):
        items = list(items)
        self.flushes.append(len(items))
        return super().store_many(items)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point HOME at a temp dir so config and cache never touch the real one."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(config_module, "_config", None)
    return home


@pytest.fixture
def temp_dir(tmp_path):
    """Create a temporary directory to scan."""
    scan_dir = tmp_path / "files"
    scan_dir.mkdir()
    return scan_dir


@pytest.fixture
def cache_file(tmp_path):
    """Path of a fresh fingerprint cache file (not created yet)."""
    return tmp_path / "cache" / "fingerprints"


@pytest.fixture
def cache(cache_file):
    return FingerprintCache(cache_file)


@pytest.fixture
def sample_tree(temp_dir):
    """A small tree with one duplicate pair across subdirectories.

    Returns (root, duplicates, uniques).
    """
    a = write_file(temp_dir / "photos" / "a.jpg", b"X" * 1000)
    b = write_file(temp_dir / "backup" / "b.jpg", b"X" * 1000)
    c = write_file(temp_dir / "c.jpg", b"Y" * 1000)
    d = write_file(temp_dir / "notes.txt", b"some notes")
    return temp_dir, [a, b], [c, d]
