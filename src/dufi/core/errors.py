"""Exceptions raised by the duplicate detection pipeline."""


class DufiError(Exception):
    """Base error for structural pipeline failures."""

    phase = "scan"

    def __init__(self, path, reason, phase: str | None = None):
        self.path = str(path)
        self.reason = str(reason)
        if phase is not None:
            self.phase = phase
        super().__init__(f"{self.phase} failed for {self.path}: {self.reason}")


class WalkError(DufiError):
    """A root or subdirectory could not be listed."""

    phase = "walk"


class CacheError(DufiError):
    """The fingerprint cache file could not be read or written."""

    phase = "cache"
