"""Result types and the progress observer shared by the pipeline."""

from dataclasses import dataclass, field


@dataclass
class DuplicateGroup:
    """Files sharing one fingerprint, in discovery order."""

    fingerprint: str
    files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"fingerprint": self.fingerprint, "files": list(self.files)}


@dataclass
class SkippedFile:
    """A file that could not be fingerprinted during a run."""

    path: str
    reason: str


@dataclass
class ScanResult:
    """Outcome of a full scan."""

    groups: list[DuplicateGroup] = field(default_factory=list)
    total_files: int = 0
    skipped: list[SkippedFile] = field(default_factory=list)
    cache_hits: int = 0
    hashed: int = 0

    @property
    def duplicate_count(self) -> int:
        """Files beyond the first one in every group."""
        return sum(len(group.files) - 1 for group in self.groups)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


class ScanObserver:
    """Receives advisory progress events from the pipeline.

    All methods are no-ops; subclass and override the ones you need.
    """

    def directory_entered(self, path: str) -> None:
        pass

    def directory_scanned(self, path: str, file_count: int) -> None:
        pass

    def discovery_complete(self, total: int) -> None:
        pass

    def hash_progress(self, index: int, total: int, path: str, fingerprint: str) -> None:
        pass

    def file_skipped(self, path: str, reason: str) -> None:
        pass
