"""Tests for core.grouper module."""

import threading
import time

import pytest

from dufi.core.cache import FingerprintCache
from dufi.core.errors import CacheError, WalkError
from dufi.core.grouper import DuplicateGrouper, batched, find_duplicates
from dufi.core.hasher import ContentFingerprinter, boundary_fingerprint
from tests.conftest import CountingCache, RecordingObserver, posix, write_file


def test_batched_sizes():
    """Test that 250 items split into 100, 100 and 50."""
    items = [str(i) for i in range(250)]

    chunks = list(batched(items, 100))

    assert [start for start, _ in chunks] == [0, 100, 200]
    assert [len(chunk) for _, chunk in chunks] == [100, 100, 50]


def test_batched_rejects_zero():
    """Test that a batch size below one is rejected."""
    with pytest.raises(ValueError):
        list(batched(["a"], 0))
    with pytest.raises(ValueError):
        DuplicateGrouper(batch_size=0)


class TestScenarios:
    """End-to-end scenarios over real files."""

    def test_three_small_files(self, temp_dir, cache):
        """Test that A and B (same content) group and C does not."""
        a = write_file(temp_dir / "A", b"X" * 1000)
        b = write_file(temp_dir / "B", b"X" * 1000)
        write_file(temp_dir / "C", b"X" * 999 + b"Y")

        result = find_duplicates([temp_dir], cache=cache)

        assert len(result.groups) == 1
        assert result.groups[0].files == [posix(a), posix(b)]
        assert result.total_files == 3
        assert result.duplicate_count == 1

    def test_singletons_excluded(self, temp_dir, cache):
        """Test that unique files never show up in the output."""
        for i in range(5):
            write_file(temp_dir / f"unique_{i}.bin", f"content {i}".encode())

        result = find_duplicates([temp_dir], cache=cache)

        assert result.groups == []
        assert result.hashed == 5

    def test_shared_windows_grouped_differing_windows_split(self, temp_dir):
        """Test that grouping follows the boundary windows exactly."""
        same_a = write_file(temp_dir / "1.bin", b"H" * 50 + b"middle-one" + b"T" * 50)
        same_b = write_file(temp_dir / "2.bin", b"H" * 50 + b"middle-two" + b"T" * 50)
        write_file(temp_dir / "3.bin", b"h" + b"H" * 49 + b"middle-one" + b"T" * 50)
        write_file(temp_dir / "4.bin", b"H" * 50 + b"middle-one" + b"T" * 49 + b"t")

        result = find_duplicates([temp_dir], window=50)

        assert [group.files for group in result.groups] == [[posix(same_a), posix(same_b)]]

    def test_groups_across_roots_in_discovery_order(self, tmp_path):
        """Test group order and membership order across several roots."""
        root1, root2 = tmp_path / "r1", tmp_path / "r2"
        x1 = write_file(root1 / "x.bin", b"xxx")
        y1 = write_file(root1 / "y.bin", b"yyy")
        y2 = write_file(root2 / "a_y.bin", b"yyy")
        x2 = write_file(root2 / "b_x.bin", b"xxx")

        result = find_duplicates([root1, root2])

        assert [group.files for group in result.groups] == [
            [posix(x1), posix(x2)],
            [posix(y1), posix(y2)],
        ]
        assert result.groups[0].fingerprint == boundary_fingerprint(x1)

    def test_extension_filter_applied(self, sample_tree):
        """Test that the allow-list limits which files are compared."""
        root, duplicates, _ = sample_tree

        result = find_duplicates([root], extensions=[".txt"])

        assert result.total_files == 1
        assert result.groups == []

    def test_without_cache(self, sample_tree):
        """Test that the pipeline works with no cache at all."""
        root, duplicates, _ = sample_tree

        result = find_duplicates([root])

        assert [group.files for group in result.groups] == [[posix(p) for p in sorted(duplicates)]]
        assert result.cache_hits == 0


class TestCaching:
    """Tests for cache interaction."""

    def test_warm_cache_is_idempotent_and_reads_nothing(self, sample_tree, cache_file):
        """Test that a second run gives identical output with zero reads."""
        root, _, _ = sample_tree
        first_reader = ContentFingerprinter()
        first = find_duplicates([root], cache=FingerprintCache(cache_file), fingerprinter=first_reader)

        second_reader = ContentFingerprinter()
        second = find_duplicates([root], cache=FingerprintCache(cache_file), fingerprinter=second_reader)

        assert first_reader.reads == 4
        assert second_reader.reads == 0
        assert second.groups == first.groups
        assert second.cache_hits == 4
        assert second.hashed == 0

    def test_partial_cache_hashes_only_new_files(self, sample_tree, cache_file):
        """Test that only files missing from the cache are read."""
        root, _, _ = sample_tree
        find_duplicates([root], cache=FingerprintCache(cache_file))
        new_file = write_file(root / "zz_new.jpg", b"X" * 1000)

        reader = ContentFingerprinter()
        result = find_duplicates([root], cache=FingerprintCache(cache_file), fingerprinter=reader)

        assert reader.reads == 1
        assert posix(new_file) in result.groups[0].files
        assert len(result.groups[0].files) == 3

    def test_250_files_flush_three_times(self, temp_dir, cache_file):
        """Test that 250 files in batches of 100 flush the cache three times."""
        for i in range(250):
            write_file(temp_dir / f"file_{i:03d}.bin", f"payload {i}".encode())
        cache = CountingCache(cache_file)

        result = find_duplicates([temp_dir], cache=cache, batch_size=100)

        assert cache.flushes == [100, 100, 50]
        assert len(cache_file.read_text().splitlines()) == 250
        assert result.hashed == 250

    def test_warm_cache_skips_flush(self, sample_tree, cache_file):
        """Test that batches with no new fingerprints write nothing."""
        root, _, _ = sample_tree
        find_duplicates([root], cache=FingerprintCache(cache_file))
        cache = CountingCache(cache_file)

        find_duplicates([root], cache=cache)

        assert cache.flushes == []

    def test_stale_entry_used_without_validation(self, temp_dir, cache_file):
        """Test that changed content keeps its old fingerprint by default."""
        a = write_file(temp_dir / "a.bin", b"same")
        b = write_file(temp_dir / "b.bin", b"same")
        find_duplicates([temp_dir], cache=FingerprintCache(cache_file))
        b.write_bytes(b"changed")

        result = find_duplicates([temp_dir], cache=FingerprintCache(cache_file))

        assert [group.files for group in result.groups] == [[posix(a), posix(b)]]

    def test_stat_validation_rehashes_changed_file(self, temp_dir, cache_file):
        """Test that validate_stat notices a modified file."""
        write_file(temp_dir / "a.bin", b"same")
        b = write_file(temp_dir / "b.bin", b"same")
        find_duplicates([temp_dir], cache=FingerprintCache(cache_file, validate_stat=True))
        b.write_bytes(b"changed")

        reader = ContentFingerprinter()
        result = find_duplicates(
            [temp_dir], cache=FingerprintCache(cache_file, validate_stat=True), fingerprinter=reader
        )

        assert result.groups == []
        assert reader.reads == 1

    def test_cache_load_failure_propagates(self, sample_tree, tmp_path):
        """Test that an unreadable cache aborts the run."""
        root, _, _ = sample_tree

        with pytest.raises(CacheError):
            find_duplicates([root], cache=FingerprintCache(tmp_path))


class TestFailures:
    """Tests for per-file and structural failures."""

    def test_unreadable_file_is_skipped(self, sample_tree):
        """Test that one failing file does not abort its batch."""
        root, duplicates, _ = sample_tree
        bad = posix(root / "c.jpg")

        def flaky(path):
            if path == bad:
                raise PermissionError(13, "Permission denied", path)
            return boundary_fingerprint(path)

        observer = RecordingObserver()
        result = find_duplicates([root], fingerprinter=flaky, observer=observer)

        assert len(result.groups) == 1
        assert result.skipped_count == 1
        assert result.skipped[0].path == bad
        assert "PermissionError" in result.skipped[0].reason
        assert [e[1] for e in observer.of("skipped")] == [bad]
        assert bad not in [e[3] for e in observer.of("progress")]

    def test_vanished_file_is_skipped(self, temp_dir):
        """Test a file list entry that no longer exists."""
        a = posix(write_file(temp_dir / "a.bin", b"1"))
        b = posix(write_file(temp_dir / "b.bin", b"1"))
        gone = posix(temp_dir / "gone.bin")

        result = DuplicateGrouper().group([a, gone, b])

        assert [group.files for group in result.groups] == [[a, b]]
        assert [skipped.path for skipped in result.skipped] == [gone]

    def test_vanished_file_with_stat_validation(self, temp_dir, cache_file):
        """Test that a failing stat is treated like a failing read."""
        gone = posix(temp_dir / "gone.bin")
        cache = FingerprintCache(cache_file, validate_stat=True)

        result = DuplicateGrouper(cache=cache).group([gone])

        assert result.skipped_count == 1
        assert result.groups == []

    def test_missing_root_aborts(self, temp_dir):
        """Test that a walk failure propagates."""
        with pytest.raises(WalkError):
            find_duplicates([temp_dir / "missing"])

    def test_unexpected_errors_propagate(self, sample_tree):
        """Test that only I/O errors are downgraded to skips."""
        root, _, _ = sample_tree

        def broken(path):
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            find_duplicates([root], fingerprinter=broken)


class TestConcurrency:
    """Tests for batching and ordering."""

    def test_concurrency_capped_by_batch_size(self, temp_dir):
        """Test that no more than batch_size files are hashed at once."""
        files = [posix(write_file(temp_dir / f"{i:02d}.bin", bytes([i]))) for i in range(12)]
        lock = threading.Lock()
        active = 0
        peak = 0

        def slow(path):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with lock:
                active -= 1
            return boundary_fingerprint(path)

        DuplicateGrouper(fingerprinter=slow, batch_size=4).group(files)

        assert 1 <= peak <= 4

    def test_progress_in_discovery_order(self, temp_dir, cache_file):
        """Test that progress follows input order even when completion order differs."""
        files = [posix(write_file(temp_dir / f"{i}.bin", b"z")) for i in range(6)]

        def reversed_speed(path):
            time.sleep(0.01 * (6 - files.index(path)))
            return boundary_fingerprint(path)

        observer = RecordingObserver()
        result = DuplicateGrouper(
            cache=FingerprintCache(cache_file), fingerprinter=reversed_speed, batch_size=3, observer=observer
        ).group(files)

        progress = observer.of("progress")
        assert [e[1] for e in progress] == [1, 2, 3, 4, 5, 6]
        assert [e[3] for e in progress] == files
        assert all(e[2] == 6 for e in progress)
        assert result.groups[0].files == files
        assert [line.split(" ")[0] for line in cache_file.read_text().splitlines()] == files

    def test_empty_file_list(self):
        """Test grouping nothing."""
        result = DuplicateGrouper().group([])

        assert result.groups == []
        assert result.total_files == 0


def test_overlapping_roots_do_not_group_file_with_itself(temp_dir):
    """Test that a single file reached from two roots is not a duplicate."""
    write_file(temp_dir / "sub" / "only.bin", b"lonely")

    result = find_duplicates([temp_dir, temp_dir / "sub"])

    assert result.groups == []
    assert result.total_files == 1
