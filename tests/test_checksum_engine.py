"""Tests for the checksum engine and directory scanning."""

import hashlib
import os
import threading
import zlib

import pytest

from rcrenamer.core.checksum_engine import (
    ChecksumEngine,
    available_cpu_count,
    digest,
    digest_all,
)
from rcrenamer.core.errors import ChecksumIOError, OperationCancelled
from rcrenamer.core.scanner import list_files, scan_directory


def expected(data):
    return zlib.crc32(data) & 0xFFFFFFFF, hashlib.md5(data).hexdigest()


class TestDigest:
    """Tests for single-file digests."""

    def test_known_values(self, write_file):
        data = b"The quick brown fox jumps over the lazy dog"
        result = digest(write_file("fox.txt", data))

        assert result.crc32.value == 0x414FA339
        assert result.md5.hex() == "9e107d9d372bb6826bd81d3542a419d6"
        assert result.size == len(data)

    def test_multi_chunk_file(self, write_file):
        """Test that chunked reads produce the same digests as hashing in one go."""
        data = os.urandom(3 * 4096 + 123)
        path = write_file("blob.bin", data)

        result = ChecksumEngine(chunk_size=4096).digest(path)

        crc, md5 = expected(data)
        assert result.crc32.value == crc
        assert result.md5.hex() == md5

    def test_empty_file(self, write_file):
        result = digest(write_file("empty.bin", b""))

        assert result.crc32.value == 0
        assert result.md5.hex() == hashlib.md5(b"").hexdigest()
        assert result.size == 0

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ChecksumIOError):
            digest(tmp_path / "missing.bin")

    def test_progress_callback(self, write_file):
        """Test that progress is reported in coarse steps ending at 100."""
        path = write_file("p.bin", b"x" * 100 * 1024)
        seen = []

        ChecksumEngine(chunk_size=1024, progress_step=10).digest(path, progress=seen.append)

        assert seen == [10, 20, 30, 40, 50, 60, 70, 80, 90, 100]

    def test_progress_callback_empty_file(self, write_file):
        seen = []
        digest(write_file("e.bin", b""), progress=seen.append)

        assert seen == [100]

    def test_cancel_before_read(self, write_file):
        event = threading.Event()
        event.set()
        engine = ChecksumEngine(cancel_event=event)

        with pytest.raises(OperationCancelled):
            engine.digest(write_file("c.bin", b"data"))

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            ChecksumEngine(chunk_size=0)


class TestDigestAll:
    """Tests for the parallel batch mode."""

    @pytest.fixture
    def files(self, tmp_path):
        paths = []
        for i in range(12):
            path = tmp_path / f"file{i:02d}.bin"
            path.write_bytes(os.urandom(1000 + i * 997))
            paths.append(path)
        return paths

    def test_results_independent_of_pool_size(self, files):
        """Test that every pool size produces the same unordered result set."""
        baseline = None
        for workers in range(1, 7):
            results = ChecksumEngine(chunk_size=512, parallelism=workers).digest_all(files)
            as_set = {(d.path, d.crc32, d.md5) for d in results}
            assert len(results) == len(files)
            if baseline is None:
                baseline = as_set
            assert as_set == baseline

    def test_results_match_single_digest(self, files):
        results = {d.path: d for d in digest_all(files, parallelism=3)}

        for path in files:
            crc, md5 = expected(path.read_bytes())
            assert results[path].crc32.value == crc
            assert results[path].md5.hex() == md5

    def test_more_workers_than_files(self, files):
        assert len(ChecksumEngine(parallelism=64).digest_all(files[:2])) == 2

    def test_empty_input(self):
        assert ChecksumEngine().digest_all([]) == []

    def test_progress_counts_every_file(self, files):
        seen = []
        lock = threading.Lock()

        def on_progress(done, total):
            with lock:
                seen.append((done, total))

        ChecksumEngine(parallelism=4).digest_all(files, on_progress=on_progress)

        assert sorted(done for done, _ in seen) == list(range(1, len(files) + 1))
        assert all(total == len(files) for _, total in seen)

    def test_failing_progress_callback_is_raised(self, files):
        """Test that a raising callback surfaces after the batch instead of silently killing workers."""
        calls = []
        lock = threading.Lock()

        def on_progress(done, total):
            with lock:
                calls.append(done)
            raise RuntimeError("display closed")

        with pytest.raises(RuntimeError, match="display closed"):
            ChecksumEngine(parallelism=3).digest_all(files, on_progress=on_progress)

        assert sorted(calls) == list(range(1, len(files) + 1))

    def test_unreadable_files_skipped(self, files, tmp_path):
        missing = tmp_path / "gone.bin"

        results = ChecksumEngine(parallelism=2).digest_all(files + [missing])

        assert len(results) == len(files)
        assert missing not in {d.path for d in results}

    def test_unreadable_files_raise_when_not_skipped(self, files, tmp_path):
        with pytest.raises(ChecksumIOError):
            ChecksumEngine(parallelism=2).digest_all(files + [tmp_path / "gone.bin"], skip_errors=False)

    def test_cancelled_batch_raises(self, files):
        engine = ChecksumEngine(parallelism=2)
        engine.cancel()

        with pytest.raises(OperationCancelled):
            engine.digest_all(files)

    def test_available_cpu_count(self):
        assert available_cpu_count() >= 1
        assert ChecksumEngine(parallelism=0).parallelism >= 1


class TestScanner:
    """Tests for directory scanning."""

    def test_list_files_skips_directories(self, tmp_path):
        (tmp_path / "b.bin").write_bytes(b"b")
        (tmp_path / "a.bin").write_bytes(b"a")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "c.bin").write_bytes(b"c")

        assert [p.name for p in list_files(tmp_path)] == ["a.bin", "b.bin"]

    def test_scan_directory(self, tmp_path):
        (tmp_path / "x.bin").write_bytes(b"hello")
        (tmp_path / "y.bin").write_bytes(b"world")

        existing = scan_directory(tmp_path, ChecksumEngine(parallelism=2))

        assert [e.filename for e in existing] == ["x.bin", "y.bin"]
        assert all(e.path.is_absolute() for e in existing)
        assert existing[0].crc32.value == zlib.crc32(b"hello")
        assert not any(e.found for e in existing)
