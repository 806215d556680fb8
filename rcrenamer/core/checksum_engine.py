"""
Checksum Engine
===============

Computes CRC32 and MD5 of files in a single streaming pass, either one file
at a time or for a batch of files on a fixed pool of worker threads.

Key features:
- 1MB chunk reads, the whole file is never buffered
- CRC32 (IEEE) and MD5 fed from the same chunk
- Fixed worker pool pulling file indices from a shared queue
- Per-worker partial result lists, merged after all workers joined
- Cooperative cancellation checked per chunk and per work item

Usage:
    engine = ChecksumEngine(parallelism=4)
    digests = engine.digest_all(paths, on_progress=lambda done, total: ...)
    for d in digests:
        print(d.path, d.crc32.hex(), d.md5.hex())
"""

from __future__ import annotations

import hashlib
import logging
import os
import threading
import time
import zlib
from pathlib import Path
from queue import Empty, Queue
from typing import Callable, Iterable, List, Optional

import psutil

from .catalog import FileDigest
from .digests import Crc32, Md5
from .errors import ChecksumIOError, OperationCancelled

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB chunks for efficient large file processing
DEFAULT_PROGRESS_STEP = 2  # percent, 50 steps per file

# Called with a percentage (0-100) while a single file is hashed
ProgressCallback = Callable[[int], None]
# Called with (completed, total) after each file of a batch
BatchProgressCallback = Callable[[int, int], None]


def available_cpu_count() -> int:
    """Number of cores this process may run on."""
    try:
        return len(psutil.Process().cpu_affinity()) or 1
    except AttributeError:
        # cpu_affinity() is not available on macOS
        return psutil.cpu_count(logical=True) or 1


class _ProgressCounter:
    """Lock-protected counter of finished work items."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value


class ChecksumEngine:
    """
    Streaming CRC32/MD5 calculator with a parallel batch mode.

    Thread Safety:
        digest() keeps no shared state and may be called from any thread.
        Once cancel() was called the engine stays cancelled.
    """

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        parallelism: int = 0,
        progress_step: int = DEFAULT_PROGRESS_STEP,
        cancel_event: Optional[threading.Event] = None
    ) -> None:
        """
        Args:
            chunk_size: Bytes read per chunk
            parallelism: Number of worker threads for digest_all (0 = available cores)
            progress_step: Percentage granularity of single-file progress callbacks
            cancel_event: Optional shared event; when set, running work stops
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self.parallelism = parallelism if parallelism > 0 else available_cpu_count()
        self.progress_step = max(1, progress_step)
        self._cancel_event = cancel_event or threading.Event()

    @classmethod
    def from_config(cls, config, cancel_event: Optional[threading.Event] = None) -> ChecksumEngine:
        """Create an engine from a Config (uses the scan section)."""
        return cls(
            chunk_size=config.scan.chunk_size,
            parallelism=config.scan.parallelism,
            progress_step=config.scan.progress_step,
            cancel_event=cancel_event,
        )

    def cancel(self) -> None:
        """Request cancellation of running and future work."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def digest(self, file_path: Path, progress: Optional[ProgressCallback] = None) -> FileDigest:
        """
        Compute CRC32 and MD5 of a file.

        Args:
            file_path: File to hash
            progress: Optional callback receiving percentages in progress_step
                      increments, always ending with 100

        Returns:
            FileDigest for the file

        Raises:
            ChecksumIOError: If the file cannot be opened or read
            OperationCancelled: If cancellation was requested
        """
        file_path = Path(file_path)
        crc = 0
        md5_hash = hashlib.md5()
        bytes_read = 0
        reported = 0

        try:
            with open(file_path, 'rb') as f:
                file_size = os.fstat(f.fileno()).st_size
                while True:
                    if self.cancelled:
                        raise OperationCancelled(f"Checksum of {file_path.name} cancelled")
                    chunk = f.read(self.chunk_size)
                    if not chunk:
                        break
                    crc = zlib.crc32(chunk, crc)
                    md5_hash.update(chunk)
                    bytes_read += len(chunk)

                    if progress is not None and file_size > 0:
                        percent = min(100, bytes_read * 100 // file_size)
                        percent -= percent % self.progress_step
                        if percent > reported:
                            reported = percent
                            progress(percent)
        except OSError as e:
            raise ChecksumIOError(e.errno, f"Cannot read file: {e.strerror or e}", str(file_path)) from e

        if progress is not None and reported < 100:
            progress(100)

        return FileDigest(
            path=file_path,
            crc32=Crc32(crc & 0xFFFFFFFF),
            md5=Md5(md5_hash.digest()),
            size=bytes_read,
        )

    def digest_all(
        self,
        paths: Iterable[Path],
        on_progress: Optional[BatchProgressCallback] = None,
        skip_errors: bool = True
    ) -> List[FileDigest]:
        """
        Hash many files on a pool of worker threads.

        Returns only after every worker has exited and joined. Result order
        is not related to input order.

        Args:
            paths: Files to hash
            on_progress: Optional callback(completed, total), called from
                         worker threads after each file
            skip_errors: Log and skip unreadable files; if False the first
                         ChecksumIOError is raised after all workers joined

        Returns:
            List of FileDigest, one per readable file

        Raises:
            ChecksumIOError: If skip_errors is False and a file failed
            OperationCancelled: If cancellation was requested
            Exception: The first unexpected worker or on_progress error, after
                       all workers joined
        """
        paths = [Path(p) for p in paths]
        total = len(paths)
        if total == 0:
            return []

        workers = min(self.parallelism, total)
        start_time = time.time()
        logger.info(f"Hashing {total} files with {workers} threads")

        work_queue: Queue[int] = Queue()
        for index in range(total):
            work_queue.put(index)

        partials: List[List[FileDigest]] = [[] for _ in range(workers)]
        failures: List[Exception] = []
        failures_lock = threading.Lock()
        counter = _ProgressCounter()

        threads = []
        for i in range(workers):
            t = threading.Thread(
                target=self._digest_worker,
                args=(paths, work_queue, partials[i], failures, failures_lock, counter, on_progress),
                name=f"Checksum-{i}",
                daemon=True
            )
            t.start()
            threads.append(t)

        for t in threads:
            t.join()

        if self.cancelled:
            raise OperationCancelled(f"Hashing cancelled after {sum(len(p) for p in partials)}/{total} files")

        for failure in failures:
            if not isinstance(failure, ChecksumIOError):
                raise failure
        if failures and not skip_errors:
            raise failures[0]

        results = [d for partial in partials for d in partial]
        logger.info(
            f"Hashed {len(results)}/{total} files in {time.time() - start_time:.2f}s "
            f"({len(failures)} unreadable)"
        )
        return results

    def _digest_worker(
        self,
        paths: List[Path],
        work_queue: Queue[int],
        results: List[FileDigest],
        failures: List[Exception],
        failures_lock: threading.Lock,
        counter: _ProgressCounter,
        on_progress: Optional[BatchProgressCallback]
    ) -> None:
        """Pull file indices until the queue is drained or cancellation is requested."""
        total = len(paths)

        while not self.cancelled:
            try:
                index = work_queue.get_nowait()
            except Empty:
                break

            file_path = paths[index]
            try:
                results.append(self.digest(file_path))
            except OperationCancelled:
                break
            except ChecksumIOError as e:
                logger.warning(f"Cannot hash {file_path.name}: {e}")
                with failures_lock:
                    failures.append(e)
            except Exception as e:
                logger.exception(f"Unexpected error hashing {file_path.name}")
                with failures_lock:
                    failures.append(e)

            completed = counter.increment()
            if on_progress is not None:
                try:
                    on_progress(completed, total)
                except Exception as e:
                    logger.exception(f"Progress callback failed after {file_path.name}")
                    with failures_lock:
                        failures.append(e)


def digest(file_path: Path, progress: Optional[ProgressCallback] = None) -> FileDigest:
    """Compute CRC32 and MD5 of a single file with default settings."""
    return ChecksumEngine(parallelism=1).digest(file_path, progress)


def digest_all(paths: Iterable[Path], parallelism: int = 0) -> List[FileDigest]:
    """Hash files on `parallelism` worker threads (0 = available cores)."""
    return ChecksumEngine(parallelism=parallelism).digest_all(paths)
