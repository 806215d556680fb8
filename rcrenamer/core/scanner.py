"""Directory scanning: list the regular files of a folder and hash them."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .catalog import ExistingFile
from .checksum_engine import BatchProgressCallback, ChecksumEngine

logger = logging.getLogger(__name__)


def list_files(directory: Path) -> List[Path]:
    """
    List regular files directly inside a directory (non-recursive).

    Args:
        directory: Folder to list

    Returns:
        Absolute file paths sorted by name

    Raises:
        OSError: If the directory cannot be listed
    """
    directory = Path(directory).absolute()
    return sorted(p for p in directory.iterdir() if p.is_file())


def scan_directory(
    directory: Path,
    engine: Optional[ChecksumEngine] = None,
    on_progress: Optional[BatchProgressCallback] = None
) -> List[ExistingFile]:
    """
    Hash every file of a directory.

    Unreadable files are logged and left out. The returned list is sorted
    by path so matching over it is deterministic.

    Args:
        directory: Folder to scan
        engine: Checksum engine to use (default: one thread per core)
        on_progress: Optional callback(completed, total)

    Returns:
        ExistingFile records with crc32 and md5 set
    """
    engine = engine or ChecksumEngine()
    files = list_files(directory)
    logger.info(f"Scanning {len(files)} files in {directory}")

    digests = engine.digest_all(files, on_progress=on_progress)
    existing = [ExistingFile.from_digest(d) for d in digests]
    existing.sort(key=lambda e: str(e.path))
    return existing
