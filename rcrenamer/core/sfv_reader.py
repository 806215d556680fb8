"""
SFV Catalog Reader
==================

Line format:
    ; comment
    <filename><whitespace><8 hex digit CRC32>

The filename may itself contain whitespace; the CRC32 is the token after the
last whitespace run. Lines whose trailing token is not exactly 8 hex digits
are kept as invalid entries so they remain visible in reports.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from .catalog import Catalog, CatalogEntry, SourceType
from .digests import Crc32
from .errors import CatalogIOError

logger = logging.getLogger(__name__)

COMMENT_PREFIX = ';'

PROBE_MAX_LINES = 64
PROBE_MAX_LINE_LENGTH = 4096

_LINE_RE = re.compile(r'^(?P<filename>.*?)\s+(?P<checksum>\S+)$')
_HEX8_RE = re.compile(r'^[0-9A-Fa-f]{8}$')


def parse_sfv_line(line: str) -> Optional[CatalogEntry]:
    """
    Parse one SFV line.

    Args:
        line: Raw line (line ending optional)

    Returns:
        CatalogEntry, or None for blank and comment lines
    """
    line = line.strip()
    if not line or line.startswith(COMMENT_PREFIX):
        return None

    match = _LINE_RE.match(line)
    if match is None:
        return CatalogEntry(filename=line, valid=False)

    filename = match.group('filename')
    checksum = match.group('checksum')

    if not _HEX8_RE.match(checksum):
        return CatalogEntry(filename=filename, valid=False)

    return CatalogEntry(filename=filename, crc32=Crc32.from_hex(checksum))


def _read_sfv(sfv_path: Path) -> Catalog:
    sfv_path = Path(sfv_path)
    catalog = Catalog(source_type=SourceType.SFV, source_path=sfv_path)

    try:
        with open(sfv_path, 'r', encoding='utf-8-sig', errors='replace') as f:
            for line_no, line in enumerate(f, 1):
                entry = parse_sfv_line(line)
                if entry is None:
                    continue
                if not entry.valid:
                    logger.debug(f"{sfv_path.name}:{line_no}: malformed line {line.rstrip()!r}")
                catalog.entries.append(entry)
    except OSError as e:
        raise CatalogIOError(e.errno, f"Cannot read SFV file: {e.strerror or e}", str(sfv_path)) from e

    return catalog


def read_sfv(sfv_path: Path) -> Catalog:
    """
    Parse an SFV file into a Catalog.

    Raises:
        CatalogIOError: If the file cannot be opened or read
    """
    catalog = _read_sfv(sfv_path)
    invalid = sum(1 for e in catalog.entries if not e.valid)
    logger.info(f"SFV parsed {Path(sfv_path).name}: {len(catalog.entries)} entries ({invalid} malformed)")
    return catalog


def is_sfv(sfv_path: Path) -> bool:
    """
    Return True if the first entry of the file is a valid SFV line.

    Reads at most PROBE_MAX_LINES lines of PROBE_MAX_LINE_LENGTH characters,
    so probing large binary files stays cheap.
    """
    try:
        with open(sfv_path, 'r', encoding='utf-8-sig', errors='replace') as f:
            for _ in range(PROBE_MAX_LINES):
                line = f.readline(PROBE_MAX_LINE_LENGTH)
                if not line:
                    break
                entry = parse_sfv_line(line)
                if entry is not None:
                    return entry.valid
    except OSError as e:
        logger.debug(f"Cannot probe {sfv_path}: {e}")
    return False
