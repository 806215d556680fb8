"""
Catalog Data Model
==================

Uniform representation of checksum catalogs (SFV or PAR2) and of the files
found on disk, plus the rename recommendations derived from matching them.

Discovery state is a bitmask shared by catalog entries and existing files.
The FOUND bit is set exactly once, when a record takes part in a match, and
excludes the record from any further matching.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from pathlib import Path
from typing import List, Optional

from .digests import Crc32, Md5

# Suffix appended to a catalog filename when grouping matched files
GROUP_FOLDER_SUFFIX = "_FILES"


class DiscoveryState(IntFlag):
    """Per-record matching state."""
    NONE = 0
    FOUND = 1


class SourceType(Enum):
    """Catalog file format."""
    SFV = "SFV"
    PAR2 = "PAR2"

    @property
    def extension(self) -> str:
        """Canonical file extension including the dot."""
        return f".{self.value.lower()}"

    @classmethod
    def from_filename(cls, filename: str) -> Optional[SourceType]:
        """
        Guess the catalog type from a filename extension.

        Args:
            filename: File name or path

        Returns:
            SourceType, or None if the extension is not a catalog extension
        """
        suffix = os.path.splitext(str(filename))[1].lower()
        for source_type in cls:
            if suffix == source_type.extension:
                return source_type
        return None

    def __str__(self) -> str:
        return self.value


@dataclass
class CatalogEntry:
    """
    One expected file listed in a catalog.

    Attributes:
        filename: Expected filename
        crc32: Expected CRC32 (SFV), or None
        md5: Expected MD5 of the whole file (PAR2), or None
        valid: False for malformed SFV lines; invalid entries never match
        state: Discovery state bitmask
        file_id: 16-byte PAR2 file ID, or None for SFV entries
    """
    filename: str
    crc32: Optional[Crc32] = None
    md5: Optional[Md5] = None
    valid: bool = True
    state: DiscoveryState = DiscoveryState.NONE
    file_id: Optional[bytes] = None

    def has_state(self, flag: DiscoveryState) -> bool:
        return bool(self.state & flag)

    def set_state(self, flag: DiscoveryState) -> None:
        self.state |= flag

    @property
    def found(self) -> bool:
        """Whether this entry was matched to an existing file."""
        return self.has_state(DiscoveryState.FOUND)

    def __str__(self) -> str:
        crc = self.crc32.hex() if self.crc32 else ""
        md5 = self.md5.hex() if self.md5 else ""
        return f"'{self.filename}' crc32:{crc} md5:{md5}"


@dataclass
class Catalog:
    """
    Parsed checksum catalog.

    Attributes:
        source_type: SFV or PAR2
        source_path: Path of the catalog file
        entries: Expected files in catalog order
        valid: False if the file is not a well-formed catalog of this type
        creator: PAR2 client identification (Creator packet)
        slice_size: PAR2 slice size (Main packet)
        file_count: Number of files in the PAR2 recovery set (Main packet)
    """
    source_type: SourceType
    source_path: Path
    entries: List[CatalogEntry] = field(default_factory=list)
    valid: bool = True
    creator: str = ''
    slice_size: int = 0
    file_count: int = 0

    @property
    def valid_entries(self) -> List[CatalogEntry]:
        """Entries usable for matching."""
        return [e for e in self.entries if e.valid]

    @property
    def group_folder_name(self) -> str:
        """Subfolder name used when grouping this catalog's files."""
        return f"{Path(self.source_path).name}{GROUP_FOLDER_SUFFIX}"

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return (
            f"Catalog("
            f"type={self.source_type.value}, "
            f"source={str(self.source_path)!r}, "
            f"entries={len(self.entries)}, "
            f"valid={self.valid})"
        )


@dataclass(frozen=True)
class FileDigest:
    """
    Checksums computed for one file.

    Attributes:
        path: Path of the hashed file
        crc32: CRC32 of the file content
        md5: MD5 of the file content
        size: Number of bytes hashed
    """
    path: Path
    crc32: Crc32
    md5: Md5
    size: int = 0


@dataclass
class ExistingFile:
    """
    A file found on disk together with its computed checksums.

    Attributes:
        path: Absolute path of the file
        filename: Current filename
        crc32: Computed CRC32, or None if not computed
        md5: Computed MD5, or None if not computed
        state: Discovery state bitmask
    """
    path: Path
    filename: str
    crc32: Optional[Crc32] = None
    md5: Optional[Md5] = None
    state: DiscoveryState = DiscoveryState.NONE

    @classmethod
    def from_digest(cls, digest: FileDigest) -> ExistingFile:
        path = Path(digest.path).absolute()
        return cls(path=path, filename=path.name, crc32=digest.crc32, md5=digest.md5)

    def has_state(self, flag: DiscoveryState) -> bool:
        return bool(self.state & flag)

    def set_state(self, flag: DiscoveryState) -> None:
        self.state |= flag

    @property
    def found(self) -> bool:
        """Whether this file was matched to a catalog entry."""
        return self.has_state(DiscoveryState.FOUND)


@dataclass(frozen=True)
class RenamingRecommendation:
    """
    Proposed rename derived from a checksum match.

    Attributes:
        source: Current path of the file
        target_name: Filename the file should have
    """
    source: Path
    target_name: str

    def __str__(self) -> str:
        return f"{self.source} -> {self.target_name}"
