"""
Reconciliation Engine
=====================

Matches files found on disk against catalog entries by checksum equality and
derives rename recommendations from the matches.

Matching rules:
- Only valid catalog entries take part
- A pair matches if both sides carry a CRC32 and they are equal, or both
  carry an MD5 and they are equal
- With require_all_checksums, a pair is additionally rejected if any
  checksum kind present on both sides disagrees
- Every match sets the FOUND bit on both sides; FOUND records are skipped,
  so each file and each entry takes part in at most one match

Traversal is existing-files-major, catalog-entries-minor, so the result is
deterministic for a deterministic input order.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple

from .catalog import Catalog, CatalogEntry, DiscoveryState, ExistingFile, RenamingRecommendation

logger = logging.getLogger(__name__)

# Auxiliary files a catalog may list without being required for completeness
IGNORED_EXTENSIONS: Tuple[str, ...] = (".nfo", ".txt", ".srr", ".sfv", ".par2")


class Reconciler:
    """
    Checksum matcher and completeness checker.

    Example:
        reconciler = Reconciler()
        recommendations = reconciler.match(existing_files, catalog.entries)
        if not reconciler.is_complete(catalog):
            print(reconciler.missing_entries(catalog))
    """

    def __init__(
        self,
        require_all_checksums: bool = False,
        ignored_extensions: Iterable[str] = IGNORED_EXTENSIONS
    ) -> None:
        """
        Args:
            require_all_checksums: Reject pairs where a checksum kind present
                                   on both sides disagrees
            ignored_extensions: Extensions not required for completeness
        """
        self.require_all_checksums = require_all_checksums
        self.ignored_extensions = tuple(ext.lower() for ext in ignored_extensions)

    @classmethod
    def from_config(cls, config) -> Reconciler:
        """Create a reconciler from a Config (uses the match section)."""
        return cls(
            require_all_checksums=config.match.require_all_checksums,
            ignored_extensions=config.match.ignored_extensions,
        )

    def checksums_match(self, existing: ExistingFile, entry: CatalogEntry) -> bool:
        """Apply the checksum policy to one pair."""
        crc32_present = existing.crc32 is not None and entry.crc32 is not None
        md5_present = existing.md5 is not None and entry.md5 is not None

        crc32_matches = crc32_present and existing.crc32 == entry.crc32
        md5_matches = md5_present and existing.md5 == entry.md5

        if not (crc32_matches or md5_matches):
            return False

        if self.require_all_checksums:
            if crc32_present and not crc32_matches:
                return False
            if md5_present and not md5_matches:
                return False

        return True

    def match(
        self,
        existing_files: Sequence[ExistingFile],
        entries: Sequence[CatalogEntry]
    ) -> List[RenamingRecommendation]:
        """
        Match existing files against catalog entries.

        Marks matched records FOUND in place. Calling match again over the
        same records yields no further recommendations.

        Args:
            existing_files: Files found on disk
            entries: Catalog entries

        Returns:
            One recommendation per match, in traversal order
        """
        recommendations: List[RenamingRecommendation] = []

        for existing in existing_files:
            if existing.found:
                continue
            for entry in entries:
                if not entry.valid or entry.found:
                    continue
                if not self.checksums_match(existing, entry):
                    continue

                recommendations.append(RenamingRecommendation(
                    source=existing.path,
                    target_name=entry.filename,
                ))
                existing.set_state(DiscoveryState.FOUND)
                entry.set_state(DiscoveryState.FOUND)
                logger.debug(f"Match: {existing.filename} -> {entry.filename}")
                break

        logger.info(f"Matched {len(recommendations)} of {len(entries)} catalog entries")
        return recommendations

    def is_ignored(self, entry: CatalogEntry) -> bool:
        """Whether an entry names an auxiliary file not needed for completeness."""
        return entry.filename.lower().endswith(self.ignored_extensions)

    def missing_entries(self, catalog: Catalog) -> List[CatalogEntry]:
        """Required entries that have not been found."""
        return [e for e in catalog.entries if not e.found and not self.is_ignored(e)]

    def is_complete(self, catalog: Catalog) -> bool:
        """True iff every required entry of the catalog has been found."""
        return not self.missing_entries(catalog)


def reconcile(existing_files: Sequence[ExistingFile], catalog: Catalog) -> List[RenamingRecommendation]:
    """Match files against a catalog with the default (permissive) policy."""
    return Reconciler().match(existing_files, catalog.entries)


def is_catalog_complete(catalog: Catalog) -> bool:
    """True iff every non-auxiliary entry of the catalog has been found."""
    return Reconciler().is_complete(catalog)
