"""
Catalog Loading
===============

Format detection for checksum catalogs and repair of catalog files that lost
their extension.

load_catalog() tries the format suggested by the file extension first and
falls back to the other one, so a .sfv that is really a PAR2 file (or a
renamed file without extension) still loads.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .catalog import Catalog, RenamingRecommendation, SourceType
from .errors import CatalogFormatError
from .par2_reader import Par2Reader
from .scanner import list_files
from .sfv_reader import is_sfv, read_sfv

logger = logging.getLogger(__name__)

NOT_A_CATALOG_SUFFIX = "_not"


def detect_catalog_type(path: Path, par2_reader: Optional[Par2Reader] = None) -> Optional[SourceType]:
    """
    Sniff the catalog format from file content.

    Returns:
        SourceType, or None if the file is neither PAR2 nor SFV
    """
    par2_reader = par2_reader or Par2Reader()
    if par2_reader.probe(path):
        return SourceType.PAR2
    if is_sfv(path):
        return SourceType.SFV
    return None


def load_catalog(path: Path, par2_reader: Optional[Par2Reader] = None) -> Catalog:
    """
    Load a catalog, trying the extension's format first.

    A .sfv file is always read as SFV (malformed lines become invalid
    entries) unless its content starts with PAR2 magic. Other files are
    tried as PAR2, then sniffed as SFV.

    Args:
        path: Catalog file
        par2_reader: Reader to use for PAR2 files

    Returns:
        Parsed Catalog. A truncated PAR2 file that is not SFV either is
        returned with valid=False and the entries read before the damage.

    Raises:
        CatalogIOError: If the file cannot be read
        CatalogFormatError: If the file is neither PAR2 nor SFV
    """
    path = Path(path)
    par2_reader = par2_reader or Par2Reader()

    if SourceType.from_filename(path.name) is SourceType.SFV and not par2_reader.probe(path):
        return read_sfv(path)

    catalog = par2_reader.parse(path)
    if catalog.valid:
        return catalog

    if is_sfv(path):
        return read_sfv(path)

    if catalog.entries:
        logger.warning(f"{path.name}: damaged PAR2 file, using {len(catalog.entries)} entries read before the damage")
        return catalog

    raise CatalogFormatError(f"Not a PAR2 or SFV file: {path}")


def fix_misnamed_catalog_files(
    directory: Path,
    dry_run: bool = False,
    par2_reader: Optional[Par2Reader] = None
) -> List[RenamingRecommendation]:
    """
    Restore catalog extensions inside a directory.

    - PAR2 content without .par2 extension: append ".par2"
    - SFV content without .sfv extension: append ".sfv"
    - .par2/.sfv extension without matching content: append "_not"

    Existing targets are never overwritten.

    Args:
        directory: Folder to check (non-recursive)
        dry_run: Only report what would be renamed
        par2_reader: Reader used to probe PAR2 content

    Returns:
        Renames performed (or planned under dry-run)
    """
    par2_reader = par2_reader or Par2Reader()
    renamed: List[RenamingRecommendation] = []

    for file_path in list_files(directory):
        name = file_path.name
        lower = name.lower()
        new_name: Optional[str] = None

        if par2_reader.probe(file_path):
            if not lower.endswith(SourceType.PAR2.extension):
                new_name = name + SourceType.PAR2.extension
        elif is_sfv(file_path):
            if not lower.endswith(SourceType.SFV.extension):
                new_name = name + SourceType.SFV.extension
        elif SourceType.from_filename(name) is not None:
            new_name = name + NOT_A_CATALOG_SUFFIX

        if new_name is None:
            logger.debug(f"Keep {name}")
            continue

        new_path = file_path.with_name(new_name)
        if new_path.exists():
            logger.warning(f"Will not rename {name} to {new_name} because the target already exists")
            continue

        if dry_run:
            logger.info(f"[dry run] Will rename {name} to {new_name}")
        else:
            try:
                file_path.rename(new_path)
            except OSError as e:
                logger.error(f"Failed to rename {name} to {new_name}: {e}")
                continue
            logger.info(f"Renamed {name} to {new_name}")

        renamed.append(RenamingRecommendation(source=file_path, target_name=new_name))

    return renamed
