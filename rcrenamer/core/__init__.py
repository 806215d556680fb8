"""Core components for rcrenamer."""

# Lazy imports to avoid the psutil dependency when only reading catalogs

__all__ = [
    "Catalog",
    "CatalogEntry",
    "ExistingFile",
    "RenamingRecommendation",
    "Par2Reader",
    "read_sfv",
    "load_catalog",
    "ChecksumEngine",
    "scan_directory",
    "Reconciler",
    "RenameScheduler",
    "RenameReport",
]


def __getattr__(name):
    """Lazy import modules to avoid loading psutil up front."""
    if name in ('Catalog', 'CatalogEntry', 'ExistingFile', 'RenamingRecommendation'):
        from . import catalog
        return getattr(catalog, name)
    elif name == 'Par2Reader':
        from .par2_reader import Par2Reader
        return Par2Reader
    elif name == 'read_sfv':
        from .sfv_reader import read_sfv
        return read_sfv
    elif name == 'load_catalog':
        from .catalog_loader import load_catalog
        return load_catalog
    elif name == 'ChecksumEngine':
        from .checksum_engine import ChecksumEngine
        return ChecksumEngine
    elif name == 'scan_directory':
        from .scanner import scan_directory
        return scan_directory
    elif name == 'Reconciler':
        from .reconciliation import Reconciler
        return Reconciler
    elif name == 'RenameScheduler':
        from .rename_scheduler import RenameScheduler
        return RenameScheduler
    elif name == 'RenameReport':
        from .rename_scheduler import RenameReport
        return RenameReport
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
