"""Error kinds raised by the catalog readers, checksum engine and scheduler."""


class RenamerError(Exception):
    """Base class for all rcrenamer errors."""


class CatalogIOError(RenamerError, OSError):
    """A catalog file could not be opened or read."""


class ChecksumIOError(RenamerError, OSError):
    """A file could not be read while computing its checksums."""


class CatalogFormatError(RenamerError, ValueError):
    """A file is neither a valid SFV nor a valid PAR2 catalog."""


class OperationCancelled(RenamerError):
    """A long-running operation observed a cancellation request."""
