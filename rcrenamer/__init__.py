"""rcrenamer - restore scrambled filenames from SFV and PAR2 checksum catalogs."""

__version__ = "0.1.0"
