"""
Digest Value Types
==================

Fixed-width checksum values used by catalogs and the checksum engine.

- Crc32: 32-bit CRC (IEEE polynomial), as found in SFV files
- Md5: 16-byte MD5 digest, as found in PAR2 FileDesc packets

Both are immutable, compare structurally and can be used as dict keys.
"""

from __future__ import annotations

from dataclasses import dataclass

MD5_LENGTH = 16


@dataclass(frozen=True)
class Crc32:
    """
    CRC32 checksum value.

    Attributes:
        value: Unsigned 32-bit integer
    """
    value: int

    def __post_init__(self) -> None:
        """Validate value range."""
        if not 0 <= self.value <= 0xFFFFFFFF:
            raise ValueError(f"CRC32 out of range: {self.value}")

    @classmethod
    def from_hex(cls, text: str) -> Crc32:
        """Parse an 8-character hexadecimal string (case-insensitive)."""
        if len(text) != 8:
            raise ValueError(f"CRC32 hex must be 8 characters, got {len(text)}")
        return cls(int(text, 16))

    def hex(self) -> str:
        """Return the value as 8 lowercase hex characters."""
        return f"{self.value:08x}"

    def to_bytes(self) -> bytes:
        """Return the 4-byte big-endian representation."""
        return self.value.to_bytes(4, 'big')

    def __str__(self) -> str:
        return self.hex()


@dataclass(frozen=True)
class Md5:
    """
    MD5 digest value.

    Attributes:
        digest: Raw 16-byte digest
    """
    digest: bytes

    def __post_init__(self) -> None:
        """Validate digest length."""
        if len(self.digest) != MD5_LENGTH:
            raise ValueError(f"MD5 must be {MD5_LENGTH} bytes, got {len(self.digest)}")

    @classmethod
    def from_hex(cls, text: str) -> Md5:
        """Parse a 32-character hexadecimal string."""
        return cls(bytes.fromhex(text))

    def hex(self) -> str:
        """Return the digest as 32 lowercase hex characters."""
        return self.digest.hex()

    def __str__(self) -> str:
        return self.hex()
