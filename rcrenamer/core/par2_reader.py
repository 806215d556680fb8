"""
PAR2 Catalog Reader
===================

Streams a .par2 file packet by packet and turns its FileDesc packets into a
Catalog of expected files (filename + MD5 of the whole file).

PAR2 packet structure reference (from PAR2 specification):
- Packet header: 64 bytes
  - 8 bytes: Magic sequence (PAR2\\x00PKT)
  - 8 bytes: Packet length (little-endian uint64, includes header)
  - 16 bytes: MD5 hash of packet body
  - 16 bytes: Recovery set ID
  - 16 bytes: Packet type signature
- Packet body: Variable length (packet_length - 64 bytes)

Supported packet types:
- Main packet: Slice size, file count
- Creator packet: PAR2 client identification string
- FileDesc packet: File ID, MD5 hashes, size, filename
- IFSC packet: Input File Slice Checksums (parsed, not surfaced)

Any other packet type (e.g. RecvSlic recovery data) is skipped with a seek,
so volume files are cheap to read.

A file whose first packet does not start with the magic sequence yields a
catalog with valid=False rather than an exception, so callers can retry the
file as SFV. Only open/read failures raise CatalogIOError.

Usage:
    reader = Par2Reader()
    if reader.probe(Path("archive.par2")):
        catalog = reader.parse(Path("archive.par2"))
        for entry in catalog.entries:
            print(entry.filename, entry.md5.hex())
"""

from __future__ import annotations

import logging
import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Optional, Set, Union

from .catalog import Catalog, CatalogEntry, SourceType
from .digests import Md5
from .errors import CatalogIOError

logger = logging.getLogger(__name__)

# PAR2 packet signatures
PACKET_MAGIC = b'PAR2\x00PKT'
PACKET_MAIN = b'PAR 2.0\x00Main\x00\x00\x00\x00'
PACKET_CREATOR = b'PAR 2.0\x00Creator\x00'
PACKET_FILE_DESC = b'PAR 2.0\x00FileDesc'
PACKET_IFSC = b'PAR 2.0\x00IFSC\x00\x00\x00\x00'

# magic, length, packet hash, recovery set id, packet type
HEADER_STRUCT = struct.Struct('<8sQ16s16s16s')
HEADER_LENGTH = HEADER_STRUCT.size  # 64

FILE_DESC_FIXED_LENGTH = 56
IFSC_ENTRY_LENGTH = 20  # MD5 + CRC32 per slice


def printable(data: bytes) -> str:
    """Render bytes as ASCII, replacing non-printable bytes with spaces."""
    return ''.join(chr(b) if 32 <= b <= 126 else ' ' for b in data)


@dataclass(frozen=True)
class PacketHeader:
    """
    Fixed 64-byte PAR2 packet header.

    Attributes:
        magic: 8-byte magic sequence
        length: Total packet length including this header
        packet_hash: MD5 of the packet body (not verified)
        recovery_set_id: Recovery set ID (not used)
        packet_type: 16-byte type signature
    """
    magic: bytes
    length: int
    packet_hash: bytes
    recovery_set_id: bytes
    packet_type: bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> PacketHeader:
        """Decode a header from exactly HEADER_LENGTH bytes."""
        return cls(*HEADER_STRUCT.unpack(data))

    @property
    def has_valid_magic(self) -> bool:
        return self.magic == PACKET_MAGIC

    @property
    def body_length(self) -> int:
        return self.length - HEADER_LENGTH

    @property
    def type_name(self) -> str:
        """Printable form of the packet type, e.g. 'PAR 2.0 FileDesc'."""
        return printable(self.packet_type).strip()

    def __repr__(self) -> str:
        return (
            f"PacketHeader("
            f"magic={printable(self.magic)!r}, "
            f"len={self.length}, "
            f"packet_hash={self.packet_hash.hex()}, "
            f"recovery_set_id={self.recovery_set_id.hex()}, "
            f"type={self.type_name!r})"
        )


@dataclass(frozen=True)
class MainPacket:
    """Main packet: slice size and number of files in the recovery set."""
    slice_size: int
    file_count: int


@dataclass(frozen=True)
class CreatorPacket:
    """Creator packet: identification of the client that wrote the file."""
    client: str


@dataclass(frozen=True)
class FileDescriptorPacket:
    """
    FileDesc packet.

    Attributes:
        file_id: 16-byte file ID (unique per file in the set)
        md5_full: MD5 of the complete file
        md5_first_16k: MD5 of the first 16 KiB (unused)
        length: File size in bytes
        filename: Original filename
    """
    file_id: bytes
    md5_full: bytes
    md5_first_16k: bytes
    length: int
    filename: str


@dataclass(frozen=True)
class SliceChecksumPacket:
    """IFSC packet: per-slice checksums of one file."""
    file_id: bytes
    slice_count: int


@dataclass(frozen=True)
class UnknownPacket:
    """Any packet type this reader does not interpret; its body is skipped."""
    packet_type: bytes
    skip_length: int


Par2Packet = Union[MainPacket, CreatorPacket, FileDescriptorPacket, SliceChecksumPacket, UnknownPacket]


def _parse_main_packet(body: bytes) -> Optional[MainPacket]:
    """
    Main packet body format:
    - 8 bytes: Slice size
    - 4 bytes: Number of files in the recovery set
    - Remaining: File IDs (16 bytes each)
    """
    if len(body) < 12:
        logger.warning(f"Main packet too short: {len(body)} bytes")
        return None
    slice_size, file_count = struct.unpack_from('<QI', body)
    return MainPacket(slice_size=slice_size, file_count=file_count)


def _parse_creator_packet(body: bytes) -> CreatorPacket:
    return CreatorPacket(client=body.rstrip(b'\x00').decode('utf-8', errors='replace'))


def _parse_file_desc_packet(body: bytes) -> Optional[FileDescriptorPacket]:
    """
    FileDesc packet body format:
    - 16 bytes: File ID
    - 16 bytes: MD5 hash of complete file
    - 16 bytes: MD5 hash of first 16KB
    - 8 bytes: File size
    - Remaining: Filename (NUL padded to 4 bytes)
    """
    if len(body) < FILE_DESC_FIXED_LENGTH:
        logger.warning(f"FileDesc packet too short: {len(body)} bytes")
        return None

    file_size = struct.unpack_from('<Q', body, 48)[0]

    filename_bytes = body[FILE_DESC_FIXED_LENGTH:]
    null_pos = filename_bytes.find(b'\x00')
    if null_pos >= 0:
        filename_bytes = filename_bytes[:null_pos]

    return FileDescriptorPacket(
        file_id=body[0:16],
        md5_full=body[16:32],
        md5_first_16k=body[32:48],
        length=file_size,
        filename=filename_bytes.decode('utf-8', errors='replace'),
    )


def _parse_ifsc_packet(body: bytes) -> Optional[SliceChecksumPacket]:
    if len(body) < 16:
        logger.warning("IFSC packet too short")
        return None
    return SliceChecksumPacket(
        file_id=body[0:16],
        slice_count=(len(body) - 16) // IFSC_ENTRY_LENGTH,
    )


PACKET_PARSERS: Dict[bytes, Callable[[bytes], Optional[Par2Packet]]] = {
    PACKET_MAIN: _parse_main_packet,
    PACKET_CREATOR: _parse_creator_packet,
    PACKET_FILE_DESC: _parse_file_desc_packet,
    PACKET_IFSC: _parse_ifsc_packet,
}


class Par2Reader:
    """
    Reader for PAR2 catalog files.

    Example:
        reader = Par2Reader(verbose=True)
        catalog = reader.parse(Path("download/archive.par2"))
        if not catalog.valid:
            ...  # not a PAR2 file, try SFV
    """

    def __init__(self, verbose: bool = False) -> None:
        """
        Args:
            verbose: Log every packet header at INFO instead of DEBUG
        """
        self.verbose = verbose

    @classmethod
    def from_config(cls, config) -> Par2Reader:
        """Create a reader from a Config (uses logging.verbose)."""
        return cls(verbose=config.logging.verbose)

    def probe(self, par2_path: Path) -> bool:
        """
        Check whether a file starts with a PAR2 packet header.

        Only the first header is read; no packet body is processed.

        Args:
            par2_path: File to check

        Returns:
            True if the first 64 bytes form a header with the PAR2 magic
        """
        try:
            with open(par2_path, 'rb') as f:
                raw = f.read(HEADER_LENGTH)
        except OSError as e:
            logger.debug(f"Cannot probe {par2_path}: {e}")
            return False

        if len(raw) < HEADER_LENGTH:
            return False
        return PacketHeader.from_bytes(raw).has_valid_magic

    def parse(self, par2_path: Path) -> Catalog:
        """
        Parse a PAR2 file into a Catalog.

        Args:
            par2_path: Path to the .par2 file

        Returns:
            Catalog with one entry per distinct file ID. The catalog is
            marked invalid if the magic is wrong or a packet is truncated;
            entries parsed before that point are kept.

        Raises:
            CatalogIOError: If the file cannot be opened or read
        """
        par2_path = Path(par2_path)
        catalog = Catalog(source_type=SourceType.PAR2, source_path=par2_path)

        logger.debug(f"Parsing PAR2 file: {par2_path}")

        try:
            with open(par2_path, 'rb') as f:
                packets = self._read_packets(f, catalog)
        except OSError as e:
            raise CatalogIOError(e.errno, f"Cannot read PAR2 file: {e.strerror or e}", str(par2_path)) from e

        logger.info(
            f"PAR2 parsed {par2_path.name}: {packets} packets, "
            f"{len(catalog.entries)} files, valid={catalog.valid}"
        )
        return catalog

    def _read_packets(self, f: BinaryIO, catalog: Catalog) -> int:
        """Run the packet loop over an open file; returns the packet count."""
        file_size = os.fstat(f.fileno()).st_size
        seen_ids: Set[bytes] = set()
        packets = 0

        while True:
            raw = f.read(HEADER_LENGTH)
            if not raw:
                if packets == 0:
                    logger.debug(f"{catalog.source_path.name}: empty file")
                    catalog.valid = False
                break

            if packets == 0 and not raw.startswith(PACKET_MAGIC) and not PACKET_MAGIC.startswith(raw):
                logger.debug(f"{catalog.source_path.name}: no PAR2 magic, not a PAR2 file")
                catalog.valid = False
                break

            if len(raw) < HEADER_LENGTH:
                logger.warning(f"{catalog.source_path.name}: truncated packet header ({len(raw)} bytes)")
                catalog.valid = False
                break

            header = PacketHeader.from_bytes(raw)

            if not header.has_valid_magic:
                if packets == 0:
                    logger.debug(f"{catalog.source_path.name}: no PAR2 magic, not a PAR2 file")
                else:
                    logger.warning(f"{catalog.source_path.name}: bad packet magic after {packets} packets")
                catalog.valid = False
                break

            if header.length < HEADER_LENGTH:
                logger.warning(f"{catalog.source_path.name}: invalid packet length {header.length}")
                catalog.valid = False
                break

            logger.log(logging.INFO if self.verbose else logging.DEBUG, f"{header!r}")

            body_length = header.body_length
            if f.tell() + body_length > file_size:
                logger.warning(
                    f"{catalog.source_path.name}: truncated packet "
                    f"{header.type_name!r}, need {body_length} body bytes"
                )
                catalog.valid = False
                break

            parser = PACKET_PARSERS.get(header.packet_type)
            if parser is None:
                f.seek(body_length, os.SEEK_CUR)
                packet: Optional[Par2Packet] = UnknownPacket(header.packet_type, body_length)
            else:
                body = f.read(body_length)
                if len(body) < body_length:
                    logger.warning(f"{catalog.source_path.name}: short read in packet body")
                    catalog.valid = False
                    break
                packet = parser(body)

            packets += 1
            if packet is not None:
                self._apply_packet(packet, catalog, seen_ids)

        return packets

    def _apply_packet(self, packet: Par2Packet, catalog: Catalog, seen_ids: Set[bytes]) -> None:
        """Fold one parsed packet into the catalog."""
        if isinstance(packet, FileDescriptorPacket):
            if packet.file_id in seen_ids:
                logger.debug(f"Duplicate FileDesc for {packet.filename} ({packet.file_id.hex()[:8]}...)")
                return
            seen_ids.add(packet.file_id)
            catalog.entries.append(CatalogEntry(
                filename=packet.filename,
                md5=Md5(packet.md5_full),
                file_id=packet.file_id,
            ))
            logger.debug(f"File: {packet.filename} ({packet.length} bytes, MD5: {packet.md5_full.hex()[:16]}...)")

        elif isinstance(packet, MainPacket):
            catalog.slice_size = packet.slice_size
            catalog.file_count = packet.file_count
            logger.debug(f"Slice size: {packet.slice_size} bytes, {packet.file_count} files")

        elif isinstance(packet, CreatorPacket):
            catalog.creator = packet.client
            logger.debug(f"Creator: {packet.client}")

        elif isinstance(packet, SliceChecksumPacket):
            logger.debug(f"IFSC: {packet.file_id.hex()[:8]}... has {packet.slice_count} slices")


def read_par2(par2_path: Path) -> Catalog:
    """Parse a PAR2 file with a default reader."""
    return Par2Reader().parse(par2_path)


def is_par2(par2_path: Path) -> bool:
    """Return True if the file starts with a PAR2 packet header."""
    return Par2Reader().probe(par2_path)
