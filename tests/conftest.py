"""Shared fixtures: synthetic PAR2 packets and catalog files."""

import hashlib
import struct
from pathlib import Path

import pytest

from rcrenamer.core.par2_reader import (
    PACKET_CREATOR,
    PACKET_FILE_DESC,
    PACKET_IFSC,
    PACKET_MAGIC,
    PACKET_MAIN,
)

SET_ID = bytes(range(16))


class Par2Builder:
    """Builds PAR2 packets byte by byte."""

    @staticmethod
    def packet(packet_type, body, magic=PACKET_MAGIC, length=None):
        if len(body) % 4:
            body += b'\x00' * (4 - len(body) % 4)
        if length is None:
            length = 64 + len(body)
        packet_hash = hashlib.md5(SET_ID + packet_type + body).digest()
        header = struct.pack('<8sQ16s16s16s', magic, length, packet_hash, SET_ID, packet_type)
        return header + body

    @classmethod
    def main(cls, slice_size, file_ids):
        body = struct.pack('<QI', slice_size, len(file_ids)) + b''.join(file_ids)
        return cls.packet(PACKET_MAIN, body)

    @classmethod
    def creator(cls, client):
        return cls.packet(PACKET_CREATOR, client.encode('utf-8'))

    @classmethod
    def file_desc(cls, file_id, md5, filename, size=0):
        body = file_id + md5 + b'\x00' * 16 + struct.pack('<Q', size) + filename.encode('utf-8')
        return cls.packet(PACKET_FILE_DESC, body)

    @classmethod
    def ifsc(cls, file_id, slices=1):
        return cls.packet(PACKET_IFSC, file_id + b'\x00' * 20 * slices)

    @staticmethod
    def file_id(n):
        return hashlib.md5(f"file-{n}".encode()).digest()


@pytest.fixture
def par2():
    """PAR2 packet builder."""
    return Par2Builder


@pytest.fixture
def write_file(tmp_path):
    """Write bytes or text to a file under tmp_path and return its path."""
    def _write(name, content):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding='utf-8')
        return path
    return _write
