"""Tests for the SFV catalog reader."""

import pytest

from rcrenamer.core.catalog import SourceType
from rcrenamer.core.digests import Crc32
from rcrenamer.core.errors import CatalogIOError
from rcrenamer.core.sfv_reader import is_sfv, parse_sfv_line, read_sfv


class TestParseSfvLine:
    """Tests for parse_sfv_line."""

    def test_valid_line(self):
        entry = parse_sfv_line("readme.txt 89D5B1E3")

        assert entry.filename == "readme.txt"
        assert entry.crc32 == Crc32(0x89D5B1E3)
        assert entry.md5 is None
        assert entry.valid

    def test_lowercase_hex(self):
        assert parse_sfv_line("a.bin deadbeef").crc32 == Crc32(0xDEADBEEF)

    def test_invalid_checksum_kept(self):
        """Test that a malformed checksum yields an invalid entry rather than nothing."""
        entry = parse_sfv_line("bad.txt ZZZZZZZZ")

        assert entry is not None
        assert not entry.valid
        assert entry.crc32 is None
        assert entry.filename == "bad.txt"

    def test_wrong_length_checksum(self):
        assert not parse_sfv_line("short.txt 1234567").valid
        assert not parse_sfv_line("long.txt 123456789").valid

    def test_comment_line(self):
        assert parse_sfv_line("; Generated by QuickSFV") is None
        assert parse_sfv_line(";no space") is None

    def test_blank_line(self):
        assert parse_sfv_line("") is None
        assert parse_sfv_line("   \n") is None

    def test_filename_with_spaces(self):
        """Test that internal whitespace stays part of the filename."""
        entry = parse_sfv_line("My Movie  CD1.avi\t 0000ABCD\r\n")

        assert entry.filename == "My Movie  CD1.avi"
        assert entry.crc32 == Crc32(0xABCD)
        assert entry.valid

    def test_single_token_invalid(self):
        entry = parse_sfv_line("89D5B1E3")

        assert not entry.valid
        assert entry.filename == "89D5B1E3"


class TestReadSfv:
    """Tests for read_sfv and is_sfv."""

    def test_read_file(self, write_file):
        path = write_file("set.sfv", (
            "; comment\n"
            "\n"
            "file1.rar 11111111\n"
            "file2.rar XYZ\n"
            "file 3.rar 33333333\n"
        ))

        catalog = read_sfv(path)

        assert catalog.source_type is SourceType.SFV
        assert catalog.valid
        assert [e.filename for e in catalog.entries] == ["file1.rar", "file2.rar", "file 3.rar"]
        assert [e.valid for e in catalog.entries] == [True, False, True]
        assert [e.filename for e in catalog.valid_entries] == ["file1.rar", "file 3.rar"]

    def test_bom_is_ignored(self, write_file):
        path = write_file("bom.sfv", "\ufeffa.bin 01020304\n")

        assert read_sfv(path).entries[0].filename == "a.bin"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(CatalogIOError):
            read_sfv(tmp_path / "missing.sfv")

    def test_is_sfv_first_entry_decides(self, write_file):
        assert is_sfv(write_file("ok.sfv", "; header\nfile.bin 01020304\nbad line\n"))
        assert not is_sfv(write_file("bad.sfv", "bad line\nfile.bin 01020304\n"))

    def test_is_sfv_empty_and_comments_only(self, write_file):
        assert not is_sfv(write_file("empty.sfv", ""))
        assert not is_sfv(write_file("comments.sfv", "; a\n; b\n"))

    def test_is_sfv_binary(self, write_file):
        assert not is_sfv(write_file("blob.bin", bytes(range(256)) * 64))

    def test_is_sfv_missing(self, tmp_path):
        assert not is_sfv(tmp_path / "missing.sfv")
