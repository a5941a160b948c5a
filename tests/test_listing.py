"""Tests for FTP listing parsers."""

from datetime import datetime, timezone

import pytest

from ftpmirror.stores.listing import ListEntry, parse_list_line, parse_mlsd_entry


def ts(*args) -> float:
    return datetime(*args, tzinfo=timezone.utc).timestamp()


class TestParseMlsdEntry:
    """Tests for MLSD fact conversion."""

    def test_file(self):
        entry = parse_mlsd_entry(
            "report.pdf", {"type": "file", "size": "2048", "modify": "20250115103000"}
        )
        assert entry == ListEntry("report.pdf", False, 2048, ts(2025, 1, 15, 10, 30))

    def test_fractional_modify(self):
        entry = parse_mlsd_entry(
            "a", {"type": "file", "size": "1", "modify": "20250115103000.250"}
        )
        assert entry.mtime == ts(2025, 1, 15, 10, 30) + 0.25

    def test_directory(self):
        entry = parse_mlsd_entry("docs", {"type": "dir", "modify": "20250115103000"})
        assert entry == ListEntry("docs", True)

    def test_type_fact_is_case_insensitive(self):
        assert parse_mlsd_entry("docs", {"type": "DIR"}).is_dir

    @pytest.mark.parametrize(
        "name,facts",
        [
            (".", {"type": "cdir"}),
            ("..", {"type": "pdir"}),
            ("link", {"type": "OS.unix=slink:/etc"}),
            ("x", {}),
        ],
    )
    def test_skipped_entries(self, name, facts):
        assert parse_mlsd_entry(name, facts) is None

    def test_missing_size_and_modify(self):
        assert parse_mlsd_entry("a", {"type": "file"}) == ListEntry("a", False, 0, 0.0)

    def test_bad_size(self):
        assert parse_mlsd_entry("a", {"type": "file", "size": "big"}).size == 0

    def test_name_with_spaces(self):
        entry = parse_mlsd_entry("my file.txt", {"type": "file", "size": "1"})
        assert entry.name == "my file.txt"


class TestParseListLine:
    """Tests for LIST line parsing."""

    NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

    def test_unix_file_with_year(self):
        entry = parse_list_line(
            "-rw-r--r--   1 ftp      ftp          1234 Jan 15  2023 readme.txt"
        )
        assert entry == ListEntry("readme.txt", False, 1234, ts(2023, 1, 15))

    def test_unix_file_with_time(self):
        entry = parse_list_line(
            "-rw-r--r--   1 ftp ftp 10 Mar 03 09:15 notes.txt", now=self.NOW
        )
        assert entry.mtime == ts(2025, 3, 3, 9, 15)

    def test_unix_time_in_future_is_last_year(self):
        entry = parse_list_line(
            "-rw-r--r--   1 ftp ftp 10 Dec 24 18:00 old.txt", now=self.NOW
        )
        assert entry.mtime == ts(2024, 12, 24, 18, 0)

    def test_unix_directory(self):
        entry = parse_list_line(
            "drwxr-xr-x   2 ftp ftp 4096 Jan 15 10:30 docs", now=self.NOW
        )
        assert entry.is_dir
        assert entry.size == 0
        assert entry.name == "docs"

    def test_unix_without_group(self):
        entry = parse_list_line("-rw-r--r--   1 ftp  77 Jan 15  2023 a.bin")
        assert entry.size == 77
        assert entry.name == "a.bin"

    def test_unix_name_with_spaces(self):
        entry = parse_list_line(
            "-rw-r--r--   1 ftp ftp 5 Jan 15  2023 my file.txt"
        )
        assert entry.name == "my file.txt"

    def test_dos_directory(self):
        entry = parse_list_line("01-15-25  10:30AM       <DIR>          docs")
        assert entry == ListEntry("docs", True, 0, ts(2025, 1, 15, 10, 30))

    def test_dos_file_pm(self):
        entry = parse_list_line("01-15-2025  01:05PM               123 a.txt")
        assert entry == ListEntry("a.txt", False, 123, ts(2025, 1, 15, 13, 5))

    def test_dos_midnight(self):
        entry = parse_list_line("01-15-2025  12:00AM               1 a.txt")
        assert entry.mtime == ts(2025, 1, 15, 0, 0)

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "total 12",
            "lrwxrwxrwx   1 ftp ftp 11 Jan 15  2023 link -> target",
            "drwxr-xr-x   2 ftp ftp 4096 Jan 15  2023 .",
            "drwxr-xr-x   2 ftp ftp 4096 Jan 15  2023 ..",
            "-rw-r--r--   1 ftp ftp 10 Foo 15  2023 bad-month",
            "something completely different",
        ],
    )
    def test_skipped_lines(self, line):
        assert parse_list_line(line) is None

    def test_trailing_crlf_stripped(self):
        entry = parse_list_line("-rw-r--r--   1 ftp ftp 5 Jan 15  2023 a.txt\r\n")
        assert entry.name == "a.txt"
