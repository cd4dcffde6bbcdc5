"""
Tests for log sources and log file discovery.
"""

import gzip
import io
import os

import pytest

from usbtrail.application.ports import LogSourcePort
from usbtrail.core.exceptions import DiscoveryError
from usbtrail.core.security import LineTooLongError
from usbtrail.infrastructure.sources import (
    LogFileSource,
    LogStreamSource,
    discover_log_files,
)


class TestLogFileSource:
    """Tests for LogFileSource."""

    def test_read_lines(self, tmp_path):
        """Test basic line reading."""
        log_file = tmp_path / "syslog"
        log_file.write_text("line1\nline2\nline3\n")

        lines = list(LogFileSource(log_file).read_lines())

        assert lines == ["line1", "line2", "line3"]

    def test_strips_newlines(self, tmp_path):
        """Test that newlines are stripped."""
        log_file = tmp_path / "syslog"
        log_file.write_bytes(b"line1\r\nline2\nline3\r\n")

        assert list(LogFileSource(log_file).read_lines()) == ["line1", "line2", "line3"]

    def test_gzip(self, tmp_path):
        """Test .gz files are decompressed."""
        log_file = tmp_path / "syslog.2.gz"
        with gzip.open(log_file, "wt") as f:
            f.write("first\nsecond\n")

        assert list(LogFileSource(log_file).read_lines()) == ["first", "second"]

    def test_invalid_utf8_replaced(self, tmp_path):
        """Test undecodable bytes do not abort reading."""
        log_file = tmp_path / "syslog"
        log_file.write_bytes(b"ok\n\xff\xfe broken\n")

        lines = list(LogFileSource(log_file).read_lines())

        assert lines[0] == "ok"
        assert lines[1].endswith(" broken")

    def test_missing_file(self, tmp_path):
        """Test a missing file fails on read, not on construction."""
        source = LogFileSource(tmp_path / "nope")
        with pytest.raises(FileNotFoundError):
            list(source.read_lines())

    def test_line_too_long(self, tmp_path):
        """Test the line length limit."""
        log_file = tmp_path / "syslog"
        log_file.write_text("short\n" + "x" * 200 + "\n")

        with pytest.raises(LineTooLongError):
            list(LogFileSource(log_file, max_line_length=100).read_lines())

    def test_metadata(self, tmp_path):
        """Test metadata."""
        log_file = tmp_path / "kern.log.1.gz"
        with gzip.open(log_file, "wt") as f:
            f.write("x\n")

        meta = LogFileSource(log_file).metadata()

        assert meta["source_type"] == "file"
        assert meta["name"] == "kern.log.1.gz"
        assert meta["compressed"] == "True"

    def test_implements_port(self, tmp_path):
        """Test the source satisfies the application port."""
        assert isinstance(LogFileSource(tmp_path / "syslog"), LogSourcePort)


class TestLogStreamSource:
    """Tests for LogStreamSource."""

    def test_plain_stream(self):
        """Test reading an uncompressed stream."""
        stream = io.BytesIO(b"a\nb\n")

        lines = list(LogStreamSource(stream, name="syslog").read_lines())

        assert lines == ["a", "b"]
        assert stream.closed

    def test_gzip_stream(self):
        """Test a stream named *.gz is decompressed and closed afterwards."""
        stream = io.BytesIO(gzip.compress(b"one\ntwo\n"))

        lines = list(LogStreamSource(stream, name="syslog.1.gz").read_lines())

        assert lines == ["one", "two"]
        assert stream.closed

    def test_corrupt_gzip_stream(self):
        """Test a corrupt archive raises a decode error."""
        stream = io.BytesIO(b"definitely not gzip")

        with pytest.raises(OSError):
            list(LogStreamSource(stream, name="syslog.1.gz").read_lines())

    def test_metadata(self):
        """Test metadata."""
        meta = LogStreamSource(io.BytesIO(), name="messages.gz").metadata()
        assert meta == {"source_type": "stream", "name": "messages.gz", "compressed": "True"}


class TestDiscoverLogFiles:
    """Tests for discover_log_files."""

    def test_selects_candidates(self, tmp_path):
        """Only syslog, messages, kern and daemon logs are picked."""
        for name in ["syslog", "syslog.1.gz", "messages", "kern.log", "daemon.log",
                     "auth.log", "dpkg.log", "Xorg.0.log"]:
            (tmp_path / name).write_text("")

        names = [p.name for p in discover_log_files(tmp_path)]

        assert names == ["daemon.log", "kern.log", "messages", "syslog", "syslog.1.gz"]

    def test_walks_subdirectories(self, tmp_path):
        """Test nested directories are searched in sorted order."""
        (tmp_path / "b").mkdir()
        (tmp_path / "a").mkdir()
        (tmp_path / "b" / "syslog").write_text("")
        (tmp_path / "a" / "messages").write_text("")
        (tmp_path / "kern.log").write_text("")

        found = discover_log_files(tmp_path)

        assert [os.path.relpath(p, tmp_path) for p in found] == [
            "kern.log",
            os.path.join("a", "messages"),
            os.path.join("b", "syslog"),
        ]

    def test_single_file(self, tmp_path):
        """Test a file path is returned as is."""
        log_file = tmp_path / "anything.txt"
        log_file.write_text("")
        assert discover_log_files(log_file) == [log_file]

    def test_missing_root(self, tmp_path):
        """Test a missing path raises DiscoveryError."""
        with pytest.raises(DiscoveryError, match="does not exist"):
            discover_log_files(tmp_path / "nope")

    def test_no_candidates(self, tmp_path):
        """Test a directory without logs raises DiscoveryError."""
        (tmp_path / "auth.log").write_text("")
        with pytest.raises(DiscoveryError, match="No log files"):
            discover_log_files(tmp_path)
