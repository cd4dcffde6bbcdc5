"""
Log source adapters for usbtrail.

Each source yields the text lines of one log file, decompressing
gzip-rotated logs (``syslog.2.gz``) on the fly.
"""

import gzip
import io
import os
import warnings
from pathlib import Path
from typing import BinaryIO, Iterator

from usbtrail.core.exceptions import DiscoveryError
from usbtrail.core.security import MAX_LINE_LENGTH, validate_line_length

__all__ = [
    "LOG_NAME_MARKERS",
    "LogFileSource",
    "LogStreamSource",
    "discover_log_files",
]


# File names containing any of these are treated as candidate logs
LOG_NAME_MARKERS = ("syslog", "messages", "kern", "daemon")


def is_gzip_name(name: str) -> bool:
    """Check whether a file name denotes a gzip-compressed log."""
    return name.endswith(".gz")


class LogFileSource:
    """
    Line source for a log file on the local filesystem.

    The file is opened lazily, so a missing or unreadable file surfaces as
    an OSError from read_lines() rather than from the constructor.

    Example:
        source = LogFileSource("/var/log/syslog.2.gz")
        for line in source.read_lines():
            print(line)
    """

    def __init__(
        self,
        path: str | Path,
        encoding: str = "utf-8",
        errors: str = "replace",
        max_line_length: int = MAX_LINE_LENGTH,
    ):
        """
        Initialize file source.

        Args:
            path: Path to log file (".gz" suffix selects gzip decoding)
            encoding: File encoding (default: utf-8)
            errors: How to handle encoding errors (default: replace)
            max_line_length: Longest accepted line in bytes
        """
        self.path = Path(path)
        self.encoding = encoding
        self.errors = errors
        self.max_line_length = max_line_length

    @property
    def name(self) -> str:
        return str(self.path)

    def read_lines(self) -> Iterator[str]:
        """
        Read lines from file, yielding one at a time.

        Yields:
            Log lines (without trailing newline)

        Raises:
            OSError: If the file cannot be opened or decompressed
            LineTooLongError: If a line exceeds max_line_length
        """
        if is_gzip_name(self.path.name):
            f = gzip.open(self.path, "rt", encoding=self.encoding, errors=self.errors)
        else:
            f = open(self.path, "r", encoding=self.encoding, errors=self.errors)

        with f:
            for line in f:
                yield validate_line_length(line.rstrip("\n\r"), self.max_line_length)

    def metadata(self) -> dict[str, str]:
        """Get source metadata."""
        stat = self.path.stat()
        return {
            "source_type": "file",
            "path": str(self.path.absolute()),
            "name": self.path.name,
            "compressed": str(is_gzip_name(self.path.name)),
            "size_bytes": str(stat.st_size),
        }


class LogStreamSource:
    """
    Line source for an already opened byte stream.

    Lets callers feed logs that do not live on the local filesystem, such
    as files fetched over a remote file-transfer session. The stream is
    closed once it has been read.

    Example:
        with sftp.open("/var/log/syslog.1.gz", "rb") as remote:
            source = LogStreamSource(remote, name="syslog.1.gz")
            lines = list(source.read_lines())
    """

    def __init__(
        self,
        stream: BinaryIO,
        name: str,
        encoding: str = "utf-8",
        errors: str = "replace",
        max_line_length: int = MAX_LINE_LENGTH,
    ):
        self.stream = stream
        self.name = name
        self.encoding = encoding
        self.errors = errors
        self.max_line_length = max_line_length

    def read_lines(self) -> Iterator[str]:
        """
        Read lines from the stream, yielding one at a time.

        Yields:
            Log lines (without trailing newline)
        """
        raw: BinaryIO = self.stream
        if is_gzip_name(self.name):
            raw = gzip.GzipFile(fileobj=self.stream, mode="rb")

        try:
            with io.TextIOWrapper(raw, encoding=self.encoding, errors=self.errors) as f:
                for line in f:
                    yield validate_line_length(line.rstrip("\n\r"), self.max_line_length)
        finally:
            # GzipFile leaves the wrapped stream open
            self.stream.close()

    def metadata(self) -> dict[str, str]:
        """Get source metadata."""
        return {
            "source_type": "stream",
            "name": self.name,
            "compressed": str(is_gzip_name(self.name)),
        }


def _warn_walk_error(error: OSError) -> None:
    warnings.warn(
        f"Skipping {error.filename}: {error.strerror}",
        UserWarning,
        stacklevel=2,
    )


def discover_log_files(root: str | Path) -> list[Path]:
    """
    Find candidate kernel log files below a directory.

    A file qualifies when its name contains one of LOG_NAME_MARKERS
    ("syslog", "messages", "kern", "daemon"). Directories are walked in
    sorted order so the result is deterministic. A path naming a single
    file is returned as is.

    Args:
        root: Directory (or file) to search; "~" is expanded

    Returns:
        Candidate paths in walk order

    Raises:
        DiscoveryError: If root does not exist or holds no candidates
    """
    root = Path(root).expanduser()
    if not root.exists():
        raise DiscoveryError(f"Log path does not exist: {root}", root=str(root))

    if root.is_file():
        return [root]

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_warn_walk_error):
        dirnames.sort()
        for filename in sorted(filenames):
            if any(marker in filename for marker in LOG_NAME_MARKERS):
                files.append(Path(dirpath) / filename)

    if not files:
        raise DiscoveryError(f"No log files found in {root}", root=str(root))

    return files
