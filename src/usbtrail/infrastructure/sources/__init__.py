"""
Source adapters for usbtrail.

These implement the LogSourcePort interface for local files and for
already opened byte streams.
"""

from usbtrail.infrastructure.sources.file_source import (
    LOG_NAME_MARKERS,
    LogFileSource,
    LogStreamSource,
    discover_log_files,
)

__all__ = [
    "LOG_NAME_MARKERS",
    "LogFileSource",
    "LogStreamSource",
    "discover_log_files",
]
