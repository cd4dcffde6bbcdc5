"""
Resource limits and path helpers for usbtrail.

Centralizes the size limits applied while reading untrusted log and
database files.
"""

import warnings
from pathlib import Path

from usbtrail.core.exceptions import USBTrailError

__all__ = [
    # Configuration constants
    "MAX_LINE_LENGTH",
    "HASH_PREFIX_BYTES",
    "STREAM_BUFFER_SIZE",
    "PROGRESS_INTERVAL_SECONDS",
    # Exceptions
    "LineTooLongError",
    "SecurityValidationError",
    # Validators
    "validate_line_length",
    "check_symlink",
]


# =============================================================================
# Limits
# =============================================================================

# Longest accepted log or usb.ids line (1 MiB)
MAX_LINE_LENGTH = 1024 * 1024

# Only the head of usb.ids is hashed when validating the cache
HASH_PREFIX_BYTES = 1024 * 1024

# Capacity of the streaming parser's event queue
STREAM_BUFFER_SIZE = 1000

# Streaming progress report period
PROGRESS_INTERVAL_SECONDS = 2.0


# =============================================================================
# Exceptions
# =============================================================================

class SecurityValidationError(USBTrailError):
    """Raised when input validation fails."""

    def __init__(self, message: str, validation_type: str, details: dict | None = None):
        super().__init__(message, details)
        self.validation_type = validation_type


class LineTooLongError(SecurityValidationError):
    """
    Raised when a log line exceeds MAX_LINE_LENGTH.

    The file containing the line is skipped as a whole.
    """

    def __init__(self, line_length: int, max_length: int = MAX_LINE_LENGTH):
        message = (
            f"Line length ({line_length:,} bytes) exceeds maximum allowed "
            f"({max_length:,} bytes)"
        )
        super().__init__(
            message,
            validation_type="line_length",
            details={
                "line_length": line_length,
                "max_length": max_length,
            }
        )


# =============================================================================
# Validation Functions
# =============================================================================

def validate_line_length(line: str, max_length: int = MAX_LINE_LENGTH) -> str:
    """
    Validate that a line does not exceed the maximum allowed length.

    Args:
        line: The line to validate
        max_length: Maximum allowed length in bytes

    Returns:
        The original line if valid

    Raises:
        LineTooLongError: If line exceeds max_length
    """
    # utf-8 needs at most four bytes per character
    if len(line) <= max_length // 4:
        return line
    line_length = len(line.encode("utf-8", errors="replace"))
    if line_length > max_length:
        raise LineTooLongError(line_length, max_length)
    return line


def check_symlink(path: Path | str, warn: bool = True) -> tuple[bool, Path]:
    """
    Check if a path is a symlink and optionally warn.

    Args:
        path: Path to check
        warn: If True, emit a warning when symlink is detected

    Returns:
        Tuple of (is_symlink, resolved_path)
    """
    path = Path(path)
    is_symlink = path.is_symlink()

    if is_symlink and warn:
        resolved = path.resolve()
        warnings.warn(
            f"Following symlink: {path} -> {resolved}",
            UserWarning,
            stacklevel=2,
        )

    return is_symlink, path.resolve()
