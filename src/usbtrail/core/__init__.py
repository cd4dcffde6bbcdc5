"""
Core data models, configuration and exceptions for usbtrail.
"""

from usbtrail.core.models import (
    UNSET,
    EPOCH,
    ActionKind,
    ClassifiedLine,
    DeviceSession,
    SortOrder,
)
from usbtrail.core.config import CollectOptions
from usbtrail.core.exceptions import (
    USBTrailError,
    DiscoveryError,
    NoEventsError,
    WhitelistError,
    IdentifierDatabaseError,
    DownloadError,
    ConfigurationError,
    OperationCancelled,
)
from usbtrail.core.security import (
    MAX_LINE_LENGTH,
    HASH_PREFIX_BYTES,
    LineTooLongError,
    SecurityValidationError,
    validate_line_length,
    check_symlink,
)

__all__ = [
    "UNSET",
    "EPOCH",
    "ActionKind",
    "ClassifiedLine",
    "DeviceSession",
    "SortOrder",
    "CollectOptions",
    "USBTrailError",
    "DiscoveryError",
    "NoEventsError",
    "WhitelistError",
    "IdentifierDatabaseError",
    "DownloadError",
    "ConfigurationError",
    "OperationCancelled",
    # Limits
    "MAX_LINE_LENGTH",
    "HASH_PREFIX_BYTES",
    "LineTooLongError",
    "SecurityValidationError",
    "validate_line_length",
    "check_symlink",
]
