"""
Infrastructure layer for usbtrail.

Contains the adapters behind the application ports (log sources, whitelist,
identifier database) and the correlation and filtering machinery.
"""

from usbtrail.infrastructure.sources import (
    LogFileSource,
    LogStreamSource,
    discover_log_files,
)
from usbtrail.infrastructure.correlation import (
    SessionCorrelator,
    correlate_sessions,
)
from usbtrail.infrastructure.filtering import (
    SessionPipeline,
    Deduplicate,
    MassStorageFilter,
    WhitelistMarker,
    UntrustedFilter,
    IdentifierEnricher,
    SortSessions,
    LimitSessions,
)
from usbtrail.infrastructure.identifiers import (
    DEFAULT_USB_IDS_PATHS,
    IdentifierDatabase,
    IdentifierResolver,
    SnapshotCache,
    USBIdsUpdater,
)
from usbtrail.infrastructure.whitelist import (
    DEFAULT_WHITELIST_PATH,
    Whitelist,
    WhitelistEntry,
)

__all__ = [
    # Sources
    "LogFileSource",
    "LogStreamSource",
    "discover_log_files",
    # Correlation
    "SessionCorrelator",
    "correlate_sessions",
    # Filtering
    "SessionPipeline",
    "Deduplicate",
    "MassStorageFilter",
    "WhitelistMarker",
    "UntrustedFilter",
    "IdentifierEnricher",
    "SortSessions",
    "LimitSessions",
    # Identifiers
    "DEFAULT_USB_IDS_PATHS",
    "IdentifierDatabase",
    "IdentifierResolver",
    "SnapshotCache",
    "USBIdsUpdater",
    # Whitelist
    "DEFAULT_WHITELIST_PATH",
    "Whitelist",
    "WhitelistEntry",
]
