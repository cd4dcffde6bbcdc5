"""
usb.ids identifier database, snapshot cache, resolver and updater.
"""

from usbtrail.infrastructure.identifiers.database import Vendor, IdentifierDatabase
from usbtrail.infrastructure.identifiers.cache import (
    CACHE_SUFFIX,
    CacheSnapshot,
    SnapshotCache,
    cache_path_for,
    file_hash,
)
from usbtrail.infrastructure.identifiers.resolver import (
    DEFAULT_USB_IDS_PATHS,
    IdentifierResolver,
    clear_cache,
)
from usbtrail.infrastructure.identifiers.updater import (
    USB_IDS_URL,
    USBIdsUpdater,
    fallback_target,
    is_writable,
)

__all__ = [
    "Vendor",
    "IdentifierDatabase",
    "CACHE_SUFFIX",
    "CacheSnapshot",
    "SnapshotCache",
    "cache_path_for",
    "file_hash",
    "DEFAULT_USB_IDS_PATHS",
    "IdentifierResolver",
    "clear_cache",
    "USB_IDS_URL",
    "USBIdsUpdater",
    "fallback_target",
    "is_writable",
]
