"""
Vendor/product identifier resolver backed by usb.ids and its cache.
"""

from pathlib import Path
from typing import Iterable

from usbtrail.core.exceptions import IdentifierDatabaseError
from usbtrail.infrastructure.identifiers.cache import SnapshotCache
from usbtrail.infrastructure.identifiers.database import IdentifierDatabase

__all__ = ["DEFAULT_USB_IDS_PATHS", "IdentifierResolver", "clear_cache"]


# Searched in order when no database path is given
DEFAULT_USB_IDS_PATHS = (
    "/var/lib/usbutils/usb.ids",
    "/usr/share/hwdata/usb.ids",
    "/usr/share/misc/usb.ids",
    "usb.ids",
)


class IdentifierResolver:
    """
    Resolve (vendor id, product id) pairs to names.

    The database is loaded once, before any lookups, and is read-only
    afterwards. An unloaded resolver answers every lookup with ("", "").

    Example:
        resolver = IdentifierResolver()
        resolver.load_first()
        vendor, product = resolver.find_device("0781", "5567")
    """

    def __init__(self, database: IdentifierDatabase | None = None, use_cache: bool = True):
        """
        Initialize the resolver.

        Args:
            database: Already parsed database
            use_cache: Read and write the snapshot cache when loading
        """
        self.database = database or IdentifierDatabase()
        self.use_cache = use_cache
        self.source_path: Path | None = None
        self.from_cache = False

    def load(self, path: str | Path) -> IdentifierDatabase:
        """
        Load a usb.ids file, through the snapshot cache when it is valid.

        Args:
            path: usb.ids location

        Returns:
            The loaded database

        Raises:
            OSError: If the file cannot be read
            IdentifierDatabaseError: If the file holds no vendor entries
        """
        path = Path(path).expanduser()
        cache = SnapshotCache(path)

        database = cache.load() if self.use_cache else None
        from_cache = database is not None

        if database is None:
            database = IdentifierDatabase.from_file(path)
            if self.use_cache:
                cache.save(database)

        self.database = database
        self.source_path = path
        self.from_cache = from_cache
        return database

    def load_first(self, paths: Iterable[str | Path] = DEFAULT_USB_IDS_PATHS) -> Path:
        """
        Load the first usable database from a list of candidate paths.

        Returns:
            Path of the database that was loaded

        Raises:
            IdentifierDatabaseError: If no candidate could be loaded
        """
        tried = []
        for path in paths:
            tried.append(str(path))
            try:
                self.load(path)
            except (OSError, IdentifierDatabaseError):
                continue
            return self.source_path

        raise IdentifierDatabaseError("No usable usb.ids database found", paths=tried)

    def find_device(self, vendor_id: str, product_id: str) -> tuple[str, str]:
        """Return (vendor_name, product_name); empty strings on a miss."""
        return self.database.find_device(vendor_id, product_id)

    @property
    def version(self) -> str:
        return self.database.version

    @property
    def date(self) -> str:
        return self.database.date


def clear_cache(source_path: str | Path) -> bool:
    """Remove the snapshot cache of a usb.ids file; True if one existed."""
    return SnapshotCache(Path(source_path).expanduser()).clear()
