"""
Parser for the usb.ids vendor/product identifier database.

Format (http://www.linux-usb.org/usb.ids):

    # Version: 2024.01.22
    # Date:    2024-01-22 20:34:05
    0781  SanDisk Corp.
    	5567  Cruzer Blade
    	5581  Ultra

Vendor lines start at column zero; product lines are indented by one tab
and belong to the vendor above them. Parsing stops at the first line that
is neither a comment, a vendor nor a product, which in the published file
is the device class section.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from usbtrail.core.exceptions import IdentifierDatabaseError

__all__ = ["Vendor", "IdentifierDatabase"]


VERSION_PATTERN = re.compile(r'Version: (\d{4}\.\d{2}\.\d{2})')
DATE_PATTERN = re.compile(r'Date:\s+(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})')
VENDOR_PATTERN = re.compile(r'^([0-9A-Fa-f]{4}) {2}(.+)$')
PRODUCT_PATTERN = re.compile(r'^\t([0-9A-Fa-f]{4}) {2}(.+)$')


@dataclass
class Vendor:
    """A USB vendor and the products registered under it."""
    id: str
    name: str
    products: dict[str, str] = field(default_factory=dict)


@dataclass
class IdentifierDatabase:
    """
    In-memory vendor/product lookup table.

    Ids are stored lower-case, the way the kernel prints them.

    Example:
        db = IdentifierDatabase.from_file("/usr/share/hwdata/usb.ids")
        vendor, product = db.find_device("0781", "5567")
    """
    vendors: dict[str, Vendor] = field(default_factory=dict)
    version: str = ""
    date: str = ""

    def __len__(self) -> int:
        return len(self.vendors)

    @classmethod
    def parse(cls, lines: Iterable[str]) -> "IdentifierDatabase":
        """
        Parse usb.ids text.

        Args:
            lines: Lines of the database (trailing newlines allowed)

        Returns:
            Parsed database; possibly empty
        """
        db = cls()
        current: Vendor | None = None

        for line in lines:
            line = line.rstrip("\r\n")

            if not line or line.startswith("#"):
                if not db.version:
                    if match := VERSION_PATTERN.search(line):
                        db.version = match.group(1)
                if not db.date:
                    if match := DATE_PATTERN.search(line):
                        db.date = match.group(1)
                continue

            if match := VENDOR_PATTERN.match(line):
                vendor_id = match.group(1).lower()
                current = Vendor(id=vendor_id, name=match.group(2))
                db.vendors[vendor_id] = current
            elif match := PRODUCT_PATTERN.match(line):
                if current is not None:
                    current.products[match.group(1).lower()] = match.group(2)
            else:
                break

        return db

    @classmethod
    def from_file(cls, path: str | Path) -> "IdentifierDatabase":
        """
        Parse a usb.ids file.

        Raises:
            OSError: If the file cannot be read
            IdentifierDatabaseError: If no vendor entries were found
        """
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            db = cls.parse(f)

        if not db.vendors:
            raise IdentifierDatabaseError(
                f"No vendor entries found in {path}",
                paths=[str(path)],
            )
        return db

    def find_device(self, vendor_id: str, product_id: str) -> tuple[str, str]:
        """
        Look up vendor and product names.

        Returns:
            (vendor_name, product_name); an unknown vendor gives ("", "")
            and an unknown product gives (vendor_name, "")
        """
        vendor = self.vendors.get(vendor_id.lower())
        if vendor is None:
            return "", ""
        return vendor.name, vendor.products.get(product_id.lower(), "")

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "version": self.version,
            "date": self.date,
            "vendors": {
                vid: {"name": v.name, "products": v.products}
                for vid, v in self.vendors.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IdentifierDatabase":
        """Rebuild a database from to_dict() output."""
        return cls(
            vendors={
                vid: Vendor(id=vid, name=v["name"], products=dict(v["products"]))
                for vid, v in data["vendors"].items()
            },
            version=data["version"],
            date=data["date"],
        )
