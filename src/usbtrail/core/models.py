"""
Core data models for usbtrail.

These are the records passed between the parsing, correlation and
filtering stages.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

__all__ = [
    "UNSET",
    "EPOCH",
    "ActionKind",
    "ClassifiedLine",
    "DeviceSession",
    "SortOrder",
]


# Placeholder for session attributes the log never supplied
UNSET = "unknown"

# Stand-in timestamp for lines whose syslog prefix could not be parsed
EPOCH = datetime(1970, 1, 1)


class ActionKind(Enum):
    """What a USB subsystem log line says happened to a device."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    UNKNOWN = "unknown"


class SortOrder(Enum):
    """Ordering of sessions by connection time."""
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def from_string(cls, value: str) -> "SortOrder":
        """
        Parse a sort order name.

        Anything other than "desc" (case-insensitive) sorts ascending.
        """
        if value and value.lower().strip() == "desc":
            return cls.DESC
        return cls.ASC


@dataclass(frozen=True)
class ClassifiedLine:
    """
    A USB subsystem log line tagged with its timestamp and action kind.

    Attributes:
        timestamp: Parsed syslog timestamp (EPOCH when unparseable)
        kind: Connect/disconnect classification
        raw: Original line text without the trailing newline
    """
    timestamp: datetime
    kind: ActionKind
    raw: str


@dataclass
class DeviceSession:
    """
    One USB device's connect-to-disconnect lifetime.

    Created by the correlator on a "New USB device found" line and filled
    in place by the lines that follow it. ``disconnected_at`` holds the
    creation time of the run until a matching disconnect is seen.
    """
    connected_at: datetime
    disconnected_at: datetime = field(default_factory=datetime.now)
    host: str = ""
    vendor_id: str = ""
    product_id: str = ""
    product_name: str = UNSET
    manufacturer_name: str = UNSET
    serial_number: str = UNSET
    connection_port: str = ""
    is_mass_storage: bool = False
    trusted: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "connected_at": self.connected_at.isoformat(),
            "disconnected_at": self.disconnected_at.isoformat(),
            "host": self.host,
            "vendor_id": self.vendor_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "manufacturer_name": self.manufacturer_name,
            "serial_number": self.serial_number,
            "connection_port": self.connection_port,
            "is_mass_storage": self.is_mass_storage,
            "trusted": self.trusted,
        }
