"""
Port interfaces for the application layer.

These are the interfaces that infrastructure adapters must implement.
They define the contract between use cases and the outside world.
"""

from typing import Protocol, Iterator, runtime_checkable

__all__ = [
    "LogSourcePort",
    "WhitelistPort",
    "IdentifierResolverPort",
]


@runtime_checkable
class LogSourcePort(Protocol):
    """
    Port for log source adapters.

    Implementations provide log lines from various sources:
    - Local files, plain or gzip-compressed
    - Byte streams opened by a remote transport
    """

    name: str

    def read_lines(self) -> Iterator[str]:
        """Read raw log lines from the source."""
        ...

    def metadata(self) -> dict[str, str]:
        """Get source metadata (path, type, size, etc.)."""
        ...


@runtime_checkable
class WhitelistPort(Protocol):
    """
    Port for the trusted-serial whitelist.
    """

    def is_in_whitelist(self, serial: str) -> bool:
        """Check whether a device serial number is trusted."""
        ...


@runtime_checkable
class IdentifierResolverPort(Protocol):
    """
    Port for vendor/product name lookup.
    """

    def find_device(self, vendor_id: str, product_id: str) -> tuple[str, str]:
        """Return (vendor_name, product_name); empty strings on a miss."""
        ...
