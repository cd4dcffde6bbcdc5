"""
Session pipeline step implementations.

Each step takes the full session list and returns the list for the next
step. Steps that mark or enrich sessions modify them in place.
"""

import warnings
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from usbtrail.core.models import DeviceSession, SortOrder

if TYPE_CHECKING:
    from usbtrail.application.ports import IdentifierResolverPort, WhitelistPort

__all__ = [
    "SessionStep",
    "Deduplicate",
    "MassStorageFilter",
    "WhitelistMarker",
    "UntrustedFilter",
    "IdentifierEnricher",
    "SortSessions",
    "LimitSessions",
]


class SessionStep(ABC):
    """Base class for session pipeline steps."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of this step."""
        pass

    @abstractmethod
    def apply(self, sessions: list[DeviceSession]) -> list[DeviceSession]:
        """
        Apply the step.

        Args:
            sessions: Sessions produced by the previous step

        Returns:
            Sessions for the next step
        """
        pass


class Deduplicate(SessionStep):
    """
    Keep the first session for each connection timestamp.

    Two sessions connected in the same second are treated as one, since
    the same kernel lines are often present in several rotated logs.
    """

    @property
    def name(self) -> str:
        return "deduplicate"

    def apply(self, sessions: list[DeviceSession]) -> list[DeviceSession]:
        seen = set()
        unique = []
        for session in sessions:
            if session.connected_at not in seen:
                seen.add(session.connected_at)
                unique.append(session)
        return unique


class MassStorageFilter(SessionStep):
    """Keep only mass storage devices."""

    @property
    def name(self) -> str:
        return "mass_storage_filter"

    def apply(self, sessions: list[DeviceSession]) -> list[DeviceSession]:
        return [s for s in sessions if s.is_mass_storage]


class WhitelistMarker(SessionStep):
    """
    Mark sessions whose serial number is whitelisted as trusted.

    Example:
        marker = WhitelistMarker(Whitelist.from_file("/etc/udev/rules.d/99-usb.rules"))
        sessions = marker.apply(sessions)
    """

    def __init__(self, whitelist: "WhitelistPort"):
        self.whitelist = whitelist

    @property
    def name(self) -> str:
        return "whitelist_marker"

    def apply(self, sessions: list[DeviceSession]) -> list[DeviceSession]:
        for session in sessions:
            if self.whitelist.is_in_whitelist(session.serial_number):
                session.trusted = True
        return sessions


class UntrustedFilter(SessionStep):
    """Keep only sessions not marked trusted."""

    @property
    def name(self) -> str:
        return "untrusted_filter"

    def apply(self, sessions: list[DeviceSession]) -> list[DeviceSession]:
        return [s for s in sessions if not s.trusted]


class IdentifierEnricher(SessionStep):
    """
    Replace product and manufacturer names with usb.ids names.

    Names the database does not know keep the values read from the log.
    """

    def __init__(self, resolver: "IdentifierResolverPort"):
        self.resolver = resolver

    @property
    def name(self) -> str:
        return "identifier_enricher"

    def apply(self, sessions: list[DeviceSession]) -> list[DeviceSession]:
        for session in sessions:
            vendor_name, product_name = self.resolver.find_device(
                session.vendor_id, session.product_id
            )
            if product_name:
                session.product_name = product_name
            if vendor_name:
                session.manufacturer_name = vendor_name
        return sessions


class SortSessions(SessionStep):
    """Stable sort by connection time; ties keep their input order."""

    def __init__(self, order: SortOrder = SortOrder.ASC):
        self.order = order

    @property
    def name(self) -> str:
        return "sort_sessions"

    def apply(self, sessions: list[DeviceSession]) -> list[DeviceSession]:
        return sorted(
            sessions,
            key=lambda s: s.connected_at,
            reverse=self.order is SortOrder.DESC,
        )


class LimitSessions(SessionStep):
    """
    Truncate to the first ``limit`` sessions.

    A limit larger than the result returns everything with a warning.
    """

    def __init__(self, limit: int):
        self.limit = limit

    @property
    def name(self) -> str:
        return "limit_sessions"

    def apply(self, sessions: list[DeviceSession]) -> list[DeviceSession]:
        if self.limit > len(sessions):
            warnings.warn(
                f"Requested {self.limit} sessions but only {len(sessions)} found",
                UserWarning,
                stacklevel=2,
            )
            return sessions
        return sessions[:self.limit]
