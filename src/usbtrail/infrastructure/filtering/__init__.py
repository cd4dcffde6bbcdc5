"""
Session filtering pipeline for usbtrail.

Deduplicates, filters, enriches, sorts and truncates correlated sessions.
"""

from usbtrail.infrastructure.filtering.pipeline import SessionPipeline
from usbtrail.infrastructure.filtering.steps import (
    SessionStep,
    Deduplicate,
    MassStorageFilter,
    WhitelistMarker,
    UntrustedFilter,
    IdentifierEnricher,
    SortSessions,
    LimitSessions,
)

__all__ = [
    "SessionPipeline",
    "SessionStep",
    "Deduplicate",
    "MassStorageFilter",
    "WhitelistMarker",
    "UntrustedFilter",
    "IdentifierEnricher",
    "SortSessions",
    "LimitSessions",
]
