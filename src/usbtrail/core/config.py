"""
Run configuration for usbtrail.
"""

import os
from dataclasses import dataclass

from usbtrail.core.exceptions import ConfigurationError
from usbtrail.core.models import SortOrder

__all__ = ["CollectOptions", "default_worker_count"]


def default_worker_count() -> int:
    """Worker count used when 0 is requested: the available CPU count."""
    return os.cpu_count() or 1


@dataclass
class CollectOptions:
    """
    Options controlling one session collection run.

    Attributes:
        workers: Parser worker threads (0 = one per CPU)
        streaming: Use the bounded-memory streaming parser
        mass_storage_only: Keep only mass storage devices
        check_whitelist: Mark sessions whose serial is whitelisted as trusted
        untrusted_only: Keep only sessions not marked trusted
        sort_order: Order of sessions by connection time
        limit: Maximum number of sessions returned (0 = all)
        require_events: Treat a run without any USB events as an error
    """
    workers: int = 0
    streaming: bool = False
    mass_storage_only: bool = False
    check_whitelist: bool = False
    untrusted_only: bool = False
    sort_order: SortOrder = SortOrder.ASC
    limit: int = 0
    require_events: bool = False

    def __post_init__(self):
        if isinstance(self.sort_order, str):
            self.sort_order = SortOrder.from_string(self.sort_order)
        if self.workers < 0:
            raise ConfigurationError(
                f"workers must be >= 0, got {self.workers}",
                config_key="workers",
            )
        if self.limit < 0:
            raise ConfigurationError(
                f"limit must be >= 0, got {self.limit}",
                config_key="limit",
            )

    @property
    def resolved_workers(self) -> int:
        """Requested worker count with 0 replaced by the CPU count."""
        return self.workers or default_worker_count()
