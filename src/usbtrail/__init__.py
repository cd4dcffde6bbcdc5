"""
usbtrail - Reconstruct USB device history from kernel logs.

Reads syslog/kern logs (plain or gzip-rotated), rebuilds every device's
connect-to-disconnect session, resolves vendor/product names from usb.ids
and checks serials against a udev-rules whitelist.

Usage:
    from usbtrail import collect_sessions

    # Everything found under /var/log
    sessions = collect_sessions("/var/log")

    # Only untrusted mass storage devices, newest first
    sessions = collect_sessions(
        "/var/log",
        mass_storage_only=True,
        whitelist="/etc/udev/rules.d/99-usb.rules",
        untrusted_only=True,
        sort_order="desc",
    )
"""

__version__ = "0.1.0"

from pathlib import Path

from usbtrail.core.models import (
    UNSET,
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
from usbtrail.parsers import KernelUSBClassifier
from usbtrail.application import (
    ParseLogsUseCase,
    ParseLogsStreamingUseCase,
    CollectSessionsUseCase,
)
from usbtrail.infrastructure import (
    LogFileSource,
    LogStreamSource,
    discover_log_files,
    SessionCorrelator,
    SessionPipeline,
    IdentifierResolver,
    Whitelist,
)

__all__ = [
    # Version
    "__version__",
    # Core models
    "UNSET",
    "ActionKind",
    "ClassifiedLine",
    "DeviceSession",
    "SortOrder",
    "CollectOptions",
    # Exceptions
    "USBTrailError",
    "DiscoveryError",
    "NoEventsError",
    "WhitelistError",
    "IdentifierDatabaseError",
    "DownloadError",
    "ConfigurationError",
    "OperationCancelled",
    # Components
    "KernelUSBClassifier",
    "ParseLogsUseCase",
    "ParseLogsStreamingUseCase",
    "CollectSessionsUseCase",
    "LogFileSource",
    "LogStreamSource",
    "SessionCorrelator",
    "SessionPipeline",
    "IdentifierResolver",
    "Whitelist",
    # Convenience functions
    "discover_log_files",
    "collect_sessions",
]


def collect_sessions(
    log_path: str | Path = "/var/log/",
    usb_ids: str | Path | None = None,
    whitelist: str | Path | None = None,
    **options,
) -> list[DeviceSession]:
    """
    Collect device sessions from the logs below a directory.

    Args:
        log_path: Log directory (or single log file)
        usb_ids: usb.ids location; names are left as logged when None
        whitelist: udev rules file; enables whitelist checking
        **options: Any CollectOptions field (workers, streaming, limit, ...)

    Returns:
        Sessions after dedup, filtering, sorting and limit

    Example:
        for session in collect_sessions("/var/log", usb_ids="/usr/share/hwdata/usb.ids"):
            print(session.connected_at, session.product_name)
    """
    resolver = None
    if usb_ids is not None:
        resolver = IdentifierResolver()
        resolver.load(usb_ids)

    wl = None
    if whitelist is not None:
        wl = Whitelist.from_file(whitelist)
        options.setdefault("check_whitelist", True)

    use_case = CollectSessionsUseCase(
        CollectOptions(**options),
        resolver=resolver,
        whitelist=wl,
    )
    return use_case.execute(discover_log_files(log_path))
