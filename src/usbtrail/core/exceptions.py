"""
Custom exceptions for usbtrail.
"""

__all__ = [
    "USBTrailError",
    "DiscoveryError",
    "NoEventsError",
    "WhitelistError",
    "IdentifierDatabaseError",
    "DownloadError",
    "ConfigurationError",
    "OperationCancelled",
]


class USBTrailError(Exception):
    """Base exception for all usbtrail errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class DiscoveryError(USBTrailError):
    """Raised when no candidate log files could be found."""

    def __init__(self, message: str, root: str | None = None):
        details = {}
        if root is not None:
            details["root"] = root
        super().__init__(message, details)
        self.root = root


class NoEventsError(USBTrailError):
    """Raised when a run produced no USB events at all."""

    def __init__(self, message: str, file_count: int | None = None):
        details = {}
        if file_count is not None:
            details["file_count"] = file_count
        super().__init__(message, details)
        self.file_count = file_count


class WhitelistError(USBTrailError):
    """Raised when a whitelist cannot be read or holds no valid entries."""

    def __init__(self, message: str, path: str | None = None):
        details = {}
        if path is not None:
            details["path"] = path
        super().__init__(message, details)
        self.path = path


class IdentifierDatabaseError(USBTrailError):
    """Raised when no usb.ids database could be loaded."""

    def __init__(self, message: str, paths: list[str] | None = None):
        details = {}
        if paths is not None:
            details["paths"] = paths
        super().__init__(message, details)
        self.paths = paths


class DownloadError(USBTrailError):
    """Raised when usb.ids cannot be downloaded or installed."""

    def __init__(self, message: str, url: str | None = None):
        details = {}
        if url is not None:
            details["url"] = url
        super().__init__(message, details)
        self.url = url


class ConfigurationError(USBTrailError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, config_key: str | None = None):
        details = {}
        if config_key is not None:
            details["config_key"] = config_key
        super().__init__(message, details)
        self.config_key = config_key


class OperationCancelled(USBTrailError):
    """
    Raised when a run is stopped through its cancellation event.

    This is a user-requested stop, not a failure.
    """

    def __init__(self, message: str = "Operation cancelled by user"):
        super().__init__(message)
