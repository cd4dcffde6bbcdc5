"""
Application layer for usbtrail.

Contains the use cases that drive decoding, correlation and filtering
through the ports implemented by the infrastructure layer.
"""

from usbtrail.application.parse_logs import (
    ParseLogsUseCase,
    ParseLogsStreamingUseCase,
    StreamingParser,
)
from usbtrail.application.collect_sessions import CollectSessionsUseCase
from usbtrail.application.ports import (
    LogSourcePort,
    WhitelistPort,
    IdentifierResolverPort,
)

__all__ = [
    "ParseLogsUseCase",
    "ParseLogsStreamingUseCase",
    "StreamingParser",
    "CollectSessionsUseCase",
    "LogSourcePort",
    "WhitelistPort",
    "IdentifierResolverPort",
]
