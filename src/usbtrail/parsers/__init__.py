"""
Log line classifiers for usbtrail.
"""

from usbtrail.parsers.kernel import (
    KernelUSBClassifier,
    get_action_kind,
    parse_syslog_timestamp,
)

__all__ = [
    "KernelUSBClassifier",
    "get_action_kind",
    "parse_syslog_timestamp",
]
