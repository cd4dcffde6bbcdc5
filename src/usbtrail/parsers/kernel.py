"""
Classifier for kernel USB subsystem lines in syslog-format logs.

Examples:
    Jan 27 10:15:32 myhost kernel: [12345.678] usb 1-1: New USB device found, idVendor=0781, idProduct=5567
    Jan 27 10:15:32 myhost kernel: [12345.701] usb 1-1: Product: Cruzer Blade
    Jan 27 10:15:33 myhost kernel: [12346.002] usb-storage 1-1:1.0: USB Mass Storage device detected
    Jan 27 11:02:10 myhost kernel: [15123.440] usb 1-1: USB disconnect, device number 5
"""

import re
import warnings
from datetime import datetime

from dateutil.relativedelta import relativedelta

from usbtrail.core.models import EPOCH, ActionKind, ClassifiedLine

__all__ = [
    "KernelUSBClassifier",
    "get_action_kind",
    "parse_syslog_timestamp",
]


# Year used while parsing so that "Feb 29" is always accepted
_PLACEHOLDER_YEAR = 2000

CONNECT_MARKERS = (
    "New USB device found",
    "Product: ",
    "Manufacturer: ",
    "SerialNumber: ",
    "USB Mass Storage device detected",
)

DISCONNECT_MARKER = "disconnect"

TIMESTAMP_PATTERN = re.compile(
    r'(?P<month>[A-Z][a-z]{2})\s+'          # Month abbreviation
    r'(?P<day>\d{1,2})\s'                   # Space-padded day
    r'(?P<time>\d{2}:\d{2}:\d{2})'          # Wall clock time
)


def get_action_kind(line: str) -> ActionKind:
    """
    Classify a USB subsystem line as a connect or disconnect event.

    Connect markers take precedence, so a "Product: " line mentioning
    "disconnect" still counts as a connect line.
    """
    for marker in CONNECT_MARKERS:
        if marker in line:
            return ActionKind.CONNECTED
    if DISCONNECT_MARKER in line:
        return ActionKind.DISCONNECTED
    return ActionKind.UNKNOWN


def parse_syslog_timestamp(value: str, now: datetime | None = None) -> datetime | None:
    """
    Parse a BSD syslog timestamp ("Oct  1 22:14:15") and infer its year.

    Syslog omits the year, so the current year is assumed, minus one when
    the month lies after the current month (a December entry read in
    January belongs to last year). A Feb 29 landing on a non-leap year is
    clamped to Feb 28.

    Args:
        value: Text containing the timestamp
        now: Reference time (default: datetime.now())

    Returns:
        Naive datetime, or None if no timestamp could be parsed
    """
    match = TIMESTAMP_PATTERN.search(value)
    if not match:
        return None

    try:
        parsed = datetime.strptime(
            f"{_PLACEHOLDER_YEAR} {match['month']} {match['day']} {match['time']}",
            "%Y %b %d %H:%M:%S",
        )
    except ValueError:
        return None

    now = now or datetime.now()
    year = now.year - 1 if parsed.month > now.month else now.year
    return parsed + relativedelta(year=year)


class KernelUSBClassifier:
    """
    Turn raw log lines into ClassifiedLine records.

    Only lines from the kernel ``usb`` or ``usb-storage`` subsystems are
    considered; everything else is rejected before classification.

    Example:
        classifier = KernelUSBClassifier()
        line = classifier.classify(raw)
        if line is not None and line.kind is ActionKind.CONNECTED:
            ...
    """

    name = "kernel_usb"

    USB_PATTERN = re.compile(r'(?:\]|:) usb (.*?): ')
    USB_STORAGE_PATTERN = re.compile(r'(?:\]|:) usb-storage (.*?): ')

    def __init__(self, now: datetime | None = None):
        """
        Initialize the classifier.

        Args:
            now: Reference time for year inference (default: creation time)
        """
        self.now = now or datetime.now()

    def is_usb_line(self, line: str) -> bool:
        """Check whether a line comes from the usb or usb-storage subsystem."""
        return bool(
            self.USB_PATTERN.search(line) or self.USB_STORAGE_PATTERN.search(line)
        )

    def classify(self, line: str) -> ClassifiedLine | None:
        """
        Classify a single log line.

        Args:
            line: Raw log line

        Returns:
            ClassifiedLine, or None when the line is not a USB subsystem line
        """
        if not self.is_usb_line(line):
            return None

        timestamp = parse_syslog_timestamp(line, self.now)
        if timestamp is None:
            warnings.warn(
                f"Unparseable syslog timestamp, using {EPOCH:%Y-%m-%d}: {line[:80]!r}",
                UserWarning,
                stacklevel=2,
            )
            timestamp = EPOCH

        return ClassifiedLine(
            timestamp=timestamp,
            kind=get_action_kind(line),
            raw=line,
        )
