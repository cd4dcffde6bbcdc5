"""
Pytest fixtures for usbtrail tests.
"""

import gzip
from datetime import datetime

import pytest
import requests

from usbtrail.core.models import ActionKind, ClassifiedLine, DeviceSession


# Sample kernel log lines

@pytest.fixture
def flash_drive_lines() -> list[str]:
    """A flash drive plugged into port 1-1 and removed half an hour later."""
    return [
        'Jan 15 10:00:00 host1 kernel: [  100.000000] usb 1-1: new high-speed USB device number 5 using xhci_hcd',
        'Jan 15 10:00:00 host1 kernel: [  100.120000] usb 1-1: New USB device found, idVendor=0781, idProduct=5567, bcdDevice= 1.00',
        'Jan 15 10:00:00 host1 kernel: [  100.120010] usb 1-1: New USB device strings: Mfr=1, Product=2, SerialNumber=3',
        'Jan 15 10:00:00 host1 kernel: [  100.120020] usb 1-1: Product: Cruzer Blade',
        'Jan 15 10:00:00 host1 kernel: [  100.120030] usb 1-1: Manufacturer: SanDisk',
        'Jan 15 10:00:00 host1 kernel: [  100.120040] usb 1-1: SerialNumber: 4C530001230308117292',
        'Jan 15 10:00:01 host1 kernel: [  100.500000] usb-storage 1-1:1.0: USB Mass Storage device detected',
        'Jan 15 10:00:02 host1 systemd[1]: Started Session 3 of user alice.',
        'Jan 15 10:30:00 host1 kernel: [ 1900.000000] usb 1-1: USB disconnect, device number 5',
    ]


@pytest.fixture
def mouse_lines() -> list[str]:
    """A mouse on port 2-1 that reports no serial number."""
    return [
        'Jan 15 11:00:00 host1 kernel: [ 3700.000000] usb 2-1: new low-speed USB device number 3 using xhci_hcd',
        'Jan 15 11:00:00 host1 kernel: [ 3700.150000] usb 2-1: New USB device found, idVendor=046d, idProduct=c077, bcdDevice=72.00',
        'Jan 15 11:00:00 host1 kernel: [ 3700.150020] usb 2-1: Product: USB Optical Mouse',
        'Jan 15 11:00:00 host1 kernel: [ 3700.150030] usb 2-1: Manufacturer: Logitech',
        'Jan 15 11:00:00 host1 kernel: [ 3700.160000] input: Logitech USB Optical Mouse as /devices/pci0000:00/usb2/2-1/input/input7',
        'Jan 15 12:00:00 host1 kernel: [ 7300.000000] usb 2-1: USB disconnect, device number 3',
    ]


@pytest.fixture
def usb_ids_text() -> str:
    """A small usb.ids database."""
    return (
        "#\n"
        "#\tList of USB ID's\n"
        "#\n"
        "# Version: 2024.01.22\n"
        "# Date:    2024-01-22 20:34:05\n"
        "#\n"
        "\n"
        "046d  Logitech, Inc.\n"
        "\tc077  M105 Optical Mouse\n"
        "0781  SanDisk Corp.\n"
        "\t5567  Cruzer Blade\n"
        "\t5581  Ultra\n"
        "1234  ACME Corp\n"
        "\t5678  Flash Drive\n"
        "\n"
        "# List of known device classes, subclasses and protocols\n"
        "C 00  (Defined at Interface level)\n"
        "1111  Never Reached Vendor\n"
    )


@pytest.fixture
def usb_ids_file(tmp_path, usb_ids_text):
    """The small usb.ids database written to disk."""
    path = tmp_path / "usb.ids"
    path.write_text(usb_ids_text)
    return path


@pytest.fixture
def whitelist_text() -> str:
    """udev rules trusting the SanDisk flash drive."""
    return (
        "# Trusted removable media\n"
        'ATTRS{serial}=="4C530001230308117292",ENV{UDISKS_IGNORE}="0" # office stick\n'
        'ATTRS{serial}=="0000DEADBEEF",ENV{UDISKS_IGNORE}="1" # hidden backup disk\n'
    )


@pytest.fixture
def log_dir(tmp_path, flash_drive_lines, mouse_lines):
    """
    A /var/log-like directory.

    The older rotation (syslog.1.gz) holds the flash drive, the current
    syslog holds the mouse.
    """
    root = tmp_path / "log"
    root.mkdir()
    with gzip.open(root / "syslog.1.gz", "wt") as f:
        f.write("\n".join(flash_drive_lines) + "\n")
    (root / "syslog").write_text("\n".join(mouse_lines) + "\n")
    (root / "dpkg.log").write_text("2024-01-15 10:00:00 status installed usbutils\n")
    return root


def make_session(
    connected_at: datetime,
    port: str = "1-1",
    serial: str = "SERIAL",
    is_mass_storage: bool = False,
    **kwargs,
) -> DeviceSession:
    """Build a session with a fixed disconnect time."""
    return DeviceSession(
        connected_at=connected_at,
        disconnected_at=datetime(2024, 12, 31),
        connection_port=port,
        serial_number=serial,
        is_mass_storage=is_mass_storage,
        **kwargs,
    )


def classified(raw: str, kind: ActionKind = ActionKind.CONNECTED,
               timestamp: datetime = datetime(2024, 1, 15, 10, 0, 0)) -> ClassifiedLine:
    """Build a classified line without going through the classifier."""
    return ClassifiedLine(timestamp=timestamp, kind=kind, raw=raw)


class FakeResponse:
    """Streaming HTTP response serving a fixed body."""

    def __init__(self, body: bytes, status: int = 200):
        self.body = body
        self.status_code = status
        self.headers = {"Content-Length": str(len(body))}

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error", response=self)

    def iter_content(self, chunk_size: int = 1):
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start:start + chunk_size]


class FakeSession:
    """Stand-in for requests.Session that records requested URLs."""

    def __init__(self, body: bytes = b"", status: int = 200, error: Exception | None = None):
        self.body = body
        self.status = status
        self.error = error
        self.urls: list[str] = []

    def get(self, url: str, stream: bool = False, timeout: float | None = None) -> FakeResponse:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.body, self.status)
