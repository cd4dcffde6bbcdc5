"""
Download of the usb.ids database from linux-usb.org.

The file is streamed into a temporary file next to the target, checked to
be a usable database and only then moved over the target, so a failed or
truncated download never replaces a working database. The snapshot cache
of the target is dropped afterwards.
"""

import os
from pathlib import Path
from typing import Callable

import requests

from usbtrail.core.exceptions import DownloadError, IdentifierDatabaseError
from usbtrail.infrastructure.identifiers.cache import SnapshotCache
from usbtrail.infrastructure.identifiers.database import IdentifierDatabase

__all__ = [
    "USB_IDS_URL",
    "DOWNLOAD_TIMEOUT_SECONDS",
    "USBIdsUpdater",
    "fallback_target",
    "is_writable",
]


USB_IDS_URL = "http://www.linux-usb.org/usb.ids"
DOWNLOAD_TIMEOUT_SECONDS = 60
DOWNLOAD_CHUNK_SIZE = 64 * 1024

# Called as callback(bytes_written, total_bytes or None)
DownloadProgress = Callable[[int, int | None], None]


def fallback_target() -> Path:
    """Per-user usb.ids location used when the system path is read-only."""
    return Path.home() / ".local" / "share" / "usbtrail" / "usb.ids"


def is_writable(path: str | Path) -> bool:
    """
    Check whether ``path`` can be replaced by the current user.

    An existing file must be writable; otherwise its nearest existing
    parent directory must be.
    """
    path = Path(path).expanduser()
    if path.exists():
        return os.access(path, os.W_OK)

    parent = path.parent
    while not parent.exists() and parent != parent.parent:
        parent = parent.parent
    return os.access(parent, os.W_OK | os.X_OK)


class USBIdsUpdater:
    """
    Fetch usb.ids over HTTP and install it at a target path.

    Example:
        updater = USBIdsUpdater()
        database = updater.update("/var/lib/usbutils/usb.ids")
        print(database.version, len(database))
    """

    def __init__(
        self,
        url: str = USB_IDS_URL,
        session: requests.Session | None = None,
        timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
    ):
        """
        Initialize the updater.

        Args:
            url: Download location
            session: HTTP session (default: a new requests.Session)
            timeout: Connect and read timeout in seconds
        """
        self.url = url
        self.session = session or requests.Session()
        self.timeout = timeout
        self.bytes_written = 0

    def update(
        self,
        target: str | Path,
        progress_callback: DownloadProgress | None = None,
    ) -> IdentifierDatabase:
        """
        Download usb.ids, verify it and replace ``target`` with it.

        Args:
            target: Where the database is installed
            progress_callback: Receives download progress per chunk

        Returns:
            The parsed new database

        Raises:
            DownloadError: If the download, verification or install fails
        """
        target = Path(target).expanduser()
        tmp_path = target.with_name(f".{target.name}.{os.getpid()}.download")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            self.bytes_written = self._download(tmp_path, progress_callback)
            database = IdentifierDatabase.from_file(tmp_path)
            os.replace(tmp_path, target)
        except requests.exceptions.RequestException as e:
            tmp_path.unlink(missing_ok=True)
            raise DownloadError(f"Failed to fetch {self.url}: {e}", url=self.url) from e
        except IdentifierDatabaseError as e:
            tmp_path.unlink(missing_ok=True)
            raise DownloadError(
                f"Downloaded file is not a usb.ids database: {self.url}",
                url=self.url,
            ) from e
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise DownloadError(f"Cannot install usb.ids at {target}: {e}", url=self.url) from e
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        SnapshotCache(target).clear()
        return database

    def _download(self, path: Path, progress_callback: DownloadProgress | None) -> int:
        written = 0
        with self.session.get(self.url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            total = int(response.headers.get("Content-Length") or 0) or None

            with open(path, "wb") as f:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if not chunk:
                        continue
                    f.write(chunk)
                    written += len(chunk)
                    if progress_callback:
                        progress_callback(written, total)
        return written
