"""
Persistent snapshot cache for parsed usb.ids databases.

The snapshot is stored next to the source as ``<source>.cache``
(gzip-compressed JSON). It is reused only when

    1. the cache file exists,
    2. the source was not modified after the cache was written, and
    3. the MD5 of the first MiB of the source equals the stored hash.

Any failed check discards the whole snapshot.
"""

import gzip
import hashlib
import json
import os
import warnings
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from usbtrail.core.security import HASH_PREFIX_BYTES
from usbtrail.infrastructure.identifiers.database import IdentifierDatabase

__all__ = [
    "CACHE_SUFFIX",
    "CacheSnapshot",
    "SnapshotCache",
    "cache_path_for",
    "file_hash",
]


CACHE_SUFFIX = ".cache"


def cache_path_for(source_path: str | Path) -> Path:
    """Cache file location for a usb.ids file."""
    return Path(f"{source_path}{CACHE_SUFFIX}")


def file_hash(path: str | Path, limit: int = HASH_PREFIX_BYTES) -> str:
    """MD5 hex digest of the first ``limit`` bytes of a file."""
    digest = hashlib.md5(usedforsecurity=False)
    with open(path, "rb") as f:
        digest.update(f.read(limit))
    return digest.hexdigest()


@dataclass
class CacheSnapshot:
    """A parsed database plus what is needed to validate it later."""
    database: IdentifierDatabase
    source_hash: str
    cached_at: datetime
    source_mtime: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "database": self.database.to_dict(),
            "source_hash": self.source_hash,
            "cached_at": self.cached_at.isoformat(),
            "source_mtime": self.source_mtime.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheSnapshot":
        return cls(
            database=IdentifierDatabase.from_dict(data["database"]),
            source_hash=data["source_hash"],
            cached_at=datetime.fromisoformat(data["cached_at"]),
            source_mtime=datetime.fromisoformat(data["source_mtime"]),
        )


class SnapshotCache:
    """
    Load, save and clear the snapshot cache of one usb.ids file.

    Example:
        cache = SnapshotCache("/usr/share/hwdata/usb.ids")
        db = cache.load()
        if db is None:
            db = IdentifierDatabase.from_file(cache.source_path)
            cache.save(db)
    """

    def __init__(self, source_path: str | Path):
        self.source_path = Path(source_path)
        self.path = cache_path_for(source_path)
        self.last_miss_reason: str | None = None

    def load(self) -> IdentifierDatabase | None:
        """
        Return the cached database, or None if the cache is missing or stale.

        The reason for a miss is kept in ``last_miss_reason``.
        """
        snapshot = self.load_snapshot()
        return snapshot.database if snapshot is not None else None

    def load_snapshot(self) -> CacheSnapshot | None:
        """Return the validated snapshot, or None on a cache miss."""
        self.last_miss_reason = None

        try:
            cache_stat = self.path.stat()
            source_stat = self.source_path.stat()
        except OSError as e:
            return self._miss(f"cannot stat: {e}")

        if source_stat.st_mtime > cache_stat.st_mtime:
            return self._miss("source modified after cache was written")

        try:
            with gzip.open(self.path, "rt", encoding="utf-8") as f:
                snapshot = CacheSnapshot.from_dict(json.load(f))
        except (OSError, EOFError, ValueError, KeyError, TypeError) as e:
            return self._miss(f"unreadable snapshot: {e}")

        try:
            current_hash = file_hash(self.source_path)
        except OSError as e:
            return self._miss(f"cannot hash source: {e}")

        if current_hash != snapshot.source_hash:
            return self._miss(
                f"hash mismatch: cached {snapshot.source_hash}, source {current_hash}"
            )

        return snapshot

    def save(self, database: IdentifierDatabase) -> bool:
        """
        Write a fresh snapshot of ``database``.

        Failure only costs the next run a re-parse, so it is reported as a
        warning and False is returned.
        """
        tmp_path = self.path.with_name(f".{self.path.name}.{os.getpid()}.tmp")
        try:
            source_stat = self.source_path.stat()
            snapshot = CacheSnapshot(
                database=database,
                source_hash=file_hash(self.source_path),
                cached_at=datetime.now(),
                source_mtime=datetime.fromtimestamp(source_stat.st_mtime),
            )
            with gzip.open(tmp_path, "wt", encoding="utf-8") as f:
                json.dump(snapshot.to_dict(), f)
            os.replace(tmp_path, self.path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            warnings.warn(
                f"Failed to save usb.ids cache {self.path}: {e}",
                UserWarning,
                stacklevel=2,
            )
            return False
        return True

    def clear(self) -> bool:
        """
        Remove the cache file.

        Returns:
            True if a cache file was removed, False if there was none
        """
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True

    def _miss(self, reason: str) -> None:
        self.last_miss_reason = reason
        return None
