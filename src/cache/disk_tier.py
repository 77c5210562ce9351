# src/cache/disk_tier.py — v1
"""Persisted tier: one file per key, optionally gzip-compressed.

File layout::

    <marker byte> <JSON header line> \n <payload>

marker 0x00 = raw payload, 0x01 = gzip payload. The header carries the
original key, creation time and TTL so the tier can filter by prefix and
expire entries without a side index. Writes go to a temp file that is
renamed into place, so readers never see a half-written entry.

Read failures degrade to a miss; write failures are logged and reported
through the return value, never raised.
"""

from __future__ import annotations

import contextlib
import gzip
import hashlib
import json
import logging
import os
import re
import tempfile
import zlib
from pathlib import Path

from dociium.cache.models import CacheEntry

logger = logging.getLogger(__name__)

MARKER_RAW = b"\x00"
MARKER_GZIP = b"\x01"
SUFFIX = ".entry"

_UNSAFE = re.compile(r'::|[/\\<>:"|?*\s]')


def sanitize_filename(key: str, max_len: int = 120) -> str:
    """Derive a filesystem-safe, collision-free name from a cache key."""
    safe = _UNSAFE.sub("_", key)[:max_len]
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:10]
    return f"{safe}-{digest}{SUFFIX}"


class DiskTier:
    """File-per-entry store rooted at a directory."""

    def __init__(self, root: Path, compression_threshold: int = 1024) -> None:
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)
        self._compression_threshold = compression_threshold

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        return self._root / sanitize_filename(key)

    # --- read ---

    def read(self, key: str) -> CacheEntry | None:
        path = self.path_for(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Disk cache read failed for %s: %s", key, e)
            return None
        try:
            entry = self._decode(raw)
        except (ValueError, OSError, EOFError, zlib.error) as e:
            logger.warning("Corrupt disk cache entry %s: %s", path.name, e)
            return None
        if entry.key != key:
            # sha suffix makes this practically impossible; treat as miss
            logger.warning("Disk cache key mismatch in %s", path.name)
            return None
        return entry

    def _decode(self, raw: bytes) -> CacheEntry:
        marker, rest = raw[:1], raw[1:]
        if marker not in (MARKER_RAW, MARKER_GZIP):
            raise ValueError(f"unknown marker byte {marker!r}")
        header_line, sep, body = rest.partition(b"\n")
        if not sep:
            raise ValueError("missing header terminator")
        header = json.loads(header_line)
        compressed = marker == MARKER_GZIP
        payload = gzip.decompress(body) if compressed else body
        return CacheEntry(
            key=header["key"],
            payload=payload,
            created_at=float(header["created_at"]),
            ttl=header.get("ttl"),
            compressed=compressed,
        )

    def _read_header(self, path: Path) -> dict | None:
        try:
            with path.open("rb") as fh:
                marker = fh.read(1)
                if marker not in (MARKER_RAW, MARKER_GZIP):
                    return None
                return json.loads(fh.readline())
        except (OSError, ValueError) as e:
            logger.warning("Unreadable disk cache header %s: %s", path.name, e)
            return None

    # --- write ---

    def write(self, entry: CacheEntry) -> bool:
        """Persist entry atomically. Returns False if the write failed."""
        compress = len(entry.payload) > self._compression_threshold
        body = gzip.compress(entry.payload) if compress else entry.payload
        header = json.dumps(
            {"key": entry.key, "created_at": entry.created_at, "ttl": entry.ttl},
            separators=(",", ":"),
        ).encode("utf-8")
        data = (MARKER_GZIP if compress else MARKER_RAW) + header + b"\n" + body

        target = self.path_for(entry.key)
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=".tmp-")
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, target)
            return True
        except OSError as e:
            logger.error("Disk cache write failed for %s: %s", entry.key, e)
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            return False

    # --- removal ---

    def delete(self, key: str) -> bool:
        try:
            self.path_for(key).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Disk cache delete failed for %s: %s", key, e)
            return False

    def clear(self, prefix: str | None = None) -> set[str]:
        removed: set[str] = set()
        for path in self._entry_files():
            header = self._read_header(path)
            key = header.get("key") if header else None
            if prefix is not None and (key is None or not key.startswith(prefix)):
                continue
            try:
                path.unlink()
            except OSError as e:
                logger.warning("Disk cache clear failed for %s: %s", path.name, e)
                continue
            if key is not None:
                removed.add(key)
        return removed

    def sweep(self, now: float) -> int:
        """Delete expired entries. Unreadable files are removed too but not counted."""
        removed = 0
        for path in self._entry_files():
            header = self._read_header(path)
            if header is None:
                try:
                    path.unlink()
                except OSError:
                    logger.warning("Could not remove corrupt entry %s", path.name)
                continue
            ttl = header.get("ttl")
            if ttl is None or now < float(header["created_at"]) + float(ttl):
                continue
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Sweep could not remove %s: %s", path.name, e)
        return removed

    # --- introspection ---

    def keys(self) -> list[str]:
        keys = []
        for path in self._entry_files():
            header = self._read_header(path)
            if header and "key" in header:
                keys.append(header["key"])
        return keys

    def total_bytes(self) -> int:
        total = 0
        for path in self._entry_files():
            try:
                total += path.stat().st_size
            except OSError:
                continue
        return total

    def _entry_files(self) -> list[Path]:
        if not self._root.is_dir():
            return []
        return sorted(self._root.glob(f"*{SUFFIX}"))
