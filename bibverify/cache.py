"""Response caches for registry lookups.

Both stores keep JSON-compatible values with a time-to-live and are safe to
share between worker threads. Stores raise :class:`CacheError` when the
backing medium is unusable; unreadable entries are treated as misses.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from bibverify.exceptions import CacheError

logger = logging.getLogger(__name__)

CACHE_VERSION = "1"


class ResponseCache(Protocol):
    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl: float) -> None:
        ...


def _atomic_write_text(path: Path, data: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("w", delete=False, dir=path.parent, encoding="utf-8") as tmp:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_path = Path(tmp.name)
    try:
        os.replace(tmp_path, path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise


class InMemoryResponseCache:
    """Lock-guarded dictionary with per-entry expiry."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class FileResponseCache:
    """Filesystem cache storing one JSON file per key.

    Writes go through a temporary file and :func:`os.replace` so concurrent
    readers never observe a partial entry. A ``cache_version`` marker is kept
    at the root; entries from another version are ignored.
    """

    def __init__(self, base_dir: Path | str = ".cache/bibverify", *, clock: Callable[[], float] = time.time) -> None:
        self.base_dir = Path(base_dir).expanduser()
        self._clock = clock
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            self._ensure_cache_version()
        except OSError as exc:
            raise CacheError(f"Cache directory {self.base_dir} is not usable: {exc}") from exc

    def get(self, key: str) -> Optional[Any]:
        path = self._entry_path(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheError(f"Failed to read cache entry for {key!r}: {exc}") from exc

        try:
            entry = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Ignoring corrupt cache entry", extra={"cache_key": key})
            return None

        if not isinstance(entry, dict) or entry.get("cache_version") != CACHE_VERSION:
            return None
        expires_at = entry.get("expires_at")
        if not isinstance(expires_at, (int, float)) or expires_at <= self._clock():
            path.unlink(missing_ok=True)
            return None
        return entry.get("value")

    def set(self, key: str, value: Any, ttl: float) -> None:
        entry = {
            "cache_version": CACHE_VERSION,
            "key": key,
            "expires_at": self._clock() + ttl,
            "value": value,
        }
        try:
            _atomic_write_text(self._entry_path(key), json.dumps(entry, sort_keys=True))
        except (OSError, TypeError, ValueError) as exc:
            raise CacheError(f"Failed to write cache entry for {key!r}: {exc}") from exc

    def _entry_path(self, key: str) -> Path:
        safe = re.sub(r"[^a-z0-9._-]", "-", key.lower())
        safe = re.sub(r"-+", "-", safe).strip("-_.")
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        slug = f"{safe[:64]}-{digest[:12]}" if safe else digest[:12]
        return self.base_dir / digest[:2] / f"{slug}.json"

    def _ensure_cache_version(self) -> None:
        version_file = self.base_dir / "cache_version"
        if version_file.exists() and version_file.read_text().strip() == CACHE_VERSION:
            return
        _atomic_write_text(version_file, CACHE_VERSION)


__all__ = ["CacheError", "FileResponseCache", "InMemoryResponseCache", "ResponseCache"]
