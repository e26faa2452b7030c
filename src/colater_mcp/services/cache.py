"""Filesystem TTL cache for tool results.

One JSON file per key: ``{"value": ..., "expiresAt": <epoch ms>}``.
Expired entries are removed lazily when read. Writes land in a temp file
in the same directory and are moved into place, so readers never see a
half-written entry.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import json
import os
import tempfile
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")

_MAX_NAME_LENGTH = 200  # stay well under common filename limits
_SUFFIX = ".json"
_TMP_SUFFIX = ".tmp"


def cache_key(operation: str, params: dict[str, Any]) -> str:
    """Fingerprint an operation and its parameters.

    Parameter order does not matter.
    """
    encoded = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    return f"{operation}:{encoded}"


class LocalCache:
    """Durable key/value cache with per-entry expiry."""

    def __init__(
        self,
        root: Path | str,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._root = Path(root).expanduser()
        self._clock = clock
        self._log = logger.bind(component="cache")

    @property
    def root(self) -> Path:
        return self._root

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss or expiry."""
        path = self._path_for(key)
        try:
            with open(path, encoding="utf-8") as f:
                entry = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            self._log.warning("cache.read_failed", path=str(path), error=str(e))
            return None

        if not isinstance(entry, dict) or "expiresAt" not in entry:
            self._log.warning("cache.read_failed", path=str(path), error="bad entry")
            return None

        if self._now_ms() >= entry["expiresAt"]:
            self._unlink(path)
            return None
        return entry.get("value")

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store a value for ttl_seconds. Failures are logged and skipped."""
        path = self._path_for(key)
        entry = {"value": value, "expiresAt": self._now_ms() + int(ttl_seconds * 1000)}
        tmp_name = None
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._root, suffix=_TMP_SUFFIX)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entry, f)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            self._log.warning("cache.write_failed", path=str(path), error=str(e))
            if tmp_name is not None:
                self._unlink(Path(tmp_name))

    async def with_cache(
        self,
        key: str,
        producer: Callable[[], Awaitable[T]],
        ttl_seconds: float,
    ) -> T:
        """Return the cached value or produce, store and return a fresh one.

        File reads and writes run in a worker thread. Producer errors
        propagate and nothing is stored.
        """
        cached = await asyncio.to_thread(self.get, key)
        if cached is not None:
            self._log.debug("cache.hit", key=key)
            return cached

        self._log.debug("cache.miss", key=key)
        value = await producer()
        await asyncio.to_thread(self.set, key, value, ttl_seconds)
        return value

    def clear(self, key: str) -> None:
        """Remove one entry if present."""
        self._unlink(self._path_for(key))

    def clear_all(self) -> int:
        """Remove every entry and any stray temp files.

        Returns the number of entries removed.
        """
        if not self._root.is_dir():
            return 0
        removed = 0
        for path in self._root.glob(f"*{_SUFFIX}"):
            if self._unlink(path):
                removed += 1
        # Writes interrupted between mkstemp and os.replace
        for path in self._root.glob(f"*{_TMP_SUFFIX}"):
            self._unlink(path)
        self._log.info("cache.clear_all", removed=removed)
        return removed

    def _path_for(self, key: str) -> Path:
        name = base64.urlsafe_b64encode(key.encode()).decode().rstrip("=")
        if len(name) > _MAX_NAME_LENGTH:
            name = hashlib.sha256(key.encode()).hexdigest()
        return self._root / f"{name}{_SUFFIX}"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            self._log.warning("cache.delete_failed", path=str(path), error=str(e))
            return False
