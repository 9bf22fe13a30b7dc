"""Pluggable key/value caches used for the provider discovery document."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional, Protocol


class CacheBackend(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl: float) -> None: ...


class InMemoryCache:
    """Process-local cache with per-entry expiry."""

    def __init__(self, *, timer: Callable[[], float] = time.monotonic) -> None:
        self._timer = timer
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._timer() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._entries[key] = (self._timer() + ttl, value)


class NullCache:
    """Cache that never stores anything; every lookup misses."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl: float) -> None:
        return None


__all__ = ["CacheBackend", "InMemoryCache", "NullCache"]
