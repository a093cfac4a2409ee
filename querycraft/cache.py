"""Result caching.

A cache handler is any object with:

- ``get(key)``, returning the stored value or :data:`MISS`;
- ``set(key, value, ttl)``, storing ``value`` for ``ttl`` seconds.

Any value other than :data:`MISS` is a hit, including ``None``, ``[]`` or ``0``.
"""

import threading
import time
from typing import Any, Callable

from cachetools import TLRUCache


class _Miss:
    """Type of the :data:`MISS` sentinel."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS = _Miss()


def is_cache_handler(handler: Any) -> bool:
    return callable(getattr(handler, "get", None)) and callable(getattr(handler, "set", None))


def _expires_at(key: str, entry: tuple[Any, int], now: float) -> float:
    return now + entry[1]


class MemoryCache:
    """Process-local cache with per-key expiry.

    Expired entries are dropped on every write; when ``maxsize`` entries are
    held, the one closest to expiry makes room.
    """

    def __init__(self, maxsize: int = 1024, timer: Callable[[], float] = time.monotonic) -> None:
        self._entries: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=timer)
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
        return MISS if entry is None else entry[0]

    def set(self, key: str, value: Any, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (value, ttl)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._entries.expire()
            return len(self._entries)
