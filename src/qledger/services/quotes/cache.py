"""Injectable key/value cache with expiry.

Callers own the cache instance and pass it to whatever needs one; nothing
in the package holds a module-level cache.
"""

import threading
import time
from collections.abc import Callable
from typing import Any, Protocol


class ICache(Protocol):
    """
    Cache contract.

    Example:
        >>> cache: ICache = TTLCache(ttl_seconds=300)
        >>> cache.set("600000", quote)
        >>> cache.get("600000")
    """

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when absent or expired."""
        ...

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store a value, optionally with its own time-to-live."""
        ...

    def expire(self, key: str | None = None) -> None:
        """Drop one key, or every key when ``key`` is None."""
        ...


class TTLCache:
    """
    Thread-safe in-memory cache whose entries expire after a time-to-live.

    Attributes:
        ttl_seconds: Default time-to-live for new entries

    Example:
        >>> now = [0.0]
        >>> cache = TTLCache(ttl_seconds=60, clock=lambda: now[0])
        >>> cache.set("k", 1)
        >>> now[0] = 61.0
        >>> cache.get("k") is None
        True
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Initialize cache.

        Args:
            ttl_seconds: Default time-to-live in seconds
            clock: Monotonic time source in seconds

        Raises:
            ValueError: If ttl_seconds is not positive
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = (self._clock() + ttl, value)

    def expire(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for expires_at, _ in self._entries.values() if now < expires_at)
