"""Per-(portfolio, symbol) locking.

Writes and recomputes for the same symbol must not interleave: a recompute
reads the full history and writes the holding, so two of them racing on one
key could persist a stale holding. Different keys proceed in parallel.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class KeyedLock:
    """
    Registry of re-entrant locks, one per (portfolio_id, symbol).

    Re-entrant so that a write holding the lock can run the recompute that
    follows it on the same thread.

    Example:
        >>> locks = KeyedLock()
        >>> with locks.hold(1, "600000"):
        ...     repository.add_transaction(record, cycle_id)
        ...     holding_service.recompute(1, "600000")
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[int, str], threading.RLock] = {}

    def _lock_for(self, portfolio_id: int, symbol: str) -> threading.RLock:
        key = (portfolio_id, symbol)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, portfolio_id: int, symbol: str) -> Iterator[None]:
        """Hold the lock for a key for the duration of the block."""
        lock = self._lock_for(portfolio_id, symbol)
        with lock:
            yield

    @contextmanager
    def hold_many(self, portfolio_id: int, symbols: list[str]) -> Iterator[None]:
        """
        Hold the locks of several symbols at once.

        Locks are taken in sorted symbol order so concurrent callers cannot
        deadlock on each other.
        """
        locks = [self._lock_for(portfolio_id, symbol) for symbol in sorted(set(symbols))]
        acquired: list[threading.RLock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
