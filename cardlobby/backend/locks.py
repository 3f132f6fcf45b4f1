"""Per-key mutual exclusion for lobby mutations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager

from .errors import BusyError

logger = logging.getLogger(__name__)


class KeyedLocks:
    """One asyncio.Lock per key, created on demand.

    A key's lock is dropped once nobody holds or waits for it, so the map
    only grows with the number of lobbies that are busy right now.
    """

    def __init__(self, timeout_s: float = 5.0) -> None:
        self._timeout_s = timeout_s
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    def __len__(self) -> int:
        return len(self._locks)

    def is_locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self._timeout_s)
            except asyncio.TimeoutError:
                logger.warning("Timed out after %.1fs waiting for lock %r", self._timeout_s, key)
                raise BusyError(f"Another update for {key!r} is in progress, try again") from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                self._locks.pop(key, None)
