"""
Process-local keyed locks.

Mutations on the same roster or the same club ledger are serialized by
holding the lock for their key from the first read until commit. While the
store is one shared in-memory connection, whole units of work also take the
store key (see database/db.py).
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

STORE_LOCK_KEY = "store"


def session_lock_key(session_id: int) -> str:
    return f"session:{session_id}"


def club_lock_key(club_id: int) -> str:
    return f"club:{club_id}"


class KeyedLocks:
    """
    One asyncio.Lock per key in use.

    A key's lock exists only while some caller holds or waits for it, so
    the registry does not grow with every session or club ever touched.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: str) -> None:
        self._users[key] -= 1
        if not self._users[key]:
            del self._users[key]
            del self._locks[key]

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        """
        Acquire the locks for all keys, in sorted order so two callers
        asking for overlapping keys cannot deadlock.
        """
        ordered = sorted(set(keys))
        checked_out = []
        acquired = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                checked_out.append(key)
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in checked_out:
                self._checkin(key)

    def reset(self) -> None:
        """Drop all locks (locks are bound to the event loop that first waits on them)."""
        self._locks.clear()
        self._users.clear()


# Global singleton
_entity_locks = KeyedLocks()


def get_entity_locks() -> KeyedLocks:
    """Get the global keyed lock registry."""
    return _entity_locks
