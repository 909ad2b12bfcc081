"""
In-process keyed locks for resource reservation.

Each resource key (e.g. ``("product", 7)``) maps to its own lock, so callers
reserving different resources never wait on each other. Lock entries are
reference counted and dropped once no thread holds or waits for them.

This complements the row lock taken with ``SELECT ... FOR UPDATE``: the row
lock serializes callers across processes on a real server, the keyed lock
serializes threads of this process even on backends that ignore FOR UPDATE
(SQLite).
"""

import logging
import threading
from typing import Dict, Hashable

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("lock", "refs")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.refs = 0


class KeyedLockRegistry:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, _Entry] = {}

    def acquire(self, key: Hashable, timeout: float) -> bool:
        """Acquire the lock for ``key``, waiting at most ``timeout`` seconds."""
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.refs += 1

        acquired = entry.lock.acquire(timeout=timeout)
        if not acquired:
            self._drop_ref(key, entry)
            logger.warning(
                f"Timed out after {timeout}s waiting for lock {key!r}",
                extra={"context": {"lock_key": repr(key), "timeout": timeout}},
            )
        return acquired

    def release(self, key: Hashable) -> None:
        with self._guard:
            entry = self._entries.get(key)
        if entry is None:
            raise RuntimeError(f"Lock {key!r} is not held")
        entry.lock.release()
        self._drop_ref(key, entry)

    def is_locked(self, key: Hashable) -> bool:
        with self._guard:
            entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _drop_ref(self, key: Hashable, entry: _Entry) -> None:
        with self._guard:
            entry.refs -= 1
            if entry.refs == 0 and self._entries.get(key) is entry:
                del self._entries[key]


# Process-wide registry shared by every ResourceLedger that is not given its own
default_registry = KeyedLockRegistry()
