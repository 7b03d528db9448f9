# src/dcron/storage/base.py
from __future__ import annotations

import threading
import time
from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class LockStore(Protocol):
    """
    The one primitive distributed mode needs: create ``key`` with ``value``
    and an expiry only if it does not exist yet, and report whether this
    call created it.

    Implementations must be safe to call from several loop threads at once
    and raise ``LockStoreError`` for communication faults.
    """

    def try_set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool: ...

    def close(self) -> None: ...


class MemoryLockStore:
    """
    In-process lock store.

    Only coordinates schedulers living in the same process; mostly useful in
    tests and for running several instances side by side.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._guard = threading.Lock()
        self._entries: dict[str, tuple[str, float]] = {}
        self.closed = False

    def try_set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        now = self._clock()
        with self._guard:
            self._purge_expired(now)
            if key in self._entries:
                return False
            self._entries[key] = (value, now + ttl_ms / 1000.0)
            return True

    def get(self, key: str) -> str | None:
        with self._guard:
            current = self._entries.get(key)
            if current is None or current[1] <= self._clock():
                return None
            return current[0]

    def close(self) -> None:
        self.closed = True

    def size(self) -> int:
        with self._guard:
            return len(self._entries)

    def _purge_expired(self, now: float) -> None:
        # Keys embed the firing instant and are never reused.
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for k in expired:
            del self._entries[k]
