from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Protocol

from tokenlife.services._shared.clock import Clock, system_clock
from tokenlife.services._shared.hashing import hash_token


class RevocationCache(Protocol):
    """
    Denylist of **access** credentials revoked before their natural expiry.

    Entries are keyed by the credential hash and live exactly as long as the
    credential would have. Methods are idempotent.
    """

    backend: str

    def add(self, raw: str, ttl: timedelta) -> None:
        """Deny ``raw`` for ``ttl``. A non-positive TTL is a no-op."""

    def contains(self, raw: str) -> bool: ...

    def remove(self, raw: str) -> bool: ...

    def clear(self) -> int: ...

    def count(self) -> int: ...

    def sweep(self) -> int:
        """Drop expired entries; returns how many were removed."""


class InMemoryRevocationCache(RevocationCache):
    """Process-local denylist with lazy eviction plus an explicit sweep.

    Single-instance only and lost on restart. Used when no shared backend is
    reachable at startup.
    """

    backend = "memory"

    def __init__(self, *, clock: Clock = system_clock) -> None:
        self._clock = clock
        self._entries: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def add(self, raw: str, ttl: timedelta) -> None:
        if ttl <= timedelta(0):
            return
        expires_at = self._clock() + ttl
        key = hash_token(raw)
        with self._lock:
            current = self._entries.get(key)
            if current is None or current < expires_at:
                self._entries[key] = expires_at

    def contains(self, raw: str) -> bool:
        key = hash_token(raw)
        now = self._clock()
        with self._lock:
            expires_at = self._entries.get(key)
            if expires_at is None:
                return False
            if expires_at <= now:
                del self._entries[key]
                return False
            return True

    def remove(self, raw: str) -> bool:
        with self._lock:
            return self._entries.pop(hash_token(raw), None) is not None

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            return removed

    def count(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for exp in self._entries.values() if exp > now)

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [key for key, exp in self._entries.items() if exp <= now]
            for key in stale:
                del self._entries[key]
            return len(stale)
