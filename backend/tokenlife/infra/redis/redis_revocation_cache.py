from __future__ import annotations

import math
from datetime import timedelta
from typing import cast

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from tokenlife.services._shared.errors import StoreUnavailableError
from tokenlife.services._shared.hashing import hash_token
from tokenlife.services._shared.ports import RevocationCache


class RedisRevocationCache(RevocationCache):
    """
    Shared denylist for **access** credentials.

    Each entry is a ``SET key 1 EX ttl`` marker, so Redis evicts it when the
    credential would have expired anyway. Visible to every service instance.
    """

    backend = "redis"
    KEY_PREFIX = "denylist:at:"

    def __init__(self, r: redis.Redis):
        self.r = r

    def _k(self, raw: str) -> str:
        return f"{self.KEY_PREFIX}{hash_token(raw)}"

    @staticmethod
    def _ttl_seconds(ttl: timedelta) -> int:
        # EX only takes whole seconds; round up so the entry never expires early
        return max(1, math.ceil(ttl.total_seconds()))

    def add(self, raw: str, ttl: timedelta) -> None:
        if ttl <= timedelta(0):
            return
        try:
            self.r.set(self._k(raw), "1", ex=self._ttl_seconds(ttl))
        except RedisError as exc:
            raise StoreUnavailableError("denylist") from exc

    def contains(self, raw: str) -> bool:
        try:
            return cast(int, self.r.exists(self._k(raw))) == 1
        except RedisError as exc:
            raise StoreUnavailableError("denylist") from exc

    def remove(self, raw: str) -> bool:
        try:
            return cast(int, self.r.delete(self._k(raw))) == 1
        except RedisError as exc:
            raise StoreUnavailableError("denylist") from exc

    def _keys(self) -> list[bytes]:
        return list(self.r.scan_iter(match=f"{self.KEY_PREFIX}*", count=500))

    def clear(self) -> int:
        try:
            keys = self._keys()
            if not keys:
                return 0
            return int(self.r.delete(*keys))
        except RedisError as exc:
            raise StoreUnavailableError("denylist") from exc

    def count(self) -> int:
        try:
            return len(self._keys())
        except RedisError as exc:
            raise StoreUnavailableError("denylist") from exc

    def sweep(self) -> int:
        # Redis expires keys natively.
        return 0
