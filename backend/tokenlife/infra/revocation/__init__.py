"""Startup selection of the access-credential denylist backend."""

from __future__ import annotations

import logging

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from tokenlife.infra.redis.redis_revocation_cache import RedisRevocationCache
from tokenlife.services._shared.clock import Clock, system_clock
from tokenlife.services._shared.ports import InMemoryRevocationCache, RevocationCache

log = logging.getLogger(__name__)

_FALLBACK_BANNER = (
    "DENYLIST FALLBACK: using the in-process revocation cache (%s). Logged-out access "
    "credentials are only denied on this instance and are forgotten on restart."
)


def build_revocation_cache(
    redis_url: str | None,
    *,
    socket_timeout: float = 2,
    clock: Clock = system_clock,
    client: redis.Redis | None = None,
) -> RevocationCache:
    """Probe the shared backend once and return the cache to use for the process lifetime.

    Parameters
    ----------
    redis_url: str | None
        Connection URL. ``None`` or empty selects the in-process cache.
    socket_timeout: float
        Connect and command deadline in seconds.
    clock: Clock
        Time source for the in-process fallback.
    client: redis.Redis | None
        Pre-built client; tests pass a ``fakeredis`` instance here.

    Returns
    -------
    RevocationCache
        :class:`RedisRevocationCache` when ``PING`` succeeds, otherwise
        :class:`InMemoryRevocationCache`.
    """
    if client is None and not redis_url:
        log.warning(_FALLBACK_BANNER, "REDIS_URL not set", extra={"backend": "memory"})
        return InMemoryRevocationCache(clock=clock)

    if client is None:
        client = redis.Redis.from_url(
            redis_url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
    try:
        client.ping()
    except RedisError as exc:
        log.warning(_FALLBACK_BANNER, f"ping failed: {exc}", extra={"backend": "memory"})
        return InMemoryRevocationCache(clock=clock)

    log.info("Denylist backend: redis", extra={"backend": "redis"})
    return RedisRevocationCache(client)


__all__ = ["build_revocation_cache"]
