# tests/unit/infra/test_redis_revocation_cache.py
from __future__ import annotations

import logging
from datetime import timedelta

import fakeredis
import pytest

from tokenlife.infra.redis.redis_revocation_cache import RedisRevocationCache
from tokenlife.infra.revocation import build_revocation_cache
from tokenlife.services._shared.errors import StoreUnavailableError
from tokenlife.services._shared.hashing import hash_token
from tokenlife.services._shared.ports import InMemoryRevocationCache


@pytest.fixture()
def cache(redis_client) -> RedisRevocationCache:
    return RedisRevocationCache(redis_client)


def test_add_then_contains(cache):
    cache.add("access-1", timedelta(minutes=10))

    assert cache.contains("access-1") is True
    assert cache.contains("access-2") is False


def test_entry_key_is_hashed_and_expires_with_credential(cache, redis_client):
    cache.add("access-1", timedelta(minutes=10))

    key = f"denylist:at:{hash_token('access-1')}"
    assert redis_client.exists(key) == 1
    assert 590 <= redis_client.ttl(key) <= 600
    # The raw credential never appears in a key.
    assert not list(redis_client.scan_iter(match="*access-1*"))


def test_fractional_ttl_rounds_up(cache, redis_client):
    cache.add("access-1", timedelta(milliseconds=200))

    assert redis_client.ttl(f"denylist:at:{hash_token('access-1')}") == 1


def test_non_positive_ttl_is_noop(cache):
    cache.add("access-1", timedelta(0))
    cache.add("access-2", timedelta(seconds=-5))

    assert cache.count() == 0


def test_remove_clear_and_count_only_touch_denylist_keys(cache, redis_client):
    redis_client.set("unrelated", "keep")
    cache.add("a", timedelta(minutes=1))
    cache.add("b", timedelta(minutes=1))

    assert cache.count() == 2
    assert cache.remove("a") is True
    assert cache.remove("a") is False
    assert cache.clear() == 1
    assert cache.count() == 0
    assert redis_client.get("unrelated") == b"keep"


def test_sweep_is_left_to_redis(cache):
    cache.add("a", timedelta(minutes=1))
    assert cache.sweep() == 0


def test_backend_errors_surface_as_store_unavailable():
    server = fakeredis.FakeServer()
    client = fakeredis.FakeRedis(server=server)
    cache = RedisRevocationCache(client)
    server.connected = False

    with pytest.raises(StoreUnavailableError) as excinfo:
        cache.contains("access-1")
    assert excinfo.value.store == "denylist"

    with pytest.raises(StoreUnavailableError):
        cache.add("access-1", timedelta(minutes=1))


# --------------------------- Backend selection ---------------------------- #
def test_selects_redis_when_ping_succeeds(redis_client):
    cache = build_revocation_cache("redis://unused", client=redis_client)

    assert isinstance(cache, RedisRevocationCache)
    assert cache.backend == "redis"


def test_falls_back_to_memory_without_url(caplog):
    with caplog.at_level(logging.WARNING, logger="tokenlife.infra.revocation"):
        cache = build_revocation_cache(None)

    assert isinstance(cache, InMemoryRevocationCache)
    assert "DENYLIST FALLBACK" in caplog.text


def test_falls_back_to_memory_when_ping_fails(caplog):
    server = fakeredis.FakeServer()
    server.connected = False
    client = fakeredis.FakeRedis(server=server)

    with caplog.at_level(logging.WARNING, logger="tokenlife.infra.revocation"):
        cache = build_revocation_cache("redis://unused", client=client)

    assert cache.backend == "memory"
    assert "ping failed" in caplog.text
