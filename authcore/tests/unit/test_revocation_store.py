"""
Unit tests for the revocation store backends.

InMemoryRevocationStore is driven by a fake clock. RedisRevocationStore is
tested against a MagicMock redis client: the wire commands issued and the
translation of redis errors into RevocationStoreError.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import redis

from authcore.app.stores.revocation_store import (
    InMemoryRevocationStore,
    RedisRevocationStore,
    RevocationStoreError,
    blacklist_key,
)


class FakeClock:

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_blacklist_key_format():
    assert blacklist_key("abc123") == "blacklist:abc123"


# ═══════════════════════════════════════════════════════════════════════════
# InMemoryRevocationStore
# ═══════════════════════════════════════════════════════════════════════════

class TestInMemoryRevocationStore:

    def test_get_missing_key_returns_none(self):
        assert InMemoryRevocationStore().get("blacklist:nope") is None

    def test_set_then_get_returns_value(self):
        store = InMemoryRevocationStore(clock=FakeClock())
        store.set("blacklist:a", True, 60)
        assert store.get("blacklist:a") is True
        assert store.exists("blacklist:a") is True

    def test_entry_disappears_after_ttl(self):
        clock = FakeClock()
        store = InMemoryRevocationStore(clock=clock)
        store.set("blacklist:a", True, 60)

        clock.advance(59)
        assert store.exists("blacklist:a")

        clock.advance(1)
        assert store.get("blacklist:a") is None
        assert store.exists("blacklist:a") is False
        assert len(store) == 0

    def test_set_overwrites_value_and_ttl(self):
        clock = FakeClock()
        store = InMemoryRevocationStore(clock=clock)
        store.set("k", True, 10)
        store.set("k", False, 100)

        clock.advance(50)
        assert store.get("k") is False

    @pytest.mark.parametrize("ttl", [0, -5])
    def test_non_positive_ttl_is_rejected(self, ttl):
        store = InMemoryRevocationStore()
        with pytest.raises(ValueError):
            store.set("k", True, ttl)
        assert store.get("k") is None

    def test_set_sweeps_expired_entries(self):
        clock = FakeClock()
        store = InMemoryRevocationStore(clock=clock)
        store.set("blacklist:old", True, 10)
        clock.advance(11)

        store.set("blacklist:new", True, 10)

        assert "blacklist:old" not in store._entries
        assert store.get("blacklist:new") is True

    def test_clear_removes_everything(self):
        store = InMemoryRevocationStore(clock=FakeClock())
        store.set("a", True, 10)
        store.set("b", True, 10)
        store.clear()
        assert len(store) == 0


# ═══════════════════════════════════════════════════════════════════════════
# RedisRevocationStore
# ═══════════════════════════════════════════════════════════════════════════

class TestRedisRevocationStore:

    def test_set_issues_set_with_expiry(self):
        client = MagicMock()
        RedisRevocationStore(client).set("blacklist:a", True, 42)
        client.set.assert_called_once_with("blacklist:a", "1", ex=42)

    def test_set_false_is_stored_as_zero(self):
        client = MagicMock()
        RedisRevocationStore(client).set("k", False, 5)
        client.set.assert_called_once_with("k", "0", ex=5)

    def test_set_rejects_non_positive_ttl_without_calling_redis(self):
        client = MagicMock()
        with pytest.raises(ValueError):
            RedisRevocationStore(client).set("k", True, 0)
        client.set.assert_not_called()

    @pytest.mark.parametrize("raw, expected", [("1", True), ("0", False), (None, None)])
    def test_get_decodes_stored_value(self, raw, expected):
        client = MagicMock()
        client.get.return_value = raw
        assert RedisRevocationStore(client).get("k") is expected

    def test_exists(self):
        client = MagicMock()
        client.exists.return_value = 1
        assert RedisRevocationStore(client).exists("k") is True
        client.exists.return_value = 0
        assert RedisRevocationStore(client).exists("k") is False

    @pytest.mark.parametrize("method, args", [
        ("set", ("k", True, 10)),
        ("get", ("k",)),
        ("exists", ("k",)),
    ])
    def test_redis_errors_propagate_as_revocation_store_error(self, method, args):
        client = MagicMock()
        getattr(client, method).side_effect = redis.ConnectionError("connection refused")

        with pytest.raises(RevocationStoreError):
            getattr(RedisRevocationStore(client), method)(*args)

    def test_timeouts_propagate_as_revocation_store_error(self):
        client = MagicMock()
        client.get.side_effect = redis.TimeoutError("timed out")
        with pytest.raises(RevocationStoreError):
            RedisRevocationStore(client).get("k")

    def test_verify_connection_pings(self):
        client = MagicMock()
        RedisRevocationStore(client).verify_connection()
        client.ping.assert_called_once_with()

    def test_verify_connection_failure(self):
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("down")
        with pytest.raises(RevocationStoreError):
            RedisRevocationStore(client).verify_connection()

    def test_from_url_builds_client_without_connecting(self):
        # redis-py connects lazily; constructing the store must not need a server.
        store = RedisRevocationStore.from_url("redis://localhost:6399/0", socket_timeout=0.5)
        assert isinstance(store.client, redis.Redis)
        store.close()
