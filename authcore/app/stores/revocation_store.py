"""
stores/revocation_store.py — Expiring key-value store for revoked token identities.

Contract (RevocationStore protocol):
  set(key, value, ttl_seconds)  store with expiry; overwrites an existing key
  get(key) -> bool | None       None when the key is absent or expired
  exists(key) -> bool

Entries expire on their own: the store's TTL eviction is the only cleanup.
A revocation entry is written with TTL = the token's remaining lifetime, so
it never outlives the token it blacklists.

Failures of the underlying store (connection refused, timeout) are raised as
RevocationStoreError. They are never swallowed here; SessionService turns
them into REVOCATION_STORE_UNAVAILABLE so callers can retry.

Backends:
  RedisRevocationStore      production; SET key value EX ttl
  InMemoryRevocationStore   tests and single-process development
"""

from __future__ import annotations

import threading
import time
from typing import Protocol

import redis

BLACKLIST_PREFIX = "blacklist:"


def blacklist_key(identity: str) -> str:
    return f"{BLACKLIST_PREFIX}{identity}"


class RevocationStoreError(Exception):
    """The backing store could not be reached or returned an error."""


class RevocationStore(Protocol):

    def set(self, key: str, value: bool, ttl_seconds: int) -> None: ...

    def get(self, key: str) -> bool | None: ...

    def exists(self, key: str) -> bool: ...


def _require_positive_ttl(ttl_seconds: int) -> None:
    # Redis rejects EX 0 / negative values; an entry for an already-expired
    # token has nothing left to protect.
    if ttl_seconds <= 0:
        raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")


class RedisRevocationStore:
    """Thin redis-py wrapper. Values are stored as "1" / "0"."""

    def __init__(self, client: redis.Redis) -> None:
        self.client = client

    @classmethod
    def from_url(cls, redis_url: str, *, socket_timeout: float = 5.0) -> "RedisRevocationStore":
        client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def set(self, key: str, value: bool, ttl_seconds: int) -> None:
        _require_positive_ttl(ttl_seconds)
        try:
            self.client.set(key, "1" if value else "0", ex=int(ttl_seconds))
        except redis.RedisError as exc:
            raise RevocationStoreError(str(exc)) from exc

    def get(self, key: str) -> bool | None:
        try:
            raw = self.client.get(key)
        except redis.RedisError as exc:
            raise RevocationStoreError(str(exc)) from exc
        if raw is None:
            return None
        return raw == "1"

    def exists(self, key: str) -> bool:
        try:
            return bool(self.client.exists(key))
        except redis.RedisError as exc:
            raise RevocationStoreError(str(exc)) from exc

    def verify_connection(self) -> None:
        """Raises RevocationStoreError if Redis does not answer PING."""
        try:
            self.client.ping()
        except redis.RedisError as exc:
            raise RevocationStoreError(str(exc)) from exc

    def close(self) -> None:
        self.client.close()


class InMemoryRevocationStore:
    """
    Process-local store with the same expiry semantics as Redis.

    Not shared between processes or workers, so it is refused in production
    (validate_production_config). `clock` is injectable for tests.
    """

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[bool, float]] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: bool, ttl_seconds: int) -> None:
        _require_positive_ttl(ttl_seconds)
        with self._lock:
            now = self._clock()
            # Revoked tokens are rarely read again, so expiry cannot rely on get().
            self._purge_expired(now)
            self._entries[key] = (bool(value), now + ttl_seconds)

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for k in expired:
            del self._entries[k]

    def get(self, key: str) -> bool | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for _, expires_at in self._entries.values() if expires_at > now)
