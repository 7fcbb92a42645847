from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

import redis.asyncio as redis
from redis.exceptions import LockNotOwnedError, RedisError

from cabinet.core.errors import BusyError, StoreError
from cabinet.core.logging import DOMAIN_STORAGE, get_domain_logger
from cabinet.core.metrics import StoreMetrics, store_metrics
from cabinet.core.settings import Settings

logger = get_domain_logger(__name__, DOMAIN_STORAGE)


class KeyValueStore(ABC):
    """String keys to opaque string values, plus named mutual exclusion.

    Values are never interpreted here; callers encode and decode JSON.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def lock(self, name: str, *, timeout: float, lease: float):
        """Async context manager holding the named lock; raises BusyError on timeout."""
        raise NotImplementedError

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, key_prefix: str = "", clock: Callable[[], float] = time.monotonic):
        self._prefix = key_prefix
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}" if self._prefix else key

    async def get(self, key: str) -> str | None:
        full = self._key(key)
        entry = self._data.get(full)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            self._data.pop(full, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        self._data[self._key(key)] = (value, expires_at)

    async def delete(self, key: str) -> None:
        self._data.pop(self._key(key), None)

    def keys(self) -> list[str]:
        """Live keys without the namespace prefix (tests and debugging)."""
        strip = len(self._prefix) + 1 if self._prefix else 0
        now = self._clock()
        return [
            full[strip:]
            for full, (_, expires_at) in self._data.items()
            if expires_at is None or expires_at > now
        ]

    @asynccontextmanager
    async def lock(self, name: str, *, timeout: float, lease: float) -> AsyncIterator[None]:
        # lease is meaningless in a single process: the holder cannot vanish without releasing.
        lock = self._locks.setdefault(name, asyncio.Lock())
        self._lock_users[name] = self._lock_users.get(name, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout)
            except asyncio.TimeoutError:
                raise BusyError() from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._lock_users[name] -= 1
            if not self._lock_users[name]:
                del self._lock_users[name]
                self._locks.pop(name, None)


class RedisKeyValueStore(KeyValueStore):
    def __init__(self, client: redis.Redis, key_prefix: str = ""):
        self._client = client
        self._prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "") -> "RedisKeyValueStore":
        return cls(redis.from_url(url, decode_responses=True), key_prefix=key_prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}" if self._prefix else key

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(self._key(key))
        except RedisError as exc:
            raise StoreError(f"redis GET failed for {key}") from exc

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        try:
            await self._client.set(self._key(key), value, ex=ttl_seconds or None)
        except RedisError as exc:
            raise StoreError(f"redis SET failed for {key}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._key(key))
        except RedisError as exc:
            raise StoreError(f"redis DEL failed for {key}") from exc

    @asynccontextmanager
    async def lock(self, name: str, *, timeout: float, lease: float) -> AsyncIterator[None]:
        lock = self._client.lock(self._key(f"lock:{name}"), timeout=lease, blocking_timeout=timeout)
        try:
            acquired = await lock.acquire()
        except RedisError as exc:
            raise StoreError(f"redis lock failed for {name}") from exc
        if not acquired:
            raise BusyError()
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockNotOwnedError:
                logger.warning("Lock lease expired before release | name=%s | lease=%.1fs", name, lease)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self._client.aclose()


class InstrumentedKeyValueStore(KeyValueStore):
    """Wraps a store to count hits, misses, sets, deletes and lock contention for /metrics/app."""

    def __init__(self, inner: KeyValueStore, metrics: StoreMetrics = store_metrics):
        self._inner = inner
        self._metrics = metrics

    @property
    def inner(self) -> KeyValueStore:
        return self._inner

    async def get(self, key: str) -> str | None:
        out = await self._inner.get(key)
        self._metrics.incr("hits" if out is not None else "misses")
        return out

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        self._metrics.incr("sets")
        await self._inner.set(key, value, ttl_seconds=ttl_seconds)

    async def delete(self, key: str) -> None:
        self._metrics.incr("deletes")
        await self._inner.delete(key)

    @asynccontextmanager
    async def lock(self, name: str, *, timeout: float, lease: float) -> AsyncIterator[None]:
        self._metrics.incr("lock_waits")
        try:
            async with self._inner.lock(name, timeout=timeout, lease=lease):
                yield
        except BusyError:
            self._metrics.incr("lock_timeouts")
            raise

    async def ping(self) -> bool:
        return await self._inner.ping()

    async def close(self) -> None:
        await self._inner.close()


def build_kv_store(config: Settings) -> KeyValueStore:
    backend = config.kv_backend.strip().lower()
    if backend == "redis":
        inner: KeyValueStore = RedisKeyValueStore.from_url(config.redis_url, key_prefix=config.kv_key_prefix)
    elif backend == "memory":
        inner = InMemoryKeyValueStore(key_prefix=config.kv_key_prefix)
    else:
        raise ValueError(f"Unsupported kv_backend: {config.kv_backend}")
    logger.info("Key-value store ready | backend=%s | prefix=%s", backend, config.kv_key_prefix)
    return InstrumentedKeyValueStore(inner)
