from __future__ import annotations

import asyncio
import heapq
import json
import time
from typing import Any, Callable, Optional, Protocol, runtime_checkable

# Optional dependency: redis>=5 provides asyncio support under redis.asyncio
try:
    from redis import asyncio as redis
except ImportError:  # pragma: no cover - optional import
    redis = None  # type: ignore


@runtime_checkable
class ExpiringStore(Protocol):
    """Shared key-value store whose entries vanish after a TTL."""

    async def set(self, key: str, value: dict[str, Any], ttl: int) -> None: ...

    async def get(self, key: str) -> Optional[dict[str, Any]]: ...

    async def pop(self, key: str) -> Optional[dict[str, Any]]:
        """Atomically read and delete ``key``; ``None`` when absent or expired."""
        ...

    async def delete(self, key: str) -> None: ...


class InMemoryExpiringStore:
    """Process-local store with an injectable monotonic clock.

    ``pop`` holds a per-key lock so two concurrent consumers of the same key
    can never both observe the value. Expired entries are evicted on every
    ``set`` from a heap ordered by expiry, so unredeemed keys do not pile up.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: dict[str, tuple[dict[str, Any], float]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._expiries: list[tuple[float, str]] = []

    def _live(self, key: str) -> Optional[dict[str, Any]]:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._clock() >= expires_at:
            self._data.pop(key, None)
            return None
        return value

    def _evict_expired(self) -> None:
        now = self._clock()
        while self._expiries and self._expiries[0][0] <= now:
            expires_at, key = heapq.heappop(self._expiries)
            item = self._data.get(key)
            # a re-set key carries a newer expiry; leave it alone
            if item is not None and item[1] == expires_at:
                del self._data[key]

    async def set(self, key: str, value: dict[str, Any], ttl: int) -> None:
        self._evict_expired()
        expires_at = self._clock() + ttl
        self._data[key] = (dict(value), expires_at)
        heapq.heappush(self._expiries, (expires_at, key))

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        value = self._live(key)
        return dict(value) if value is not None else None

    async def pop(self, key: str) -> Optional[dict[str, Any]]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        try:
            async with lock:
                value = self._live(key)
                if value is None:
                    return None
                del self._data[key]
                return value
        finally:
            if key not in self._data:
                self._locks.pop(key, None)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return sum(1 for k in list(self._data) if self._live(k) is not None)


class RedisExpiringStore:
    """Redis-backed store; ``pop`` uses GETDEL (Redis >= 6.2) for single use."""

    def __init__(self, client: "redis.Redis", namespace: str = ""):
        self._r = client
        self._ns = (namespace + ":") if namespace else ""

    @classmethod
    def from_url(cls, url: str, namespace: str = "") -> "RedisExpiringStore":
        if redis is None:  # pragma: no cover
            raise RuntimeError("redis package not installed. Install 'redis>=5' to use RedisExpiringStore.")
        return cls(redis.from_url(url, decode_responses=True), namespace)

    def _k(self, key: str) -> str:
        return self._ns + key

    async def set(self, key: str, value: dict[str, Any], ttl: int) -> None:
        await self._r.set(self._k(key), json.dumps(value), ex=ttl)

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        val = await self._r.get(self._k(key))
        return json.loads(val) if val else None

    async def pop(self, key: str) -> Optional[dict[str, Any]]:
        val = await self._r.getdel(self._k(key))
        return json.loads(val) if val else None

    async def delete(self, key: str) -> None:
        await self._r.delete(self._k(key))
