"""
Key-value stores with per-key expiry.

Two implementations share one async interface (get / set / delete):

- RedisStateStore: production store, values written with SET ... EX
- InMemoryStateStore: single-process store for local runs and tests

Values are strings; callers own serialization.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class RedisStateStore:
    """Redis-backed store using native key expiry."""

    def __init__(self, client: "redis.Redis"):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStateStore":
        return cls(redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> Optional[str]:
        value = await self.client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.client.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def aclose(self) -> None:
        await self.client.aclose()


class InMemoryStateStore:
    """
    In-process store with lazy expiry on read.

    Not shared across workers; suitable for a single event loop.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        # key -> (value, expires_at)
        self._items: Dict[str, Tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at <= self._clock():
                del self._items[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        async with self._lock:
            self._items[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._items.pop(key, None)

    async def aclose(self) -> None:
        self._items.clear()


def create_state_store(redis_url: Optional[str] = None) -> StateStore:
    """Redis when a URL is configured, otherwise the in-memory store."""
    if redis_url:
        logger.info("Using Redis state store")
        return RedisStateStore.from_url(redis_url)
    logger.warning("REDIS_URL not set, using in-memory state store (single worker only)")
    return InMemoryStateStore()
