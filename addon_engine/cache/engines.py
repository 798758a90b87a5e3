"""
Cache storage engines: in-process memory and Redis.
Values are JSON documents; every engine stores a serialized copy so callers never share state.
Eviction and persistence belong to the engine, not to the handler layer above it.
"""
import json
import time
from typing import Any, Dict, Optional, Tuple


class CacheEngine:
    """Storage protocol used by CacheHandler. ttl is in seconds; None = no expiry."""

    async def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        raise NotImplementedError

    async def add(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        """Set only if absent. Returns True when the key was written."""
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def take(self, key: str) -> Optional[Any]:
        """Read and delete in one step. Only one concurrent caller gets the value."""
        raise NotImplementedError


class MemoryCache(CacheEngine):
    """Process-local engine. Expired entries are dropped lazily on access."""

    def __init__(self) -> None:
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def _live(self, key: str) -> Optional[str]:
        item = self._data.get(key)
        if item is None:
            return None
        raw, expires_at = item
        if expires_at is not None and time.time() >= expires_at:
            self._data.pop(key, None)
            return None
        return raw

    async def get(self, key: str) -> Optional[Any]:
        raw = self._live(key)
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        expires_at = time.time() + ttl if ttl else None
        self._data[key] = (json.dumps(value, ensure_ascii=False), expires_at)

    async def add(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        # no await between check and write: atomic under asyncio
        if self._live(key) is not None:
            return False
        expires_at = time.time() + ttl if ttl else None
        self._data[key] = (json.dumps(value, ensure_ascii=False), expires_at)
        return True

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def take(self, key: str) -> Optional[Any]:
        raw = self._live(key)
        self._data.pop(key, None)
        return None if raw is None else json.loads(raw)


class RedisCache(CacheEngine):
    """
    Redis engine (redis-py asyncio client, decode_responses=True).
    add() maps to SET NX so the pending marker is atomic across processes.
    """

    def __init__(self, r: Any = None, url: Optional[str] = None, prefix: str = "addon-engine:cache:"):
        if r is None:
            import redis.asyncio as redis_asyncio

            r = redis_asyncio.Redis.from_url(url or "redis://localhost:6379/0", decode_responses=True)
        self.r = r
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    @staticmethod
    def _ex(ttl: Optional[float]) -> Optional[int]:
        if not ttl:
            return None
        return max(1, int(round(ttl)))

    async def get(self, key: str) -> Optional[Any]:
        raw = await self.r.get(self._key(key))
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        await self.r.set(self._key(key), json.dumps(value, ensure_ascii=False), ex=self._ex(ttl))

    async def add(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        ok = await self.r.set(self._key(key), json.dumps(value, ensure_ascii=False), ex=self._ex(ttl), nx=True)
        return bool(ok)

    async def delete(self, key: str) -> None:
        await self.r.delete(self._key(key))

    async def take(self, key: str) -> Optional[Any]:
        # GETDEL (Redis >= 6.2)
        raw = await self.r.getdel(self._key(key))
        return None if raw is None else json.loads(raw)


def detect_cache_engine(redis_url: Optional[str] = None) -> CacheEngine:
    """Redis when REDIS_URL is configured, memory otherwise."""
    if redis_url:
        return RedisCache(url=redis_url)
    return MemoryCache()
