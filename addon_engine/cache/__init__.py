from addon_engine.cache.engines import CacheEngine, MemoryCache, RedisCache, detect_cache_engine
from addon_engine.cache.handler import CacheHandler
from addon_engine.cache.inline import CacheLookup, InlineSlot, LookupState

__all__ = [
    "CacheEngine",
    "CacheHandler",
    "CacheLookup",
    "InlineSlot",
    "LookupState",
    "MemoryCache",
    "RedisCache",
    "detect_cache_engine",
]
