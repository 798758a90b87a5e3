"""
CacheHandler: scoped, cloneable facade over a CacheEngine.
clone() derives an independent handler with merged options on the same backing store.
"""
from typing import Any, Dict, Optional

from addon_engine.cache.engines import CacheEngine
from addon_engine.cache.inline import InlineSlot
from addon_engine.cache.keys import build_key

DEFAULT_OPTIONS: Dict[str, Any] = {
    "prefix": None,
    "ttl": 3600,
    "error_ttl": 60,
    "refresh_interval": None,
    "pending_ttl": 30,
}


class CacheHandler:
    def __init__(
        self,
        engine: CacheEngine,
        options: Optional[Dict[str, Any]] = None,
        inline_timeout: float = 30.0,
        inline_poll: float = 0.05,
    ):
        self.engine = engine
        self.options: Dict[str, Any] = {**DEFAULT_OPTIONS, **(options or {})}
        self.inline_timeout = inline_timeout
        self.inline_poll = inline_poll

    def clone(self, options: Optional[Dict[str, Any]] = None) -> "CacheHandler":
        """New handler on the same engine. A prefix given here nests under the current one."""
        opts = dict(options or {})
        if opts.get("prefix") and self.options.get("prefix"):
            opts["prefix"] = f"{self.options['prefix']}:{opts['prefix']}"
        return CacheHandler(
            self.engine,
            {**self.options, **opts},
            inline_timeout=self.inline_timeout,
            inline_poll=self.inline_poll,
        )

    def key(self, key: Any) -> str:
        return build_key(key, self.options.get("prefix"))

    async def get(self, key: Any, default: Any = None) -> Any:
        entry = await self.engine.get(self.key(key))
        if entry is None:
            return default
        return entry.get("value", default)

    async def set(self, key: Any, value: Any, ttl: Optional[float] = None) -> None:
        await self.engine.set(self.key(key), {"value": value}, ttl=ttl if ttl is not None else self.options.get("ttl"))

    async def delete(self, key: Any) -> None:
        await self.engine.delete(self.key(key))

    async def inline(self, key: Any) -> InlineSlot:
        """Open a single-flight slot; slot.lookup holds the tagged state."""
        slot = InlineSlot(
            self.engine,
            self.key(key),
            self.options,
            timeout=self.inline_timeout,
            poll=self.inline_poll,
        )
        await slot.open()
        return slot
