"""
Single-flight inline cache slot.

A slot moves Miss -> Pending -> Hit(value) | Failed(error). The pending marker is
written with an atomic set-if-absent, so only one caller per key computes; every
other caller waits until the outcome is stored and receives it as a tagged lookup.
"""
import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from addon_engine.errors import CacheWaitTimeout

_NO_VALUE = object()


class LookupState(str, Enum):
    MISS = "miss"
    HIT = "hit"
    FAILED = "failed"


@dataclass
class CacheLookup:
    state: LookupState
    value: Any = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.state is not LookupState.MISS


class InlineSlot:
    """One inline key. Only the caller that saw MISS owns the slot and may store into it."""

    def __init__(
        self,
        engine: Any,
        key: str,
        options: Dict[str, Any],
        timeout: float = 30.0,
        poll: float = 0.05,
    ):
        self.engine = engine
        self.key = key
        self.pending_key = f"{key}:pending"
        self.options = options
        self.timeout = timeout
        self.poll = poll
        self.lookup: Optional[CacheLookup] = None
        self._owner = False
        self._stale: Any = _NO_VALUE

    def _is_stale(self, entry: Dict[str, Any]) -> bool:
        interval = self.options.get("refresh_interval")
        if not interval:
            return False
        return time.time() - float(entry.get("ts") or 0) >= float(interval)

    async def open(self) -> CacheLookup:
        """Resolve the current state of the key, waiting while another caller computes it."""
        deadline = time.monotonic() + self.timeout
        while True:
            entry = await self.engine.get(self.key)
            stale: Any = _NO_VALUE
            if entry is not None:
                if entry.get("state") == LookupState.FAILED.value:
                    self.lookup = CacheLookup(LookupState.FAILED, error=entry.get("error"))
                    return self.lookup
                if not self._is_stale(entry):
                    self.lookup = CacheLookup(LookupState.HIT, value=entry.get("value"))
                    return self.lookup
                stale = entry.get("value")

            claimed = await self.engine.add(self.pending_key, 1, ttl=self.options.get("pending_ttl", 30))
            if claimed:
                self._owner = True
                self._stale = stale
                self.lookup = CacheLookup(LookupState.MISS)
                return self.lookup

            if time.monotonic() >= deadline:
                print(f"[cache] gave up waiting for {self.key} after {self.timeout}s", flush=True)
                raise CacheWaitTimeout(self.key)
            await asyncio.sleep(self.poll)

    @property
    def owner(self) -> bool:
        return self._owner

    async def set(self, value: Any) -> None:
        if not self._owner:
            return
        entry = {"state": LookupState.HIT.value, "value": value, "ts": time.time()}
        await self.engine.set(self.key, entry, ttl=self.options.get("ttl"))
        await self.release()

    async def set_error(self, error: BaseException) -> Any:
        """
        Store a failure. Returns the stale value when an older success exists
        (refresh mode keeps serving it), otherwise the error itself.
        """
        if not self._owner:
            return error
        if self._stale is not _NO_VALUE:
            stale = self._stale
            await self.release()
            return stale
        error_ttl = self.options.get("error_ttl", 60)
        if error_ttl and error_ttl > 0:
            message = getattr(error, "detail", None) or str(error) or type(error).__name__
            entry = {"state": LookupState.FAILED.value, "error": message, "ts": time.time()}
            await self.engine.set(self.key, entry, ttl=error_ttl)
        await self.release()
        return error

    async def release(self) -> None:
        """Drop the pending marker without storing an outcome."""
        if self._owner:
            await self.engine.delete(self.pending_key)
            self._owner = False
