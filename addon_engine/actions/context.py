"""
Handler context for one request. Exposes cache, transport metadata, the authenticated
user, the one-shot request cache and the four task capabilities.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from addon_engine.cache.handler import CacheHandler
from addon_engine.cache.inline import InlineSlot
from addon_engine.errors import CacheFoundSignal, ConfigurationError
from addon_engine.signature import AuthUser


@dataclass
class ActionContext:
    """
    fetch, recaptcha, toast and notification may finish the current physical call and
    re-run the handler from the start once the caller answers; earlier capability calls
    then return their recorded results. Handlers must make the same capability calls in
    the same order on every run, and keep side effects after the last one.
    """

    cache: CacheHandler
    request: Dict[str, Any]
    user: Optional[AuthUser]
    fetch: Callable[..., Any]
    recaptcha: Callable[..., Any]
    toast: Callable[..., Any]
    notification: Callable[..., Any]
    inline_slot: Optional[InlineSlot] = None

    async def request_cache(self, key: Any, options: Optional[Dict[str, Any]] = None) -> None:
        """
        Open the request's inline cache slot. At most once per request.
        When the key is already resolved the handler is unwound with CacheFoundSignal.
        """
        if self.inline_slot is not None:
            raise ConfigurationError("Request cache is already set up")
        slot = await self.cache.clone(options).inline(key)
        self.inline_slot = slot
        if slot.lookup is not None and slot.lookup.found:
            raise CacheFoundSignal(slot.lookup)
