"""
Engine options. Mutable while the engine is Building, read-only once Frozen.
"""
from dataclasses import dataclass, field, fields
from typing import Any, Optional

from addon_engine.actions.pipeline import Middlewares
from addon_engine.cache.handler import CacheHandler


@dataclass
class EngineOptions:
    cache: Optional[CacheHandler] = None
    middlewares: Middlewares = field(default_factory=Middlewares)
    test_mode: bool = False
    request_recorder_path: Optional[str] = None
    skip_auth: bool = False
    production: bool = False
    verifier: Any = None

    @classmethod
    def names(cls) -> frozenset:
        return frozenset(f.name for f in fields(cls))
