"""
Addon engine: request dispatch for addon-hosting servers.
"""
from addon_engine.actions.dispatcher import ActionDispatcher
from addon_engine.actions.pipeline import Middleware, Middlewares
from addon_engine.actions.protocol import RequestEnvelope
from addon_engine.addon import Addon
from addon_engine.cache import CacheHandler, MemoryCache, RedisCache
from addon_engine.engine import Engine, EngineState, create_engine
from addon_engine.errors import (
    ConfigurationError,
    EngineError,
    NothingFoundError,
    TaskError,
    ValidationError,
)
from addon_engine.router import RequestRouter
from addon_engine.signature import HmacSignatureVerifier

__version__ = "0.1.0"

__all__ = [
    "ActionDispatcher",
    "Addon",
    "CacheHandler",
    "ConfigurationError",
    "Engine",
    "EngineError",
    "EngineState",
    "HmacSignatureVerifier",
    "MemoryCache",
    "Middleware",
    "Middlewares",
    "NothingFoundError",
    "RedisCache",
    "RequestEnvelope",
    "RequestRouter",
    "TaskError",
    "ValidationError",
    "create_engine",
]
