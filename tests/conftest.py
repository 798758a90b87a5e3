from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from addon_engine.actions.protocol import RequestEnvelope
from addon_engine.cache.engines import MemoryCache
from addon_engine.cache.handler import CacheHandler
from addon_engine.engine import Engine, create_engine
from addon_engine.recorder import RecordData, RequestRecorder
from addon_engine.settings import EngineSettings
from addon_engine.signature import HmacSignatureVerifier, now_ms

SECRET = "test-secret"


class Capture:
    """send_response stand-in that keeps every delivery."""

    def __init__(self) -> None:
        self.calls: List[Tuple[int, Any]] = []

    async def __call__(self, status_code: int, body: Any) -> None:
        self.calls.append((status_code, body))

    @property
    def last(self) -> Tuple[int, Any]:
        return self.calls[-1]


class ListRecorder(RequestRecorder):
    path = "memory"

    def __init__(self) -> None:
        self.records: List[RecordData] = []

    async def write(self, record: RecordData) -> None:
        self.records.append(record)


class FakeAsyncRedis:
    """Just enough of redis.asyncio.Redis for the cache engine and recorder."""

    def __init__(self) -> None:
        self.kv: Dict[str, str] = {}
        self.ex: Dict[str, Optional[int]] = {}
        self.lists: Dict[str, List[str]] = {}

    async def get(self, key: str) -> Optional[str]:
        # yield like a real network round trip
        await asyncio.sleep(0)
        return self.kv.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None, nx: bool = False) -> Optional[bool]:
        if nx and key in self.kv:
            return None
        self.kv[key] = value
        self.ex[key] = ex
        return True

    async def getdel(self, key: str) -> Optional[str]:
        await asyncio.sleep(0)
        self.ex.pop(key, None)
        return self.kv.pop(key, None)

    async def delete(self, key: str) -> int:
        return 1 if self.kv.pop(key, None) is not None else 0

    async def rpush(self, key: str, value: str) -> int:
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    async def ltrim(self, key: str, start: int, end: int) -> bool:
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        self.lists[key] = items[start:stop]
        return True

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        return items[start:stop]


@pytest.fixture
def capture() -> Capture:
    return Capture()


@pytest.fixture
def cache() -> CacheHandler:
    return CacheHandler(MemoryCache(), inline_timeout=2.0, inline_poll=0.01)


@pytest.fixture
def verifier() -> HmacSignatureVerifier:
    return HmacSignatureVerifier(SECRET)


@pytest.fixture
def make_engine(cache: CacheHandler, verifier: HmacSignatureVerifier) -> Callable[..., Engine]:
    def _make_engine(addons: List[Any], settings: Optional[EngineSettings] = None, **options: Any) -> Engine:
        options.setdefault("cache", cache)
        options.setdefault("verifier", verifier)
        return create_engine(addons, settings=settings or EngineSettings(), **options)

    return _make_engine


@pytest.fixture
def valid_sig(verifier: HmacSignatureVerifier) -> Callable[..., str]:
    def _valid_sig(**overrides: Any) -> str:
        ts = now_ms()
        payload = {
            "time": ts,
            "validUntil": ts + 60_000,
            "user": "alice",
            "status": "user",
            "verified": True,
            "ips": ["10.0.0.1"],
            "app": {"name": "app", "version": "2.0.0", "platform": "web", "ok": True},
        }
        payload.update(overrides)
        return verifier.sign(payload)

    return _valid_sig


def envelope(action: str, input: Any, send_response: Any, sig: str = "", request: Optional[Dict[str, Any]] = None) -> RequestEnvelope:
    return RequestEnvelope(action=action, input=input, sig=sig, request=request or {}, send_response=send_response)
