"""
Request recorder side-channel. One record per delivered response.
Destination: a filesystem path (JSON lines) or a redis:// URL (Redis list, last N kept).
Writes must be safe under concurrent requests.
"""
import asyncio
import json
import os
from typing import Any, Optional, TypedDict


class RecordData(TypedDict):
    addon: str
    action: str
    input: Any  # snapshot taken before migration and middleware
    output: Any
    statusCode: int


class RequestRecorder:
    path: str = ""

    async def write(self, record: RecordData) -> None:
        raise NotImplementedError


class FileRequestRecorder(RequestRecorder):
    """Append-only JSON lines file. Appends are serialized by an asyncio lock."""

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self._lock = asyncio.Lock()
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)

    async def write(self, record: RecordData) -> None:
        line = json.dumps(record, ensure_ascii=False, default=str)
        async with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")


class RedisRequestRecorder(RequestRecorder):
    """
    Append-only record log stored in a Redis list.
    Key: addon-engine:requests. Each item: JSON string of RecordData.
    """

    def __init__(self, url: str, r: Any = None, key: str = "addon-engine:requests", keep_last: int = 2000):
        if r is None:
            import redis.asyncio as redis_asyncio

            # decode_responses=True -> returns str, and accepts str
            r = redis_asyncio.Redis.from_url(url, decode_responses=True)
        self.r = r
        self.path = url
        self.key = key
        self.keep_last = keep_last

    async def write(self, record: RecordData) -> None:
        await self.r.rpush(self.key, json.dumps(record, ensure_ascii=False, default=str))
        # keep last N
        await self.r.ltrim(self.key, -self.keep_last, -1)

    async def tail(self, n: int = 50) -> list:
        items = await self.r.lrange(self.key, -n, -1)
        out = []
        for s in items:
            try:
                out.append(json.loads(s))
            except ValueError:
                out.append({"raw": s})
        return out


def create_request_recorder(destination: str) -> Optional[RequestRecorder]:
    if not destination:
        return None
    if destination.startswith(("redis://", "rediss://", "unix://")):
        return RedisRequestRecorder(destination)
    return FileRequestRecorder(destination)
