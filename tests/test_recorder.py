import asyncio
import json

import pytest

from addon_engine.recorder import FileRequestRecorder, RedisRequestRecorder, create_request_recorder
from conftest import FakeAsyncRedis


def record(n: int) -> dict:
    return {"addon": "demo", "action": "item", "input": {"n": n}, "output": None, "statusCode": 200}


@pytest.mark.asyncio
async def test_concurrent_file_writes_are_whole_lines(tmp_path):
    recorder = FileRequestRecorder(str(tmp_path / "nested" / "log.jsonl"))

    await asyncio.gather(*(recorder.write(record(n)) for n in range(50)))

    lines = (tmp_path / "nested" / "log.jsonl").read_text(encoding="utf-8").splitlines()
    assert sorted(json.loads(line)["input"]["n"] for line in lines) == list(range(50))


@pytest.mark.asyncio
async def test_redis_recorder_keeps_last_n():
    r = FakeAsyncRedis()
    recorder = RedisRequestRecorder("redis://localhost:6379/0", r=r, keep_last=3)

    for n in range(5):
        await recorder.write(record(n))

    tail = await recorder.tail(10)
    assert [item["input"]["n"] for item in tail] == [2, 3, 4]


def test_destination_selects_backend(tmp_path):
    assert create_request_recorder("") is None
    assert isinstance(create_request_recorder(str(tmp_path / "r.jsonl")), FileRequestRecorder)
    assert isinstance(create_request_recorder("redis://localhost:6379/0"), RedisRequestRecorder)
