"""
Cache-persisted task records. A record is everything needed to resume a logical request
from an unrelated physical call: the original envelope, the identity it was authenticated
as, and the results collected so far.
"""
import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

TASK_TTL_SEC = 3600


def _jsonable(x: Any) -> Any:
    return json.loads(json.dumps(x, ensure_ascii=False, default=str))


@dataclass
class TaskRecord:
    id: str
    type: str
    seq: int
    addon: str
    params: Dict[str, Any] = field(default_factory=dict)
    envelope: Dict[str, Any] = field(default_factory=dict)
    # str(seq) -> {"type", "result"} | {"type", "error"}
    results: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    # user of the first physical call; resuming does not re-authenticate
    user: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TaskRecord":
        return cls(
            id=str(d.get("id") or ""),
            type=str(d.get("type") or ""),
            seq=int(d.get("seq") or 0),
            addon=str(d.get("addon") or ""),
            params=d.get("params") or {},
            envelope=d.get("envelope") or {},
            results=d.get("results") or {},
            user=d.get("user"),
        )


class TaskStore:
    def __init__(self, engine: Any, ttl: float = TASK_TTL_SEC):
        self.engine = engine
        self.ttl = ttl

    @staticmethod
    def _key(task_id: str) -> str:
        return f"task:{task_id}"

    async def save(self, record: TaskRecord) -> None:
        await self.engine.set(self._key(record.id), _jsonable(asdict(record)), ttl=self.ttl)

    async def load(self, task_id: str) -> Optional[TaskRecord]:
        if not task_id:
            return None
        d = await self.engine.get(self._key(task_id))
        return TaskRecord.from_dict(d) if d else None

    async def take(self, task_id: str) -> Optional[TaskRecord]:
        """Claim a record for resumption. Concurrent takes of one id: exactly one wins."""
        if not task_id:
            return None
        d = await self.engine.take(self._key(task_id))
        return TaskRecord.from_dict(d) if d else None

    async def delete(self, task_id: str) -> None:
        await self.engine.delete(self._key(task_id))
