"""
TaskCoordinator: resumes a logical request from a "taskResponse" physical call.
Claims the TaskRecord by correlation id, records the caller's result and replays the
original envelope as the identity recorded on the first call; the final response goes
out through the current call's send_response.
Unknown, expired or already claimed ids are reported (404), never retried.
"""
from typing import Any, Awaitable, Callable, Dict, Optional

from addon_engine.errors import TaskNotFoundError, ValidationError
from addon_engine.tasks.responder import Responder, SendResponse
from addon_engine.tasks.store import TaskStore

# replay(envelope_dict, send_response, results, user) -> None
Replay = Callable[
    [Dict[str, Any], SendResponse, Dict[str, Dict[str, Any]], Optional[Dict[str, Any]]],
    Awaitable[None],
]


class TaskCoordinator:
    def __init__(self, cache: Any):
        self.store = TaskStore(cache.engine)

    async def resume(self, addon: Any, input: Dict[str, Any], send_response: SendResponse, replay: Replay) -> None:
        responder = Responder(send_response)
        task_id = str(input.get("id") or "")
        # atomic claim: one taskResponse per task id
        record = await self.store.take(task_id)
        if record is not None and record.addon != addon.get_id():
            await self.store.save(record)
            record = None
        if record is None:
            err = TaskNotFoundError(task_id)
            print(f"[tasks] {err.detail}", flush=True)
            await responder.send(err.status_code, err.to_dict())
            return
        if input.get("type") and input.get("type") != record.type:
            await self.store.save(record)
            err = ValidationError(f"Task {task_id} is a {record.type} task, got {input.get('type')}")
            await responder.send(err.status_code, err.to_dict())
            return

        outcome: Dict[str, Any] = {"type": record.type}
        if input.get("error") is not None:
            outcome["error"] = input["error"]
        else:
            outcome["result"] = input.get("result")
        results = {**record.results, str(record.seq): outcome}
        try:
            await replay(record.envelope, send_response, results, record.user)
        except Exception:
            # replay produced no outcome; the task can be answered again
            await self.store.save(record)
            print(f"[tasks] replay of {record.type} task {task_id} failed; task kept", flush=True)
            raise
