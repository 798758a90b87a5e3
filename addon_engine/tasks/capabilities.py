"""
Task capabilities exposed on the handler context: fetch, recaptcha, toast, notification.

Test mode returns stubs without side effects. Live mode completes synchronously when the
result of this call is already known (replay after a task response); otherwise it persists
a TaskRecord, delivers {"kind": "task", ...} through the responder and raises TaskPending.
"""
import uuid
from typing import Any, Callable, Dict, Optional

from addon_engine.errors import TaskError, TaskPending
from addon_engine.tasks.responder import Responder
from addon_engine.tasks.store import TaskRecord, TaskStore


class TaskSession:
    """Per-request task state: the envelope to replay and results of earlier round trips."""

    def __init__(
        self,
        addon_id: str,
        envelope: Dict[str, Any],
        results: Optional[Dict[str, Any]] = None,
        user: Optional[Dict[str, Any]] = None,
    ):
        self.addon_id = addon_id
        self.envelope = envelope
        self.results: Dict[str, Dict[str, Any]] = dict(results or {})
        self.user = user
        self._seq = 0

    def next_seq(self) -> int:
        seq = self._seq
        self._seq += 1
        return seq


async def run_task(
    task_type: str,
    params: Dict[str, Any],
    test_mode: bool,
    responder: Responder,
    cache: Any,
    session: TaskSession,
    stub: Any,
) -> Any:
    if test_mode:
        return stub
    seq = session.next_seq()
    known = session.results.get(str(seq))
    if known is not None:
        if known.get("type") != task_type:
            raise TaskError(f"Task {seq} replayed as {task_type}, recorded as {known.get('type')}")
        if known.get("error") is not None:
            raise TaskError(str(known["error"]))
        return known.get("result")

    task_id = uuid.uuid4().hex
    record = TaskRecord(
        id=task_id,
        type=task_type,
        seq=seq,
        addon=session.addon_id,
        params=params,
        envelope=session.envelope,
        results=session.results,
        user=session.user,
    )
    await TaskStore(cache.engine).save(record)
    await responder.send(200, {"kind": "task", "type": task_type, "id": task_id, "params": params})
    raise TaskPending(task_id, task_type)


def create_task_fetch(test_mode: bool, responder: Responder, cache: Any, session: TaskSession) -> Callable[..., Any]:
    async def fetch(
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        params = {"url": url, "method": method.upper(), "headers": headers or {}, "body": body, "timeout": timeout}
        stub = {"status": 200, "url": url, "headers": {}, "text": ""}
        return await run_task("fetch", params, test_mode, responder, cache, session, stub)

    return fetch


def create_task_recaptcha(test_mode: bool, responder: Responder, cache: Any, session: TaskSession) -> Callable[..., Any]:
    async def recaptcha(site_key: str, url: str, version: int = 2, action: Optional[str] = None) -> Any:
        params = {"siteKey": site_key, "url": url, "version": version, "action": action}
        return await run_task("recaptcha", params, test_mode, responder, cache, session, "test-recaptcha-token")

    return recaptcha


def create_task_toast(test_mode: bool, responder: Responder, cache: Any, session: TaskSession) -> Callable[..., Any]:
    async def toast(message: str, duration: Optional[int] = None) -> Any:
        params = {"message": message, "duration": duration}
        return await run_task("toast", params, test_mode, responder, cache, session, None)

    return toast


def create_task_notification(test_mode: bool, responder: Responder, cache: Any, session: TaskSession) -> Callable[..., Any]:
    async def notification(title: str, message: str, url: Optional[str] = None) -> Any:
        params = {"title": title, "message": message, "url": url}
        return await run_task("notification", params, test_mode, responder, cache, session, None)

    return notification
