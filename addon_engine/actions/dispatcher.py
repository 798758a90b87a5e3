"""
ActionDispatcher: one request end-to-end, exactly one response per physical call.

snapshot -> legacy alias -> init middleware -> [taskResponse: coordinator] -> handler lookup
-> auth -> request migration -> cache scope -> context -> request middleware -> handler
-> default errors -> response migration -> inline commit / error reconciliation
-> response middleware -> record -> deliver.

Handler lookup happens before signature validation so an unknown action is reported as
such and never masked by an auth failure (this reveals action existence pre-auth).
A replayed task reuses the user recorded on its first call instead of re-validating `sig`.
"""
import copy
import traceback
from typing import Any, Dict, Optional

from addon_engine.actions.auth import authenticate
from addon_engine.actions.context import ActionContext
from addon_engine.actions.pipeline import maybe_await
from addon_engine.actions.protocol import RequestEnvelope
from addon_engine.actions.registry import get_action_spec
from addon_engine.cache.inline import LookupState
from addon_engine.errors import (
    ActionNotFoundError,
    CacheFoundSignal,
    NothingFoundError,
    TaskPending,
)
from addon_engine.migrations.context import MigrationContext
from addon_engine.options import EngineOptions
from addon_engine.recorder import RecordData, RequestRecorder
from addon_engine.signature import AuthUser
from addon_engine.tasks.capabilities import (
    TaskSession,
    create_task_fetch,
    create_task_notification,
    create_task_recaptcha,
    create_task_toast,
)
from addon_engine.tasks.coordinator import TaskCoordinator
from addon_engine.tasks.responder import Responder, SendResponse

LEGACY_ACTIONS = {"directory": "catalog"}
# a None result from these actions is an error, not an empty success
NOTHING_FOUND_ACTIONS = frozenset({"resolve", "captcha"})

_NO_RESULT = object()


def error_message(e: BaseException) -> str:
    return getattr(e, "detail", None) or str(e) or type(e).__name__


class ActionDispatcher:
    """
    Per-addon dispatcher. Collaborators are injected by the engine:
    options (frozen), optional recorder, optional coordinator (defaults to one on options.cache).
    """

    def __init__(
        self,
        addon: Any,
        options: EngineOptions,
        recorder: Optional[RequestRecorder] = None,
        coordinator: Optional[TaskCoordinator] = None,
    ):
        self.addon = addon
        self.options = options
        self.recorder = recorder
        self.coordinator = coordinator or TaskCoordinator(options.cache)

    async def __call__(self, envelope: RequestEnvelope) -> None:
        await self.dispatch(envelope)

    async def _reply(self, send_response: SendResponse, status_code: int, body: Any) -> None:
        responder = Responder(send_response)
        id = await responder.send(status_code, body)
        responder.set_send_response(id, None)

    async def _replay(
        self,
        envelope: Dict[str, Any],
        send_response: SendResponse,
        results: Dict[str, Dict[str, Any]],
        user: Optional[AuthUser],
    ) -> None:
        await self.dispatch(
            RequestEnvelope(
                action=envelope.get("action") or "",
                input=envelope.get("input"),
                sig=envelope.get("sig") or "",
                request=envelope.get("request") or {},
                send_response=send_response,
            ),
            task_results=results,
            task_user=user,
        )

    async def dispatch(
        self,
        envelope: RequestEnvelope,
        task_results: Optional[Dict[str, Dict[str, Any]]] = None,
        task_user: Optional[AuthUser] = None,
    ) -> None:
        """
        Run one request. task_results/task_user are set only when replaying a resumed
        task: the identity authenticated on the first call is reused as is.
        """
        addon = self.addon
        opts = self.options
        middlewares = opts.middlewares
        action = envelope.action
        input = envelope.input

        # Snapshot before migrations and middleware mutate input in place
        original_input = copy.deepcopy(input)

        action = LEGACY_ACTIONS.get(action, action)

        input = await middlewares.init.run(addon, action, value=input)

        if isinstance(input, dict) and input.get("kind") == "taskResponse":
            await self.coordinator.resume(addon, input, envelope.send_response, self._replay)
            return

        handler = addon.get_action_handler(action)
        if handler is None:
            err = ActionNotFoundError(action)
            await self._reply(envelope.send_response, err.status_code, err.to_dict())
            return

        test_mode = opts.test_mode or action == "selftest"

        if task_results is not None:
            user = task_user
        else:
            auth = await authenticate(
                opts.verifier,
                envelope.sig,
                action,
                test_mode=test_mode,
                skip_auth=opts.skip_auth,
                production=opts.production,
            )
            if auth.rejected:
                await self._reply(envelope.send_response, auth.status_code, {"error": auth.error})
                return
            user = auth.user

        spec = get_action_spec(action)
        migration_ctx = MigrationContext(
            client_version=input.get("clientVersion") if isinstance(input, dict) else None,
            addon=addon,
            validator=spec.validator,
            user=user,
        )
        try:
            input = spec.adapt_request(migration_ctx, input)
        except Exception as e:
            await self._reply(envelope.send_response, 400, {"error": error_message(e)})
            return

        cache = opts.cache.clone({"prefix": addon.get_id(), **addon.get_default_cache_options()})

        responder = Responder(envelope.send_response)
        session = TaskSession(
            addon.get_id(),
            {"action": action, "input": original_input, "sig": envelope.sig, "request": envelope.request},
            task_results,
            user,
        )
        ctx = ActionContext(
            cache=cache,
            request=envelope.request,
            user=user,
            fetch=create_task_fetch(test_mode, responder, cache, session),
            recaptcha=create_task_recaptcha(test_mode, responder, cache, session),
            toast=create_task_toast(test_mode, responder, cache, session),
            notification=create_task_notification(test_mode, responder, cache, session),
        )

        input = await middlewares.request.run(addon, action, ctx, value=input)

        status_code = 200
        output: Any = _NO_RESULT
        try:
            result = await maybe_await(handler(input, ctx, addon))
            if action in NOTHING_FOUND_ACTIONS and result is None:
                raise NothingFoundError()
            result = spec.adapt_response(migration_ctx, input, result)
            if ctx.inline_slot is not None:
                await ctx.inline_slot.set(result)
            output = result
        except TaskPending as e:
            # intermediate task response already went out on this call
            if ctx.inline_slot is not None:
                await ctx.inline_slot.release()
            print(f"[dispatcher] {addon.get_id()}/{action} waiting for {e.task_type} task {e.task_id}", flush=True)
            return
        except CacheFoundSignal as e:
            if e.lookup.state is LookupState.HIT:
                output = e.lookup.value
            else:
                status_code = 500
                output = {"error": e.lookup.error or "Cached error"}
        except Exception as e:
            if ctx.inline_slot is not None:
                new_result = await ctx.inline_slot.set_error(e)
                if new_result is not e:
                    output = new_result
            if output is _NO_RESULT:
                status_code = 500
                output = {"error": error_message(e)}
                if not getattr(e, "no_backtrace_log", False):
                    print(f"[dispatcher] {addon.get_id()}/{action} failed: {error_message(e)}", flush=True)
                    traceback.print_exception(type(e), e, e.__traceback__)

        if responder.delivered:
            print(f"[dispatcher] {addon.get_id()}/{action} handler swallowed a pending task; dropping result", flush=True)
            return

        try:
            output = await middlewares.response.run(addon, action, ctx, input, value=output)
        except Exception as e:
            status_code = 500
            output = {"error": error_message(e)}
            print(f"[dispatcher] {addon.get_id()}/{action} response middleware failed: {error_message(e)}", flush=True)
            traceback.print_exception(type(e), e, e.__traceback__)

        if self.recorder is not None:
            record: RecordData = {
                "addon": addon.get_id(),
                "action": action,
                "input": original_input,
                "output": output,
                "statusCode": status_code,
            }
            try:
                await self.recorder.write(record)
            except Exception as e:
                print(f"[dispatcher] record write failed: {e}", flush=True)

        id = await responder.send(status_code, output)
        responder.set_send_response(id, None)
