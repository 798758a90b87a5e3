"""
Front door: server info, selftest aggregation across addons, or per-addon dispatch.
"""
from typing import Any, Callable, Dict, List, Optional, Tuple

from addon_engine.actions.dispatcher import ActionDispatcher, error_message
from addon_engine.actions.protocol import RequestEnvelope
from addon_engine.tasks.responder import Responder, SendResponse


async def _deliver(send_response: SendResponse, status_code: int, body: Any) -> None:
    responder = Responder(send_response)
    id = await responder.send(status_code, body)
    responder.set_send_response(id, None)


class ServerInfoHandler:
    def __init__(self, addons: List[Any]):
        self.addons = addons

    async def __call__(self, request: Dict[str, Any], send_response: SendResponse) -> None:
        await _deliver(send_response, 200, {"type": "server", "addons": [a.get_id() for a in self.addons]})


class SelftestHandler:
    """Runs "selftest" against every addon; 500 overall when any addon is not 200."""

    def __init__(self, addons: List[Any], create_dispatcher: Callable[[Any], ActionDispatcher]):
        self.addons = addons
        self.create_dispatcher = create_dispatcher

    async def run(self, request: Dict[str, Any]) -> Tuple[int, Dict[str, List[Any]]]:
        has_errors = False
        result: Dict[str, List[Any]] = {}
        for addon in self.addons:
            addon_id = addon.get_id()

            async def capture(status_code: int, data: Any, addon_id: str = addon_id) -> None:
                result[addon_id] = [status_code, data]

            try:
                dispatcher = self.create_dispatcher(addon)
                await dispatcher.dispatch(
                    RequestEnvelope(action="selftest", input={}, sig="", request=request, send_response=capture)
                )
            except Exception as e:
                result[addon_id] = [500, {"error": error_message(e)}]
            if addon_id not in result:
                result[addon_id] = [500, {"error": "No response"}]
            if result[addon_id][0] != 200:
                has_errors = True
        return (500 if has_errors else 200), result

    async def __call__(self, request: Dict[str, Any], send_response: SendResponse) -> None:
        status_code, result = await self.run(request)
        await _deliver(send_response, status_code, result)


class RequestRouter:
    def __init__(
        self,
        addons: List[Any],
        create_dispatcher: Callable[[Any], ActionDispatcher],
        server_handler: Optional[ServerInfoHandler] = None,
        selftest_handler: Optional[SelftestHandler] = None,
    ):
        self.addons = {a.get_id(): a for a in addons}
        self.create_dispatcher = create_dispatcher
        self.server_handler = server_handler or ServerInfoHandler(addons)
        self.selftest_handler = selftest_handler or SelftestHandler(addons, create_dispatcher)
        self._dispatchers: Dict[str, ActionDispatcher] = {}

    def _dispatcher(self, addon_id: str) -> Optional[ActionDispatcher]:
        if addon_id not in self._dispatchers:
            addon = self.addons.get(addon_id)
            if addon is None:
                return None
            self._dispatchers[addon_id] = self.create_dispatcher(addon)
        return self._dispatchers[addon_id]

    async def route(self, addon_id: Optional[str], envelope: RequestEnvelope) -> None:
        if not addon_id:
            if envelope.action == "selftest":
                await self.selftest_handler(envelope.request, envelope.send_response)
            else:
                await self.server_handler(envelope.request, envelope.send_response)
            return
        dispatcher = self._dispatcher(addon_id)
        if dispatcher is None:
            await _deliver(envelope.send_response, 404, {"error": f"Addon {addon_id} not found"})
            return
        await dispatcher.dispatch(envelope)
