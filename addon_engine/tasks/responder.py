"""
Responder: at-most-one delivery per slot id.
Slot 0 is bound to the physical call's send_response. A slot that delivered (or was
finalized with set_send_response(id, None)) rejects any further delivery.
"""
import inspect
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

from addon_engine.errors import ResponderError

SendResponse = Callable[[int, Any], Union[Awaitable[None], None]]


class Responder:
    def __init__(self, send_response: SendResponse):
        self._next_id = 0
        self._slots: Dict[int, Optional[SendResponse]] = {0: send_response}
        self._delivered: Set[int] = set()

    @property
    def next_id(self) -> int:
        return self._next_id

    @property
    def delivered(self) -> bool:
        """True once any slot of this responder delivered a response."""
        return bool(self._delivered)

    def set_send_response(self, id: int, fn: Optional[SendResponse]) -> None:
        """Bind a delivery channel to a slot, or finalize it with None."""
        if fn is not None and id in self._delivered:
            raise ResponderError(f"Response slot {id} was already used")
        self._slots[id] = fn

    async def send(self, status_code: int, body: Any, id: Optional[int] = None) -> int:
        """Deliver through slot id (default: the next unused slot). Returns the slot id."""
        if id is None:
            id = self._next_id
        if id in self._delivered:
            raise ResponderError(f"Response slot {id} was already used")
        fn = self._slots.get(id)
        if fn is None:
            raise ResponderError(f"Response slot {id} has no delivery channel")
        self._delivered.add(id)
        if id >= self._next_id:
            self._next_id = id + 1
        res = fn(status_code, body)
        if inspect.isawaitable(res):
            await res
        return id
