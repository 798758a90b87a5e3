import pytest

from addon_engine.errors import ResponderError
from addon_engine.tasks.responder import Responder
from conftest import Capture


@pytest.mark.asyncio
async def test_first_send_uses_slot_zero():
    capture = Capture()
    responder = Responder(capture)

    id = await responder.send(200, {"ok": True})

    assert id == 0
    assert responder.next_id == 1
    assert responder.delivered
    assert capture.calls == [(200, {"ok": True})]


@pytest.mark.asyncio
async def test_slot_delivers_at_most_once():
    capture = Capture()
    responder = Responder(capture)
    await responder.send(200, "first", id=0)

    with pytest.raises(ResponderError, match="already used"):
        await responder.send(500, "second", id=0)

    assert capture.calls == [(200, "first")]


@pytest.mark.asyncio
async def test_finalized_slot_rejects_delivery():
    capture = Capture()
    responder = Responder(capture)
    responder.set_send_response(0, None)

    with pytest.raises(ResponderError, match="no delivery channel"):
        await responder.send(200, "late")

    assert capture.calls == []
    assert not responder.delivered


@pytest.mark.asyncio
async def test_rebinding_used_slot_is_an_error():
    responder = Responder(Capture())
    id = await responder.send(200, None)

    with pytest.raises(ResponderError):
        responder.set_send_response(id, Capture())


@pytest.mark.asyncio
async def test_sync_send_response():
    calls = []
    responder = Responder(lambda status, body: calls.append((status, body)))
    second = Capture()
    responder.set_send_response(1, second)

    await responder.send(200, "task")
    await responder.send(200, "final")

    assert calls == [(200, "task")]
    assert second.calls == [(200, "final")]
