"""
Signature bypass matrix and the authentication stage of the dispatcher.
"""
import pytest

from addon_engine.actions.auth import AuthState, authenticate
from addon_engine.addon import Addon
from addon_engine.settings import EngineSettings
from conftest import envelope

PRODUCTION = EngineSettings(production=True)


class RaisingVerifier:
    def __init__(self, error: Exception):
        self.error = error

    def verify(self, sig):
        raise self.error


def user_echo_addon(action: str = "item") -> Addon:
    addon = Addon("demo", actions=[action])
    addon.register_action_handler(action, lambda input, ctx, addon: {"user": ctx.user})
    return addon


class TestBypassMatrix:
    @pytest.mark.asyncio
    async def test_test_mode_gets_guest_user(self, make_engine, capture):
        addon = user_echo_addon()
        dispatcher = make_engine([addon], settings=PRODUCTION, test_mode=True).create_addon_handler(addon)

        await dispatcher.dispatch(envelope("item", {}, capture, sig="bad"))

        status, body = capture.last
        assert status == 200
        user = body["user"]
        assert user["user"] == "test"
        assert user["status"] == "guest"
        assert user["validUntil"] - user["time"] == 60_000

    @pytest.mark.asyncio
    async def test_selftest_action_implies_test_mode(self, make_engine, capture):
        addon = Addon("demo")
        addon.register_action_handler("selftest", lambda input, ctx, addon: ctx.user["status"])
        dispatcher = make_engine([addon], settings=PRODUCTION).create_addon_handler(addon)

        await dispatcher.dispatch(envelope("selftest", {}, capture))

        assert capture.calls == [(200, "guest")]

    @pytest.mark.asyncio
    async def test_addon_action_bypasses_without_user(self, make_engine, capture):
        addon = Addon("demo", name="Demo", version="1.2.3")
        dispatcher = make_engine([addon], settings=PRODUCTION).create_addon_handler(addon)

        await dispatcher.dispatch(envelope("addon", {}, capture, sig="bad"))

        status, body = capture.last
        assert status == 200
        assert body == {"id": "demo", "name": "Demo", "version": "1.2.3", "actions": []}

    @pytest.mark.asyncio
    async def test_skip_auth_override(self, make_engine, capture):
        addon = user_echo_addon()
        settings = EngineSettings(production=True, skip_auth=True)
        dispatcher = make_engine([addon], settings=settings).create_addon_handler(addon)

        await dispatcher.dispatch(envelope("item", {}, capture, sig="bad"))

        assert capture.calls == [(200, {"user": None})]

    @pytest.mark.asyncio
    async def test_non_production_bypass(self, make_engine, capture):
        addon = user_echo_addon()
        dispatcher = make_engine([addon]).create_addon_handler(addon)

        await dispatcher.dispatch(envelope("item", {}, capture))

        assert capture.calls == [(200, {"user": None})]

    @pytest.mark.asyncio
    async def test_production_rejects_bad_signature(self, make_engine, capture):
        called = []
        addon = Addon("demo", actions=["item"])
        addon.register_action_handler("item", lambda input, ctx, addon: called.append(1))
        dispatcher = make_engine([addon], settings=PRODUCTION).create_addon_handler(addon)

        await dispatcher.dispatch(envelope("item", {}, capture, sig="bad"))

        assert capture.calls == [(403, {"error": "Invalid signature"})]
        assert called == []

    @pytest.mark.asyncio
    async def test_production_rejects_missing_signature(self, make_engine, capture):
        addon = user_echo_addon()
        dispatcher = make_engine([addon], settings=PRODUCTION).create_addon_handler(addon)

        await dispatcher.dispatch(envelope("item", {}, capture))

        assert capture.calls == [(403, {"error": "Missing signature"})]

    @pytest.mark.asyncio
    async def test_production_accepts_valid_signature(self, make_engine, capture, valid_sig):
        addon = user_echo_addon()
        dispatcher = make_engine([addon], settings=PRODUCTION).create_addon_handler(addon)

        await dispatcher.dispatch(envelope("item", {}, capture, sig=valid_sig()))

        status, body = capture.last
        assert status == 200
        assert body["user"]["user"] == "alice"
        assert body["user"]["verified"] is True

    @pytest.mark.asyncio
    async def test_unrecognized_error_is_fatal_even_in_test_mode(self, make_engine, capture):
        called = []
        addon = Addon("demo", actions=["item"])
        addon.register_action_handler("item", lambda input, ctx, addon: called.append(1))
        engine = make_engine([addon], test_mode=True, verifier=RaisingVerifier(RuntimeError("kaboom")))

        await engine.create_addon_handler(addon).dispatch(envelope("item", {}, capture, sig="x"))

        assert capture.calls == [(500, {"error": "kaboom"})]
        assert called == []


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_authenticated_state(self, verifier, valid_sig):
        outcome = await authenticate(verifier, valid_sig(), "item", test_mode=False, skip_auth=False, production=True)
        assert outcome.state is AuthState.AUTHENTICATED
        assert outcome.user["user"] == "alice"

    @pytest.mark.asyncio
    async def test_timed_out_signature_is_recognized(self, verifier, valid_sig):
        sig = valid_sig(validUntil=1)
        rejected = await authenticate(verifier, sig, "item", test_mode=False, skip_auth=False, production=True)
        bypassed = await authenticate(verifier, sig, "item", test_mode=False, skip_auth=False, production=False)
        assert rejected.state is AuthState.REJECTED
        assert rejected.status_code == 403
        assert rejected.error == "Signature timed out"
        assert bypassed.state is AuthState.BYPASSED
        assert bypassed.user is None

    @pytest.mark.asyncio
    async def test_async_verifier(self):
        class AsyncVerifier:
            async def verify(self, sig):
                return {"user": "bob"}

        outcome = await authenticate(AsyncVerifier(), "sig", "item", test_mode=False, skip_auth=False, production=True)
        assert outcome.user == {"user": "bob"}
