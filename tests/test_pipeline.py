import pytest

from addon_engine.actions.pipeline import Middleware, MiddlewarePipeline, Middlewares


@pytest.mark.asyncio
async def test_units_run_in_order_with_sync_and_async():
    async def double(addon, action, value):
        return value * 2

    pipeline = MiddlewarePipeline("init", [lambda addon, action, value: value + 1, double])

    assert await pipeline.run("addon", "item", value=1) == 4
    assert pipeline.names == ["<lambda>", "double"]


@pytest.mark.asyncio
async def test_exceptions_propagate():
    def broken(addon, action, value):
        raise RuntimeError("mw")

    pipeline = MiddlewarePipeline("request")
    pipeline.use(broken)

    with pytest.raises(RuntimeError, match="mw"):
        await pipeline.run("addon", "item", None, value={})


def test_named_units():
    pipeline = MiddlewarePipeline("response")
    pipeline.use(lambda *a: a[-1], name="identity")
    pipeline.use(Middleware("explicit", lambda *a: a[-1]))

    assert pipeline.names == ["identity", "explicit"]
    assert len(pipeline) == 2


def test_unknown_stage():
    with pytest.raises(ValueError):
        MiddlewarePipeline("later")
    with pytest.raises(ValueError):
        Middlewares.from_dict({"later": []})


def test_from_dict_defaults_empty_stages():
    m = Middlewares.from_dict({"init": [lambda a, b, c: c]})
    assert (len(m.init), len(m.request), len(m.response)) == (1, 0, 0)
