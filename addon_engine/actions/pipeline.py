"""
Middleware pipelines: init -> request -> response, each an ordered list of named units.
Registration order is execution order. Each unit returns the (possibly replaced) value.

  init:     fn(addon, action, input) -> input
  request:  fn(addon, action, ctx, input) -> input
  response: fn(addon, action, ctx, input, output) -> output
"""
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

STAGES = ("init", "request", "response")


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass
class Middleware:
    name: str
    fn: Callable[..., Any]


class MiddlewarePipeline:
    """Runs units in order. Exceptions propagate to the dispatcher."""

    def __init__(self, stage: str, units: Optional[Iterable[Union[Middleware, Callable[..., Any]]]] = None):
        if stage not in STAGES:
            raise ValueError(f"unknown middleware stage {stage}")
        self.stage = stage
        self.units: List[Middleware] = []
        for unit in units or []:
            self.use(unit)

    def use(self, unit: Union[Middleware, Callable[..., Any]], name: Optional[str] = None) -> None:
        if not isinstance(unit, Middleware):
            unit = Middleware(name=name or getattr(unit, "__name__", "?"), fn=unit)
        self.units.append(unit)

    @property
    def names(self) -> List[str]:
        return [u.name for u in self.units]

    async def run(self, *args: Any, value: Any) -> Any:
        for unit in self.units:
            value = await maybe_await(unit.fn(*args, value))
        return value

    def __len__(self) -> int:
        return len(self.units)


@dataclass
class Middlewares:
    init: MiddlewarePipeline = field(default_factory=lambda: MiddlewarePipeline("init"))
    request: MiddlewarePipeline = field(default_factory=lambda: MiddlewarePipeline("request"))
    response: MiddlewarePipeline = field(default_factory=lambda: MiddlewarePipeline("response"))

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Iterable[Any]]]) -> "Middlewares":
        """{"init": [fn, ...], ...} -> Middlewares. Unknown stage names raise ValueError."""
        d = d or {}
        unknown = set(d) - set(STAGES)
        if unknown:
            raise ValueError(f"unknown middleware stage(s): {', '.join(sorted(unknown))}")
        return cls(**{stage: MiddlewarePipeline(stage, d.get(stage)) for stage in STAGES})
