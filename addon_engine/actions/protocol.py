"""
Action dispatch protocol: envelope in, exactly one (status_code, body) out via send_response.
ActionSpec bundles the validators and optional migration adapter for one action name.
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from addon_engine.migrations.context import MigrationAdapter, MigrationContext
from addon_engine.tasks.responder import SendResponse
from addon_engine.validators import ActionValidator

# handler(input, ctx, addon) -> output (sync or async)
Handler = Callable[[Any, Any, Any], Union[Awaitable[Any], Any]]


@dataclass
class RequestEnvelope:
    action: str
    input: Any
    send_response: SendResponse
    sig: str = ""
    request: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ActionSpec:
    name: str
    validator: ActionValidator
    migration: Optional[MigrationAdapter] = None

    def adapt_request(self, ctx: MigrationContext, input: Any) -> Any:
        """Migration adapter when one exists, else the bare validator."""
        if self.migration is not None:
            return self.migration.request(ctx, input)
        return self.validator.request(input)

    def adapt_response(self, ctx: MigrationContext, input: Any, output: Any) -> Any:
        if self.migration is not None:
            return self.migration.response(ctx, input, output)
        return self.validator.response(output)
