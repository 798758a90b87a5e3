"""
Migration protocol: per-action adapters translating payloads across client protocol versions.
Adapters must be idempotent: re-applying one to an already adapted payload is a no-op.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from addon_engine.validators import ActionValidator


def parse_version(version: Any) -> Optional[Tuple[int, ...]]:
    """'1.8.0' -> (1, 8, 0). Returns None for missing or unparsable versions."""
    if not version or not isinstance(version, str):
        return None
    parts = []
    for chunk in version.strip().lstrip("v").split("."):
        digits = ""
        for ch in chunk:
            if not ch.isdigit():
                break
            digits += ch
        if not digits:
            return None
        parts.append(int(digits))
    return tuple(parts) if parts else None


@dataclass
class MigrationContext:
    """Created once per request and threaded through request and response adaptation."""

    client_version: Optional[str]
    addon: Any
    validator: ActionValidator
    user: Optional[Dict[str, Any]] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def client_older_than(self, version: str) -> bool:
        """Unknown client versions count as latest."""
        current = parse_version(self.client_version)
        if current is None:
            return False
        target = parse_version(version) or ()
        width = max(len(current), len(target))
        return current + (0,) * (width - len(current)) < target + (0,) * (width - len(target))


class MigrationAdapter:
    """Default adapter only validates. Subclasses adapt, then delegate to the validator."""

    name: str = ""

    def request(self, ctx: MigrationContext, input: Any) -> Any:
        return ctx.validator.request(input)

    def response(self, ctx: MigrationContext, input: Any, output: Any) -> Any:
        return ctx.validator.response(output)
