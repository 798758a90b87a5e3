"""
Addon: id, public props, per-action handlers and default cache options.
Handlers for "addon" (public props) and "selftest" ("ok") are registered by default.
"""
import re
from typing import Any, Dict, Iterable, List, Optional

from addon_engine.actions.protocol import Handler

ADDON_ID_RE = re.compile(r"^[a-z0-9\-_.]+$")


class Addon:
    def __init__(
        self,
        id: str,
        name: Optional[str] = None,
        version: str = "0.0.0",
        actions: Optional[Iterable[str]] = None,
        cache_options: Optional[Dict[str, Any]] = None,
        **props: Any,
    ):
        self.id = id
        self.props: Dict[str, Any] = {
            "id": id,
            "name": name if name is not None else id,
            "version": version,
            **props,
        }
        self.declared_actions: List[str] = list(actions or [])
        self.cache_options: Dict[str, Any] = dict(cache_options or {})
        self._handlers: Dict[str, Handler] = {
            "addon": _addon_handler,
            "selftest": _selftest_handler,
        }

    def get_id(self) -> str:
        return self.id

    def get_props(self) -> Dict[str, Any]:
        actions = [a for a in self._handlers if a not in ("addon", "selftest")]
        return {**self.props, "actions": actions}

    def get_default_cache_options(self) -> Dict[str, Any]:
        return dict(self.cache_options)

    def register_action_handler(self, action: str, handler: Handler) -> "Addon":
        if not action or not callable(handler):
            raise ValueError(f"invalid handler for action {action!r}")
        self._handlers[action] = handler
        return self

    def get_action_handler(self, action: str) -> Optional[Handler]:
        """Handler for action, or None when the addon does not implement it."""
        return self._handlers.get(action)

    def validate_addon(self) -> None:
        if not self.id or not ADDON_ID_RE.match(self.id):
            raise ValueError(f"invalid addon id {self.id!r}")
        if not self.props.get("name"):
            raise ValueError("name is required")
        if not self.props.get("version"):
            raise ValueError("version is required")
        missing = [a for a in self.declared_actions if a not in self._handlers]
        if missing:
            raise ValueError(f"no handler for declared action(s): {', '.join(missing)}")


async def _addon_handler(input: Any, ctx: Any, addon: Addon) -> Dict[str, Any]:
    return addon.get_props()


async def _selftest_handler(input: Any, ctx: Any, addon: Addon) -> str:
    return "ok"
