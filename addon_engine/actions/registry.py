"""
Registry of action specs. Dispatcher looks up by action name.
init_actions() is idempotent: repeated calls do not duplicate or overwrite with different instances.
Unknown names get a pass-through spec so custom addon actions still dispatch.
"""
from typing import Any, Dict

from addon_engine.actions.protocol import ActionSpec
from addon_engine.migrations.registry import get_migration, init_migrations
from addon_engine import validators as v

ACTIONS: Dict[str, ActionSpec] = {}
_INIT_DONE = False

_BUILTIN_MODELS: Dict[str, Any] = {
    "addon": (v.AddonRequest, v.AddonResponse),
    "selftest": (None, None),
    "catalog": (v.CatalogRequest, v.CatalogResponse),
    "item": (v.ItemRequest, None),
    "source": (v.ItemRequest, v.SourceResponse),
    "subtitle": (v.ItemRequest, v.SourceResponse),
    "resolve": (v.ResolveRequest, v.ResolveResponse),
    "captcha": (v.CaptchaRequest, v.CaptchaResponse),
    "push-notification": (v.PushNotificationRequest, None),
}


def register(spec: ActionSpec) -> None:
    if spec.name:
        ACTIONS[spec.name] = spec


def get_action_spec(action: str) -> ActionSpec:
    init_actions()
    spec = ACTIONS.get(action)
    if spec is None:
        spec = ActionSpec(name=action, validator=v.ActionValidator(action))
    return spec


def init_actions() -> None:
    """Register built-in action specs. Idempotent: safe to call multiple times."""
    global _INIT_DONE
    if _INIT_DONE:
        return
    init_migrations()
    for name, (request_model, response_model) in _BUILTIN_MODELS.items():
        register(
            ActionSpec(
                name=name,
                validator=v.ActionValidator(name, request_model, response_model),
                migration=get_migration(name),
            )
        )
    _INIT_DONE = True
