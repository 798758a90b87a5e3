"""
Engine factory: validates addons, assembles options and freezes them once any handler
is created. Options are Building until initialize(); afterwards update_options() raises.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from addon_engine.actions.dispatcher import ActionDispatcher
from addon_engine.actions.pipeline import Middlewares
from addon_engine.cache.engines import detect_cache_engine
from addon_engine.cache.handler import CacheHandler
from addon_engine.errors import ConfigurationError
from addon_engine.options import EngineOptions
from addon_engine.recorder import RequestRecorder, create_request_recorder
from addon_engine.router import RequestRouter, SelftestHandler, ServerInfoHandler
from addon_engine.settings import EngineSettings, load_settings
from addon_engine.signature import HmacSignatureVerifier
from addon_engine.tasks.coordinator import TaskCoordinator


class EngineState(str, Enum):
    BUILDING = "building"
    FROZEN = "frozen"


def _coerce(name: str, value: Any) -> Any:
    if name == "middlewares" and not isinstance(value, Middlewares):
        return Middlewares.from_dict(value)
    return value


class Engine:
    def __init__(self, addons: List[Any], options: EngineOptions):
        self.addons = addons
        self._options = options
        self._state = EngineState.BUILDING
        self._recorder: Optional[RequestRecorder] = None
        self._coordinator: Optional[TaskCoordinator] = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def options(self) -> EngineOptions:
        return self._options

    @property
    def request_recorder(self) -> Optional[RequestRecorder]:
        return self._recorder

    def _assert_not_frozen(self) -> None:
        if self._state is EngineState.FROZEN:
            raise ConfigurationError("Not allowed to update options after addon handlers are created")

    def update_options(self, **options: Any) -> None:
        """Apply all options or none. Raises ConfigurationError once frozen."""
        self._assert_not_frozen()
        unknown = set(options) - EngineOptions.names()
        if unknown:
            raise ConfigurationError(f"Unknown engine option(s): {', '.join(sorted(unknown))}")
        coerced = {k: _coerce(k, v) for k, v in options.items()}
        for k, v in coerced.items():
            setattr(self._options, k, v)

    def initialize(self) -> None:
        self._assert_not_frozen()
        opts = self._options
        print(f"[engine] Using cache: {type(opts.cache.engine).__name__}", flush=True)
        if isinstance(opts.verifier, HmacSignatureVerifier) and not opts.verifier.secret:
            print(
                "[engine] WARNING: SIGNATURE_SECRET is not set; signed requests will fail with 500",
                flush=True,
            )

        if opts.request_recorder_path:
            if opts.production:
                raise ConfigurationError("Request recording is not supported in production builds")
            self._recorder = create_request_recorder(opts.request_recorder_path)
            print(f"[engine] Logging requests to {self._recorder.path}", flush=True)

        self._coordinator = TaskCoordinator(opts.cache)
        self._state = EngineState.FROZEN

    def _ensure_initialized(self) -> None:
        if self._state is not EngineState.FROZEN:
            self.initialize()

    def create_addon_handler(self, addon: Any) -> ActionDispatcher:
        self._ensure_initialized()
        return ActionDispatcher(addon, self._options, self._recorder, self._coordinator)

    def create_server_handler(self) -> ServerInfoHandler:
        self._ensure_initialized()
        return ServerInfoHandler(self.addons)

    def create_selftest_handler(self) -> SelftestHandler:
        self._ensure_initialized()
        return SelftestHandler(self.addons, self.create_addon_handler)

    def create_router(self) -> RequestRouter:
        self._ensure_initialized()
        return RequestRouter(
            self.addons,
            self.create_addon_handler,
            server_handler=self.create_server_handler(),
            selftest_handler=self.create_selftest_handler(),
        )

    def get_cache_handler(self) -> CacheHandler:
        return self._options.cache


def create_engine(
    addons: List[Any],
    settings: Optional[EngineSettings] = None,
    **options: Any,
) -> Engine:
    """Validate addons and build an engine. Environment switches seed the defaults."""
    for addon in addons:
        try:
            addon.validate_addon()
        except Exception as e:
            raise ConfigurationError(f'Validation of addon "{addon.get_id()}" failed: {e}') from e

    settings = settings or load_settings()
    unknown = set(options) - EngineOptions.names()
    if unknown:
        raise ConfigurationError(f"Unknown engine option(s): {', '.join(sorted(unknown))}")

    opts = EngineOptions(
        test_mode=settings.test_mode,
        request_recorder_path=settings.request_recorder_path,
        skip_auth=settings.skip_auth,
        production=settings.production,
    )
    overrides: Dict[str, Any] = {k: _coerce(k, v) for k, v in options.items()}
    for k, v in overrides.items():
        setattr(opts, k, v)

    if opts.cache is None:
        opts.cache = CacheHandler(
            detect_cache_engine(settings.redis_url),
            inline_timeout=settings.inline_timeout,
            inline_poll=settings.inline_poll,
        )
    if opts.verifier is None:
        opts.verifier = HmacSignatureVerifier(settings.signature_secret)

    return Engine(addons, opts)
