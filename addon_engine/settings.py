"""
Environment switches consumed by the engine. Never raises on malformed values.
ENGINE_ENV=production restricts the auth bypass and forbids request recording.
"""
import os
from dataclasses import dataclass
from typing import Optional


def _flag(name: str) -> bool:
    return (os.getenv(name) or "").strip() == "1"


def _float(name: str, default: float) -> float:
    s = os.getenv(name)
    if not s or not str(s).strip():
        return default
    try:
        return float(str(s).strip())
    except ValueError:
        return default


def _str(name: str) -> Optional[str]:
    v = (os.getenv(name) or "").strip()
    return v or None


@dataclass
class EngineSettings:
    production: bool = False
    skip_auth: bool = False
    test_mode: bool = False
    request_recorder_path: Optional[str] = None
    redis_url: Optional[str] = None
    signature_secret: Optional[str] = None
    inline_timeout: float = 30.0
    inline_poll: float = 0.05


def load_settings() -> EngineSettings:
    """Snapshot of the process environment."""
    return EngineSettings(
        production=(os.getenv("ENGINE_ENV") or "").strip().lower() == "production",
        skip_auth=_flag("SKIP_AUTH"),
        test_mode=_flag("TEST_MODE"),
        request_recorder_path=_str("REQUEST_RECORDER_PATH"),
        redis_url=_str("REDIS_URL"),
        signature_secret=_str("SIGNATURE_SECRET"),
        inline_timeout=_float("CACHE_INLINE_TIMEOUT_SECONDS", 30.0),
        inline_poll=_float("CACHE_INLINE_POLL_SECONDS", 0.05),
    )
