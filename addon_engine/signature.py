"""
Request signature verification.
Token format: <base64url(json payload)>.<hex hmac-sha256(payload part)>.
Raises MissingSignatureError / InvalidSignatureError / SignatureTimedOutError; anything
else escaping verify() is treated by the dispatcher as an unrecognized (fatal) failure.
"""
import base64
import hashlib
import hmac
import json
import time
from typing import Any, Dict, List, Optional, TypedDict

from addon_engine.errors import (
    ConfigurationError,
    InvalidSignatureError,
    MissingSignatureError,
    SignatureTimedOutError,
)


class ClientApp(TypedDict, total=False):
    name: str
    version: str
    platform: str
    ok: bool


class AuthUser(TypedDict, total=False):
    time: int  # ms
    validUntil: int  # ms
    user: str
    status: str
    verified: bool
    ips: List[str]
    app: ClientApp


def now_ms() -> int:
    return int(time.time() * 1000)


class SignatureVerifier:
    """verify(sig) -> AuthUser. May be sync or async."""

    def verify(self, sig: str) -> AuthUser:
        raise NotImplementedError


class HmacSignatureVerifier(SignatureVerifier):
    def __init__(self, secret: Optional[str]):
        self.secret = secret

    def _digest(self, data: str) -> str:
        if not self.secret:
            raise ConfigurationError("SIGNATURE_SECRET is not set")
        return hmac.new(self.secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha256).hexdigest()

    def sign(self, payload: Dict[str, Any]) -> str:
        raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        data = base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
        return f"{data}.{self._digest(data)}"

    def verify(self, sig: str) -> AuthUser:
        if not sig:
            raise MissingSignatureError()
        data, _, digest = sig.partition(".")
        if not data or not digest:
            raise InvalidSignatureError()
        if not hmac.compare_digest(self._digest(data), digest):
            raise InvalidSignatureError()
        try:
            raw = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
            payload = json.loads(raw)
        except (ValueError, TypeError) as e:
            raise InvalidSignatureError() from e
        if not isinstance(payload, dict):
            raise InvalidSignatureError()
        valid_until = payload.get("validUntil")
        if not isinstance(valid_until, (int, float)) or valid_until < now_ms():
            raise SignatureTimedOutError()
        return AuthUser(**payload)  # type: ignore[typeddict-item]
