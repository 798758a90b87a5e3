"""
Authentication stage: NoSignature -> Validating -> Authenticated(user) | Bypassed(user) | Rejected.
Recognized failures may be bypassed (test mode, action "addon", SKIP_AUTH, non-production);
unrecognized failures are always a 500.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from addon_engine.actions.pipeline import maybe_await
from addon_engine.errors import AuthenticationError
from addon_engine.signature import AuthUser, now_ms

GUEST_VALIDITY_MS = 60 * 1000


class AuthState(str, Enum):
    AUTHENTICATED = "authenticated"
    BYPASSED = "bypassed"
    REJECTED = "rejected"


@dataclass
class AuthOutcome:
    state: AuthState
    user: Optional[AuthUser] = None
    status_code: int = 200
    error: Optional[str] = None

    @property
    def rejected(self) -> bool:
        return self.state is AuthState.REJECTED


def guest_user() -> AuthUser:
    """Synthetic identity handlers observe in test mode."""
    ts = now_ms()
    return AuthUser(
        time=ts,
        validUntil=ts + GUEST_VALIDITY_MS,
        user="test",
        status="guest",
        verified=True,
        ips=[],
        app={"name": "test", "version": "1.8.0", "platform": "test", "ok": True},
    )


async def authenticate(
    verifier: Any,
    sig: str,
    action: str,
    test_mode: bool,
    skip_auth: bool,
    production: bool,
) -> AuthOutcome:
    try:
        user = await maybe_await(verifier.verify(sig))
    except AuthenticationError as e:
        allow = test_mode or action == "addon" or skip_auth or not production
        if not allow:
            return AuthOutcome(AuthState.REJECTED, status_code=403, error=e.detail)
        return AuthOutcome(AuthState.BYPASSED, user=guest_user() if test_mode else None)
    except Exception as e:
        return AuthOutcome(AuthState.REJECTED, status_code=500, error=str(e) or type(e).__name__)
    return AuthOutcome(AuthState.AUTHENTICATED, user=user)
