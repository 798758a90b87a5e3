"""
Engine error taxonomy. Every error maps to a status code and an {"error": message} body.
CacheFoundSignal and TaskPending are control signals used to unwind a handler, not failures.
"""
from typing import Any, Dict, Optional


class EngineError(Exception):
    """Base exception for all engine errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    no_backtrace_log: bool = False

    def __init__(
        self,
        detail: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        super().__init__(detail)

    def to_dict(self) -> Dict[str, Any]:
        """Response body for this error."""
        return {"error": self.detail}


class ValidationError(EngineError):
    """Request or response payload rejected by its validator or migration."""

    status_code = 400
    error_code = "VALIDATION_ERROR"
    no_backtrace_log = True


class AuthenticationError(EngineError):
    """Recognized signature failure. Subject to the bypass rules of the dispatcher."""

    status_code = 403
    error_code = "AUTHENTICATION_FAILED"
    message = "Authentication failed"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.message)


class MissingSignatureError(AuthenticationError):
    error_code = "SIGNATURE_MISSING"
    message = "Missing signature"


class InvalidSignatureError(AuthenticationError):
    error_code = "SIGNATURE_INVALID"
    message = "Invalid signature"


class SignatureTimedOutError(AuthenticationError):
    error_code = "SIGNATURE_TIMED_OUT"
    message = "Signature timed out"


class ActionNotFoundError(EngineError):
    status_code = 404
    error_code = "ACTION_NOT_FOUND"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"No handler for action {action}")


class NothingFoundError(EngineError):
    """Raised when resolve/captcha handlers return None."""

    error_code = "NOTHING_FOUND"
    no_backtrace_log = True

    def __init__(self, detail: str = "Nothing found"):
        super().__init__(detail)


class ConfigurationError(EngineError):
    """Misuse of the engine: frozen options, double request cache, bad addon."""

    error_code = "CONFIGURATION_ERROR"


class TaskNotFoundError(EngineError):
    status_code = 404
    error_code = "TASK_NOT_FOUND"

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found or expired")


class TaskError(EngineError):
    """The external caller reported a failure for a task."""

    error_code = "TASK_FAILED"


class CacheWaitTimeout(EngineError):
    error_code = "CACHE_WAIT_TIMEOUT"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Waiting for cache key {key} timed out")


class ResponderError(EngineError):
    """A delivery slot was used twice. Programming error, never a protocol event."""

    error_code = "RESPONDER_ERROR"


class CacheFoundSignal(Exception):
    """Unwinds a handler whose request cache key was already resolved."""

    def __init__(self, lookup: Any):
        self.lookup = lookup
        super().__init__(f"Cache already resolved ({lookup.state.value})")


class TaskPending(Exception):
    """Unwinds a handler after an intermediate task response was delivered."""

    def __init__(self, task_id: str, task_type: str):
        self.task_id = task_id
        self.task_type = task_type
        super().__init__(f"Task {task_type} {task_id} is pending")
