"""
Per-action request/response validators built on pydantic.
Models allow extra fields: validation checks the shape the engine relies on and
passes everything else through. Actions without models use a pass-through validator.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from addon_engine.errors import ValidationError

_OPEN_CONFIG = ConfigDict(extra="allow")


class AddonRequest(BaseModel):
    model_config = _OPEN_CONFIG
    clientVersion: Optional[str] = None


class AddonResponse(BaseModel):
    model_config = _OPEN_CONFIG
    id: str
    name: str
    version: str
    actions: List[str]


class CatalogRequest(BaseModel):
    model_config = _OPEN_CONFIG
    catalogId: Optional[str] = None
    id: Optional[str] = None
    cursor: Optional[Union[str, int]] = None
    search: Optional[str] = None
    filter: Optional[Dict[str, Any]] = None


class CatalogResponse(BaseModel):
    model_config = _OPEN_CONFIG
    items: List[Dict[str, Any]]
    nextCursor: Optional[Union[str, int]] = None


class ItemRequest(BaseModel):
    model_config = _OPEN_CONFIG
    type: Optional[str] = None
    ids: Optional[Dict[str, Any]] = None
    name: Optional[str] = None


class ResolveRequest(BaseModel):
    model_config = _OPEN_CONFIG
    url: str


class CaptchaRequest(BaseModel):
    model_config = _OPEN_CONFIG
    siteKey: Optional[str] = None
    url: Optional[str] = None


class PushNotificationRequest(BaseModel):
    model_config = _OPEN_CONFIG
    metadata: Optional[Dict[str, Any]] = None


ResolveResponse = Union[str, Dict[str, Any], List[Any]]
SourceResponse = Optional[Union[Dict[str, Any], List[Dict[str, Any]]]]
CaptchaResponse = str


def format_validation_error(e: PydanticValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", ())) or "value"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class ActionValidator:
    """request()/response() return the validated payload or raise ValidationError."""

    def __init__(self, action: str, request_model: Any = None, response_model: Any = None):
        self.action = action
        self._request = TypeAdapter(request_model) if request_model is not None else None
        self._response = TypeAdapter(response_model) if response_model is not None else None

    @staticmethod
    def _dump(value: Any) -> Any:
        if isinstance(value, BaseModel):
            out = value.model_dump(mode="json", exclude_unset=True)
            # unknown fields are passed through as received
            for k, extra in (value.model_extra or {}).items():
                out.setdefault(k, extra)
            return out
        return value

    def request(self, input: Any) -> Any:
        if not isinstance(input, dict):
            raise ValidationError(f"Invalid {self.action} request: input must be an object")
        if self._request is None:
            return input
        try:
            return self._dump(self._request.validate_python(input))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {self.action} request: {format_validation_error(e)}") from e

    def response(self, output: Any) -> Any:
        if self._response is None:
            return output
        try:
            return self._dump(self._response.validate_python(output))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {self.action} response: {format_validation_error(e)}") from e
