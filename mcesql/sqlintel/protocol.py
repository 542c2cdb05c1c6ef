"""Messages exchanged with the background lint worker."""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass
from typing import Any, Mapping, Union

from .models import Diagnostic

_BASE36 = string.digits + string.ascii_lowercase


class ProtocolError(ValueError):
    """Raised when a message does not match any known shape."""


@dataclass(frozen=True, slots=True)
class InitRequest:
    type = "init"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type}


@dataclass(frozen=True, slots=True)
class LintRequest:
    request_id: str
    sql: str
    type = "lint"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "requestId": self.request_id, "sql": self.sql}


@dataclass(frozen=True, slots=True)
class ReadyResponse:
    type = "ready"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type}


@dataclass(frozen=True, slots=True)
class LintResultResponse:
    request_id: str
    diagnostics: tuple[Diagnostic, ...]
    duration: float
    type = "lint-result"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "requestId": self.request_id,
            "diagnostics": [diagnostic.to_dict() for diagnostic in self.diagnostics],
            "duration": self.duration,
        }


@dataclass(frozen=True, slots=True)
class ErrorResponse:
    message: str
    request_id: str | None = None
    type = "error"

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type, "message": self.message}
        if self.request_id is not None:
            payload["requestId"] = self.request_id
        return payload


WorkerRequest = Union[InitRequest, LintRequest]
WorkerResponse = Union[ReadyResponse, LintResultResponse, ErrorResponse]


def create_request_id() -> str:
    """Return ``lint-{epoch millis}-{7 base36 chars}``."""

    suffix = "".join(random.choice(_BASE36) for _ in range(7))
    return f"lint-{int(time.time() * 1000)}-{suffix}"


def decode_request(payload: Mapping[str, Any]) -> WorkerRequest:
    kind = payload.get("type")
    if kind == "init":
        return InitRequest()
    if kind == "lint":
        request_id, sql = payload.get("requestId"), payload.get("sql")
        if not isinstance(request_id, str) or not isinstance(sql, str):
            raise ProtocolError("lint request requires string 'requestId' and 'sql'")
        return LintRequest(request_id=request_id, sql=sql)
    raise ProtocolError(f"Unknown request type: {kind!r}")


def decode_response(payload: Mapping[str, Any]) -> WorkerResponse:
    kind = payload.get("type")
    if kind == "ready":
        return ReadyResponse()
    if kind == "lint-result":
        request_id = payload.get("requestId")
        if not isinstance(request_id, str):
            raise ProtocolError("lint-result requires a string 'requestId'")
        try:
            diagnostics = tuple(Diagnostic.from_dict(item) for item in payload.get("diagnostics", ()))
            duration = float(payload.get("duration", 0.0))
        except (KeyError, TypeError, ValueError) as exc:
            raise ProtocolError(f"Malformed lint-result: {exc}") from exc
        return LintResultResponse(request_id=request_id, diagnostics=diagnostics, duration=duration)
    if kind == "error":
        request_id = payload.get("requestId")
        return ErrorResponse(
            message=str(payload.get("message", "")),
            request_id=request_id if isinstance(request_id, str) else None,
        )
    raise ProtocolError(f"Unknown response type: {kind!r}")


__all__ = [
    "ErrorResponse",
    "InitRequest",
    "LintRequest",
    "LintResultResponse",
    "ProtocolError",
    "ReadyResponse",
    "WorkerRequest",
    "WorkerResponse",
    "create_request_id",
    "decode_request",
    "decode_response",
]
