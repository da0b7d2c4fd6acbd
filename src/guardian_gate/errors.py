"""Error definitions shared by the Cloud API client and MCP tools."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, Field


class GuardianGateErrorCode(str, Enum):
    CONFIGURATION = "CONFIGURATION"
    AUTH = "AUTH"
    PERMISSION = "PERMISSION"
    RATE_LIMIT = "RATE_LIMIT"
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    REMOTE_5XX = "REMOTE_5XX"


class ErrorDetail(BaseModel):
    """Typed error returned to tool callers."""

    code: GuardianGateErrorCode
    message: str
    details: Mapping[str, Any] | None = None
    retry_after: float | None = Field(default=None, description="Retry hint in seconds")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            payload["details"] = dict(self.details)
        if self.retry_after is not None:
            payload["retry_after"] = self.retry_after
        return payload


class GuardianGateError(RuntimeError):
    """Internal exception carrying an error payload."""

    def __init__(self, error: ErrorDetail):
        super().__init__(error.message)
        self.error = error


def error_response(error: ErrorDetail, *, meta: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
    """Build a JSON error response."""

    return {
        "ok": False,
        "error": error.to_dict(),
        "meta": dict(meta or {}),
    }


__all__ = ["ErrorDetail", "GuardianGateError", "GuardianGateErrorCode", "error_response"]
