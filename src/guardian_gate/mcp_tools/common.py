"""Shared helpers for MCP tools and custom routes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ..config import GuardianGateSettings
from ..errors import ErrorDetail, error_response
from ..whatsapp import HandshakeVerifier, SignatureVerifier, WhatsAppCloudClient


@dataclass(slots=True)
class ToolEnvironment:
    settings: GuardianGateSettings
    client: WhatsAppCloudClient
    handshake: HandshakeVerifier
    signature: SignatureVerifier

    @classmethod
    def from_settings(cls, settings: GuardianGateSettings) -> "ToolEnvironment":
        verify_token = settings.whatsapp_verify_token
        app_secret = settings.whatsapp_app_secret
        return cls(
            settings=settings,
            client=WhatsAppCloudClient(settings),
            handshake=HandshakeVerifier(verify_token.get_secret_value() if verify_token else None),
            signature=SignatureVerifier(app_secret.get_secret_value() if app_secret else None),
        )


def success(data: Any, *, meta: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
    return {
        "ok": True,
        "data": data,
        "meta": dict(meta or {}),
    }


def failure(error: ErrorDetail, *, meta: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
    return error_response(error, meta=meta)


__all__ = ["ToolEnvironment", "failure", "success"]
