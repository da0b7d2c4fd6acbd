"""Application configuration loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Sequence

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GuardianGateSettings(BaseSettings):
    """Configuration for the GuardianGate messaging gateway.

    Secrets are optional at load time. Each operation that needs one fails
    closed when it is missing.
    """

    model_config = SettingsConfigDict(env_prefix="GUARDIAN_GATE_", extra="ignore")

    whatsapp_verify_token: SecretStr | None = Field(
        default=None,
        description="Token Meta echoes during the webhook subscribe handshake",
    )
    whatsapp_app_secret: SecretStr | None = Field(
        default=None,
        description="Meta App secret used to sign webhook deliveries",
    )
    whatsapp_api_token: SecretStr | None = Field(
        default=None,
        description="Bearer token for the WhatsApp Cloud API",
    )
    whatsapp_phone_number_id: str | None = Field(
        default=None,
        description="Sender phone number id registered with the Cloud API",
    )
    graph_api_base_url: str = Field(
        default="https://graph.facebook.com",
        description="Base URL of the Meta Graph API",
    )
    graph_api_version: str = Field(default="v21.0", description="Graph API version to target")
    default_timeout_seconds: float = Field(default=30.0, ge=1.0, description="HTTP request timeout")
    max_retries: int = Field(default=3, ge=0, le=10, description="Maximum HTTP retry attempts")
    retry_backoff_factor: float = Field(default=0.5, description="Base backoff factor in seconds")
    retry_backoff_max: float = Field(default=30.0, description="Maximum backoff in seconds")
    log_level: str = Field(default="INFO", description="Root log level")
    log_message_text: bool = Field(
        default=True,
        description="Include inbound message bodies in logs; false replaces them with a marker",
    )
    pii_redaction_keys: Sequence[str] = Field(
        default=("access_token", "authorization", "api_token"),
        description="Keys that should be redacted in logs",
    )

    @field_validator("graph_api_version")
    def _validate_version(cls, value: str) -> str:
        if not value.startswith("v"):
            msg = "Graph API version must be prefixed with 'v'"
            raise ValueError(msg)
        return value

    @field_validator("log_level")
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown log level: {value}"
            raise ValueError(msg)
        return level


@lru_cache(maxsize=1)
def get_settings() -> GuardianGateSettings:
    """Return cached settings instance."""

    return GuardianGateSettings()


__all__ = ["GuardianGateSettings", "get_settings"]
