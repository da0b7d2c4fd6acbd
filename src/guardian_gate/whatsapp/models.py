"""Pydantic models for WhatsApp webhook values and Cloud API messages."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VerificationRequest(BaseModel):
    """Query parameters Meta sends with the subscribe handshake."""

    model_config = ConfigDict(populate_by_name=True)

    mode: str | None = Field(default=None, alias="hub.mode")
    verify_token: str | None = Field(default=None, alias="hub.verify_token")
    challenge: str | None = Field(default=None, alias="hub.challenge")


class VerificationResult(BaseModel):
    success: bool
    challenge: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _check_outcome(self) -> "VerificationResult":
        if self.success and self.challenge is None:
            raise ValueError("successful verification must carry the challenge")
        if not self.success and (self.error is None or self.challenge is not None):
            raise ValueError("failed verification must carry an error and no challenge")
        return self


class ParsedMessage(BaseModel):
    """Fields extracted from the first inbound message of an envelope."""

    success: bool
    sender: str | None = None
    message_text: str | None = None
    timestamp: str | None = None
    message_id: str | None = None
    message_type: str | None = None


class TemplateParameter(BaseModel):
    type: str = "text"
    text: str


class TemplateComponent(BaseModel):
    type: str
    parameters: list[TemplateParameter] | None = None


class MessageContact(BaseModel):
    input: str
    wa_id: str


class MessageRef(BaseModel):
    id: str


class WhatsAppMessageResponse(BaseModel):
    """Cloud API response to a send request."""

    model_config = ConfigDict(extra="allow")

    messaging_product: str = "whatsapp"
    contacts: list[MessageContact] | None = None
    messages: list[MessageRef] | None = None

    @property
    def message_id(self) -> str | None:
        if not self.messages:
            return None
        return self.messages[0].id


class SendTextRequest(BaseModel):
    to: str = Field(..., min_length=1, description="Recipient phone, local or international format")
    text: str = Field(..., min_length=1, description="Message body")


class SendTemplateRequest(BaseModel):
    to: str = Field(..., min_length=1, description="Recipient phone, local or international format")
    template_name: str = Field(..., min_length=1, description="Approved template name")
    language_code: str = Field(default="he", description="Template language code")
    components: list[TemplateComponent] | None = None


class OutboundMessage(BaseModel):
    """Body posted to the Cloud API messages endpoint."""

    messaging_product: Literal["whatsapp"] = "whatsapp"
    to: str
    type: Literal["text", "template"]
    text: dict[str, str] | None = None
    template: dict[str, Any] | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


__all__ = [
    "MessageContact",
    "MessageRef",
    "OutboundMessage",
    "ParsedMessage",
    "SendTemplateRequest",
    "SendTextRequest",
    "TemplateComponent",
    "TemplateParameter",
    "VerificationRequest",
    "VerificationResult",
    "WhatsAppMessageResponse",
]
