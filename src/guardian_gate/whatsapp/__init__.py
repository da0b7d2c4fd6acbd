"""WhatsApp webhook verification, payload parsing and Cloud API client."""

from .client import WhatsAppCloudClient
from .handshake import HandshakeVerifier
from .models import (
    ParsedMessage,
    SendTemplateRequest,
    SendTextRequest,
    TemplateComponent,
    TemplateParameter,
    VerificationRequest,
    VerificationResult,
    WhatsAppMessageResponse,
)
from .parser import MalformedPayloadError, handle_incoming_message, parse_message
from .signature import SIGNATURE_HEADER, SignatureVerifier, compute_signature

__all__ = [
    "HandshakeVerifier",
    "MalformedPayloadError",
    "ParsedMessage",
    "SIGNATURE_HEADER",
    "SendTemplateRequest",
    "SendTextRequest",
    "SignatureVerifier",
    "TemplateComponent",
    "TemplateParameter",
    "VerificationRequest",
    "VerificationResult",
    "WhatsAppCloudClient",
    "WhatsAppMessageResponse",
    "compute_signature",
    "handle_incoming_message",
    "parse_message",
]
