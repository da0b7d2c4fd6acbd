"""Extraction of inbound messages from WhatsApp webhook envelopes.

Meta wraps every delivery as ``entry[].changes[].value.messages[]`` and any
level may be missing, for example on status-only deliveries. Navigation walks
the path one hop at a time: a missing hop ends in the absent state, while a
hop holding the wrong kind of value raises :class:`MalformedPayloadError`.
"""

from __future__ import annotations

from typing import Any, Mapping

from ..logging import REDACTED, get_logger
from .models import ParsedMessage

logger = get_logger(__name__)

TEXT_MESSAGE_TYPE = "text"


class MalformedPayloadError(ValueError):
    """Raised when the envelope holds an unexpected kind of value."""


def _field(node: Any, key: str) -> Any | None:
    if node is None:
        return None
    if not isinstance(node, Mapping):
        raise MalformedPayloadError(f"expected an object holding {key!r}, got {type(node).__name__}")
    return node.get(key)


def _first(node: Any, label: str) -> Any | None:
    if node is None:
        return None
    if not isinstance(node, list):
        raise MalformedPayloadError(f"expected {label!r} to be a list, got {type(node).__name__}")
    return node[0] if node else None


def _scalar(node: Any, label: str) -> str | None:
    if node is None:
        return None
    if isinstance(node, (Mapping, list)):
        raise MalformedPayloadError(f"expected {label!r} to be a scalar, got {type(node).__name__}")
    return str(node)


def locate_message(payload: Any) -> Mapping[str, Any] | None:
    """Return the first message record of the envelope, or None when absent."""

    entry = _first(_field(payload, "entry"), "entry")
    change = _first(_field(entry, "changes"), "changes")
    value = _field(change, "value")
    message = _first(_field(value, "messages"), "messages")
    if message is not None and not isinstance(message, Mapping):
        raise MalformedPayloadError(f"expected a message object, got {type(message).__name__}")
    return message


def _extract(payload: Any) -> ParsedMessage:
    message = locate_message(payload)
    if message is None:
        return ParsedMessage(success=True)

    message_type = _scalar(message.get("type"), "type")
    message_text = None
    if message_type == TEXT_MESSAGE_TYPE:
        message_text = _scalar(_field(message.get("text"), "body"), "text.body")

    return ParsedMessage(
        success=True,
        sender=_scalar(message.get("from"), "from"),
        message_text=message_text,
        timestamp=_scalar(message.get("timestamp"), "timestamp"),
        message_id=_scalar(message.get("id"), "id"),
        message_type=message_type,
    )


def parse_message(payload: Any) -> ParsedMessage:
    """Parse the first inbound message; only a malformed envelope fails."""

    try:
        return _extract(payload)
    except MalformedPayloadError as exc:
        logger.error("whatsapp_payload_malformed", reason=str(exc))
        return ParsedMessage(success=False)


def handle_incoming_message(payload: Any, *, log_message_text: bool = True) -> ParsedMessage:
    """Parse a delivery and log the message it carries, if any."""

    parsed = parse_message(payload)
    if parsed.success and parsed.sender:
        text = parsed.message_text
        if text is not None and not log_message_text:
            text = REDACTED
        logger.info(
            "whatsapp_message_received",
            sender=parsed.sender,
            message_text=text,
            timestamp=parsed.timestamp,
            message_id=parsed.message_id,
            message_type=parsed.message_type,
        )
    return parsed


__all__ = [
    "MalformedPayloadError",
    "TEXT_MESSAGE_TYPE",
    "handle_incoming_message",
    "locate_message",
    "parse_message",
]
