"""Israeli phone number helpers for addressing WhatsApp recipients."""

from __future__ import annotations

import re

ISRAEL_COUNTRY_PREFIX = "+972"

_SEPARATORS = re.compile(r"[-\s]")


def normalize_phone(value: str) -> str:
    """Normalize a local (``050-123 4567``) number to E.164 (``+972501234567``).

    Numbers not starting with a trunk ``0`` are returned with separators removed.
    """
    digits = _SEPARATORS.sub("", value)
    if digits.startswith("0"):
        return ISRAEL_COUNTRY_PREFIX + digits[1:]
    return digits


def format_phone_display(e164: str) -> str:
    """Render ``+9725XXXXXXXX`` as ``05X-XXXXXXX``."""

    if not e164.startswith(ISRAEL_COUNTRY_PREFIX):
        return e164
    local = "0" + e164[len(ISRAEL_COUNTRY_PREFIX):]
    return f"{local[:3]}-{local[3:]}"


def to_whatsapp_recipient(value: str) -> str:
    """Cloud API recipients are international numbers without the ``+``."""

    return normalize_phone(value).lstrip("+")


__all__ = ["ISRAEL_COUNTRY_PREFIX", "format_phone_display", "normalize_phone", "to_whatsapp_recipient"]
