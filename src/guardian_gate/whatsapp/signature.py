"""HMAC-SHA256 verification of webhook deliveries."""

from __future__ import annotations

import hashlib
import hmac

from ..logging import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "x-hub-signature-256"
SIGNATURE_PREFIX = "sha256="


class SignatureVerifier:
    """Checks the ``x-hub-signature-256`` header against the app secret."""

    def __init__(self, app_secret: str | None) -> None:
        self._app_secret = app_secret

    def verify(self, raw_body: bytes | str, signature_header: str | None) -> bool:
        """Return True when the header carries the body's HMAC-SHA256 digest.

        Never raises. A missing secret, a missing or unprefixed header, or a
        digest of the wrong length all reject.
        """
        if not self._app_secret:
            logger.warning("whatsapp_app_secret_missing")
            return False
        if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
            return False

        body = raw_body.encode("utf-8") if isinstance(raw_body, str) else raw_body
        expected = hmac.new(self._app_secret.encode("utf-8"), body, hashlib.sha256).hexdigest().encode("ascii")
        supplied = signature_header[len(SIGNATURE_PREFIX):].encode("utf-8")

        # compare_digest needs equal-length input to stay constant time
        if len(expected) != len(supplied):
            return False
        return hmac.compare_digest(expected, supplied)


def compute_signature(secret: str, raw_body: bytes) -> str:
    """Return the header value Meta would send for ``raw_body``."""

    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


__all__ = ["SIGNATURE_HEADER", "SIGNATURE_PREFIX", "SignatureVerifier", "compute_signature"]
