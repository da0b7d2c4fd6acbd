"""Meta webhook subscribe handshake."""

from __future__ import annotations

import hmac

from .models import VerificationRequest, VerificationResult

SUBSCRIBE_MODE = "subscribe"

TOKEN_NOT_CONFIGURED = "Verify token is not configured"
MISSING_TOKEN = "Missing hub.verify_token"
MISSING_CHALLENGE = "Missing hub.challenge"
INVALID_MODE = "Invalid hub.mode"
INVALID_TOKEN = "Invalid verify token"


class HandshakeVerifier:
    def __init__(self, verify_token: str | None) -> None:
        self._verify_token = verify_token

    def verify(self, request: VerificationRequest) -> VerificationResult:
        """Answer the subscribe challenge, or explain the first failed check."""

        if not self._verify_token:
            return VerificationResult(success=False, error=TOKEN_NOT_CONFIGURED)
        if not request.verify_token:
            return VerificationResult(success=False, error=MISSING_TOKEN)
        if not request.challenge:
            return VerificationResult(success=False, error=MISSING_CHALLENGE)
        if request.mode != SUBSCRIBE_MODE:
            return VerificationResult(success=False, error=INVALID_MODE)
        if not hmac.compare_digest(request.verify_token.encode("utf-8"), self._verify_token.encode("utf-8")):
            return VerificationResult(success=False, error=INVALID_TOKEN)
        return VerificationResult(success=True, challenge=request.challenge)


__all__ = [
    "HandshakeVerifier",
    "INVALID_MODE",
    "INVALID_TOKEN",
    "MISSING_CHALLENGE",
    "MISSING_TOKEN",
    "SUBSCRIBE_MODE",
    "TOKEN_NOT_CONFIGURED",
]
