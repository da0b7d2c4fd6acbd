"""WhatsApp webhook endpoint: subscribe handshake and signed message delivery."""

from __future__ import annotations

import json

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from ..logging import get_logger
from ..whatsapp import SIGNATURE_HEADER, VerificationRequest, handle_incoming_message
from .common import ToolEnvironment

logger = get_logger(__name__)

WEBHOOK_PATH = "/api/whatsapp/webhook"


def register(server: FastMCP, env: ToolEnvironment) -> None:
    log_message_text = env.settings.log_message_text

    @server.custom_route(WEBHOOK_PATH, methods=["GET"], name="whatsapp_webhook_verify")
    async def verify(request: Request) -> Response:
        query = request.query_params
        params = VerificationRequest(
            mode=query.get("hub.mode"),
            verify_token=query.get("hub.verify_token"),
            challenge=query.get("hub.challenge"),
        )
        result = env.handshake.verify(params)
        if result.success and result.challenge:
            logger.info("whatsapp_webhook_verified")
            return PlainTextResponse(result.challenge)
        logger.warning("whatsapp_webhook_verification_failed", mode=params.mode, reason=result.error)
        return PlainTextResponse(result.error or "Webhook verification failed", status_code=403)

    @server.custom_route(WEBHOOK_PATH, methods=["POST"], name="whatsapp_webhook_handler")
    async def handle(request: Request) -> Response:
        signature = request.headers.get(SIGNATURE_HEADER)
        if not signature:
            logger.warning("whatsapp_signature_missing")
            return PlainTextResponse("Missing signature", status_code=403)

        raw_body = await request.body()
        if not env.signature.verify(raw_body, signature):
            logger.error("whatsapp_signature_invalid")
            return PlainTextResponse("Invalid signature", status_code=403)

        try:
            payload = json.loads(raw_body.decode("utf-8"))
        except (ValueError, RecursionError) as exc:
            # ValueError covers bad UTF-8, bad JSON and over-long integer literals
            logger.error("whatsapp_webhook_invalid_json", error=type(exc).__name__)
            return PlainTextResponse("Failed to process message", status_code=500)

        result = handle_incoming_message(payload, log_message_text=log_message_text)
        if not result.success:
            return PlainTextResponse("Failed to process message", status_code=500)
        return PlainTextResponse("OK")


__all__ = ["WEBHOOK_PATH", "register"]
