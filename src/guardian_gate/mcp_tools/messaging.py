"""Outbound WhatsApp messaging tools."""

from __future__ import annotations

from typing import Mapping

from mcp.server.fastmcp import Context, FastMCP

from ..errors import GuardianGateError
from ..whatsapp import SendTemplateRequest, SendTextRequest, WhatsAppMessageResponse
from .common import ToolEnvironment, failure, success


def _result(response: WhatsAppMessageResponse) -> Mapping[str, object]:
    data = response.model_dump(exclude_none=True)
    data["message_id"] = response.message_id
    return success(data)


def register(server: FastMCP, env: ToolEnvironment) -> None:
    @server.tool(name="whatsapp.send_text", structured_output=True, description="Send a free-text WhatsApp message to a parent or staff phone number.")
    async def send_text(args: SendTextRequest, ctx: Context) -> Mapping[str, object]:
        try:
            response = await env.client.send_text_message(args.to, args.text)
        except GuardianGateError as exc:
            return failure(exc.error)
        return _result(response)

    @server.tool(name="whatsapp.send_template", structured_output=True, description="Send a pre-approved WhatsApp template message, optionally with body parameters.")
    async def send_template(args: SendTemplateRequest, ctx: Context) -> Mapping[str, object]:
        try:
            response = await env.client.send_template_message(
                args.to,
                args.template_name,
                args.language_code,
                args.components,
            )
        except GuardianGateError as exc:
            return failure(exc.error)
        return _result(response)


__all__ = ["register"]
