"""MCP server bootstrap for the GuardianGate WhatsApp gateway."""

from __future__ import annotations

import argparse

from mcp.server.fastmcp import FastMCP

from .config import GuardianGateSettings, get_settings
from .logging import configure_logging
from .mcp_tools import messaging, webhooks
from .mcp_tools.common import ToolEnvironment

DEFAULT_TRANSPORT = "streamable-http"


def create_server(settings: GuardianGateSettings | None = None) -> FastMCP:
    settings = settings or get_settings()
    configure_logging(settings)

    environment = ToolEnvironment.from_settings(settings)
    server = FastMCP(name="guardian-gate")

    webhooks.register(server, environment)
    messaging.register(server, environment)

    return server


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run the GuardianGate WhatsApp gateway")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default=DEFAULT_TRANSPORT,
        help="Transport protocol to use; the webhook is only served over HTTP transports",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    args = parser.parse_args(argv)

    server = create_server()

    if args.transport == "streamable-http":
        import uvicorn

        uvicorn.run(server.streamable_http_app(), host=args.host, port=args.port)
    elif args.transport == "sse":
        import uvicorn

        uvicorn.run(server.sse_app(), host=args.host, port=args.port)
    else:
        server.run(transport="stdio")


if __name__ == "__main__":
    main()


__all__ = ["create_server", "main"]
