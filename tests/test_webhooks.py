from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.routing import Route
from starlette.testclient import TestClient
from structlog.testing import capture_logs

from guardian_gate.config import GuardianGateSettings
from guardian_gate.mcp_tools.common import ToolEnvironment
from guardian_gate.mcp_tools.webhooks import WEBHOOK_PATH, register
from guardian_gate.whatsapp import compute_signature

from .test_parser import IMAGE_MESSAGE, TEXT_MESSAGE, envelope

SECRET = "test-app-secret"
VERIFY_TOKEN = "test-verify-token-123"


def create_request(method="GET", query_string=b"", headers=None, body=b""):
    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    scope = {
        "type": "http",
        "method": method,
        "path": WEBHOOK_PATH,
        "query_string": query_string,
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    return Request(scope, receive)


def collect_handlers(env: ToolEnvironment) -> dict:
    server = MagicMock()
    handlers = {}

    def route_decorator(path, methods=None, name=None):
        def wrapper(func):
            handlers[name] = (path, methods, func)
            return func
        return wrapper

    server.custom_route.side_effect = route_decorator
    register(server, env)
    return handlers


@pytest.fixture
def webhook_handlers(tool_env):
    return {name: func for name, (_, _, func) in collect_handlers(tool_env).items()}


@pytest.fixture
def client(tool_env):
    routes = [
        Route(path, func, methods=methods, name=name)
        for name, (path, methods, func) in collect_handlers(tool_env).items()
    ]
    return TestClient(Starlette(routes=routes))


def signed_post(client: TestClient, payload, *, secret: str = SECRET):
    body = json.dumps(payload, ensure_ascii=False).encode()
    return client.post(
        WEBHOOK_PATH,
        content=body,
        headers={"x-hub-signature-256": compute_signature(secret, body), "content-type": "application/json"},
    )


def test_routes_registered(tool_env):
    handlers = collect_handlers(tool_env)
    assert handlers["whatsapp_webhook_verify"][:2] == (WEBHOOK_PATH, ["GET"])
    assert handlers["whatsapp_webhook_handler"][:2] == (WEBHOOK_PATH, ["POST"])


@pytest.mark.asyncio
async def test_verify_handler_success(webhook_handlers):
    verify = webhook_handlers["whatsapp_webhook_verify"]
    req = create_request(
        query_string=f"hub.mode=subscribe&hub.verify_token={VERIFY_TOKEN}&hub.challenge=12345".encode()
    )
    resp = await verify(req)
    assert resp.status_code == 200
    assert resp.body == b"12345"
    assert resp.media_type == "text/plain"


@pytest.mark.asyncio
async def test_verify_handler_missing_challenge(webhook_handlers):
    verify = webhook_handlers["whatsapp_webhook_verify"]
    req = create_request(query_string=f"hub.mode=subscribe&hub.verify_token={VERIFY_TOKEN}".encode())
    resp = await verify(req)
    assert resp.status_code == 403
    assert resp.body == b"Missing hub.challenge"


@pytest.mark.asyncio
async def test_verify_handler_fails_closed_without_token():
    env = ToolEnvironment.from_settings(GuardianGateSettings(whatsapp_verify_token=None, whatsapp_app_secret=SECRET))
    verify = {name: func for name, (_, _, func) in collect_handlers(env).items()}["whatsapp_webhook_verify"]
    req = create_request(query_string=b"hub.mode=subscribe&hub.verify_token=anything&hub.challenge=1")
    resp = await verify(req)
    assert resp.status_code == 403
    assert resp.body == b"Verify token is not configured"


@pytest.mark.asyncio
async def test_handle_missing_signature(webhook_handlers):
    handle = webhook_handlers["whatsapp_webhook_handler"]
    with capture_logs() as logs:
        resp = await handle(create_request(method="POST", body=b"{}"))
    assert resp.status_code == 403
    assert resp.body == b"Missing signature"
    assert not any(entry["event"] == "whatsapp_message_received" for entry in logs)


@pytest.mark.asyncio
async def test_handle_invalid_json_after_valid_signature(webhook_handlers):
    handle = webhook_handlers["whatsapp_webhook_handler"]
    body = b"not json"
    req = create_request(
        method="POST",
        headers={"X-Hub-Signature-256": compute_signature(SECRET, body)},
        body=body,
    )
    resp = await handle(req)
    assert resp.status_code == 500
    assert resp.body == b"Failed to process message"


@pytest.mark.asyncio
async def test_handle_fails_closed_without_app_secret():
    env = ToolEnvironment.from_settings(GuardianGateSettings(whatsapp_verify_token=VERIFY_TOKEN, whatsapp_app_secret=None))
    handle = {name: func for name, (_, _, func) in collect_handlers(env).items()}["whatsapp_webhook_handler"]
    body = json.dumps(envelope(TEXT_MESSAGE)).encode()
    req = create_request(method="POST", headers={"X-Hub-Signature-256": compute_signature("", body)}, body=body)
    resp = await handle(req)
    assert resp.status_code == 403
    assert resp.body == b"Invalid signature"


def test_get_with_correct_parameters_echoes_challenge(client):
    resp = client.get(
        WEBHOOK_PATH,
        params={"hub.mode": "subscribe", "hub.verify_token": VERIFY_TOKEN, "hub.challenge": "1158201444"},
    )
    assert resp.status_code == 200
    assert resp.text == "1158201444"
    assert resp.headers["content-type"].startswith("text/plain")


def test_get_with_wrong_token_is_forbidden(client):
    resp = client.get(
        WEBHOOK_PATH,
        params={"hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "1158201444"},
    )
    assert resp.status_code == 403
    assert "Invalid verify token" in resp.text


def test_post_text_message_is_logged(client):
    with capture_logs() as logs:
        resp = signed_post(client, envelope(TEXT_MESSAGE))
    assert resp.status_code == 200
    assert resp.text == "OK"
    received = [entry for entry in logs if entry["event"] == "whatsapp_message_received"]
    assert len(received) == 1
    assert received[0]["sender"] == TEXT_MESSAGE["from"]
    assert received[0]["message_text"] == TEXT_MESSAGE["text"]["body"]
    assert received[0]["message_id"] == TEXT_MESSAGE["id"]


def test_post_image_message_is_logged_without_text(client):
    with capture_logs() as logs:
        resp = signed_post(client, envelope(IMAGE_MESSAGE))
    assert resp.status_code == 200
    received = [entry for entry in logs if entry["event"] == "whatsapp_message_received"]
    assert received[0]["message_type"] == "image"
    assert received[0]["message_text"] is None


def test_post_with_invalid_signature_is_forbidden(client):
    with capture_logs() as logs:
        resp = signed_post(client, envelope(TEXT_MESSAGE), secret="attacker-secret")
    assert resp.status_code == 403
    assert resp.text == "Invalid signature"
    assert not any(entry["event"] == "whatsapp_message_received" for entry in logs)


def test_post_without_messages_logs_nothing(client):
    with capture_logs() as logs:
        resp = signed_post(client, envelope())
    assert resp.status_code == 200
    assert resp.text == "OK"
    assert not any(entry["event"] == "whatsapp_message_received" for entry in logs)


def test_post_verifies_exact_bytes_received(client):
    # Whitespace and key order differ from any re-serialization of the payload
    body = b'{ "entry" : [ ],\n  "object": "whatsapp_business_account" }'
    resp = client.post(WEBHOOK_PATH, content=body, headers={"x-hub-signature-256": compute_signature(SECRET, body)})
    assert resp.status_code == 200
    assert resp.text == "OK"


def test_post_malformed_envelope_is_server_error(client):
    resp = signed_post(client, {"entry": "not-a-list"})
    assert resp.status_code == 500
    assert resp.text == "Failed to process message"


@pytest.mark.parametrize(
    "body",
    [
        b"[" * 100000 + b"]" * 100000,
        b'{"entry": ' + b"1" * 5000 + b"}",
        b"\xff\xfe not utf-8",
    ],
    ids=["deep-nesting", "oversized-integer", "bad-utf8"],
)
def test_post_undecodable_body_is_server_error(client, body):
    with capture_logs() as logs:
        resp = client.post(WEBHOOK_PATH, content=body, headers={"x-hub-signature-256": compute_signature(SECRET, body)})
    assert resp.status_code == 500
    assert resp.text == "Failed to process message"
    assert [entry["event"] for entry in logs] == ["whatsapp_webhook_invalid_json"]


@pytest.mark.asyncio
async def test_verify_handler_uses_first_repeated_parameter(webhook_handlers):
    verify = webhook_handlers["whatsapp_webhook_verify"]
    req = create_request(
        query_string=(
            f"hub.mode=subscribe&hub.verify_token={VERIFY_TOKEN}&hub.verify_token=wrong"
            "&hub.challenge=first&hub.challenge=second"
        ).encode()
    )
    resp = await verify(req)
    assert resp.status_code == 200
    assert resp.body == b"first"
