from __future__ import annotations

import logging
import os
from collections.abc import Iterator

import pytest
import structlog

from guardian_gate.config import GuardianGateSettings, get_settings
from guardian_gate.mcp_tools.common import ToolEnvironment

TEST_ENV = {
    "GUARDIAN_GATE_WHATSAPP_VERIFY_TOKEN": "test-verify-token-123",
    "GUARDIAN_GATE_WHATSAPP_APP_SECRET": "test-app-secret",
    "GUARDIAN_GATE_WHATSAPP_API_TOKEN": "test-token-123",
    "GUARDIAN_GATE_WHATSAPP_PHONE_NUMBER_ID": "test-phone-id-456",
    "GUARDIAN_GATE_GRAPH_API_BASE_URL": "https://graph.example.com",
    "GUARDIAN_GATE_RETRY_BACKOFF_FACTOR": "0",
}


@pytest.fixture(autouse=True)
def configure_settings() -> Iterator[None]:
    """Point settings at test secrets and reset cached settings and logging."""

    for key, value in TEST_ENV.items():
        os.environ[key] = value
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    for key in TEST_ENV:
        os.environ.pop(key, None)
    structlog.reset_defaults()


@pytest.fixture
def settings() -> GuardianGateSettings:
    return get_settings()


@pytest.fixture
def tool_env(settings: GuardianGateSettings) -> ToolEnvironment:
    return ToolEnvironment.from_settings(settings)


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    """Undo the root handler configure_logging installs on the captured stdout."""

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)

