"""Structlog logging configuration."""

from __future__ import annotations

import logging
import sys
from typing import Any, Iterable

import structlog

from .config import GuardianGateSettings, get_settings

REDACTED = "[redacted]"


class RedactKeys:
    """Processor replacing the values of sensitive keys in an event dict."""

    def __init__(self, keys: Iterable[str]) -> None:
        self.keys = frozenset(key.lower() for key in keys)

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key in list(event_dict):
            if key.lower() in self.keys:
                event_dict[key] = REDACTED
        return event_dict


def configure_logging(settings: GuardianGateSettings | None = None) -> None:
    """Configure structlog with JSON output."""

    settings = settings or get_settings()
    timestamper = structlog.processors.TimeStamper(fmt="iso")
    shared_processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        timestamper,
        RedactKeys(settings.pii_redaction_keys),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    # Loggers are not cached so structlog.testing.capture_logs sees module-level loggers.
    structlog.configure(
        processors=shared_processors
        + [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        stream=sys.stdout,
        format="%(message)s",
        force=True,
    )

    if not settings.log_message_text:
        structlog.get_logger(__name__).info("message_text_logging_disabled")


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structured logger."""

    return structlog.get_logger(name)


__all__ = ["REDACTED", "RedactKeys", "configure_logging", "get_logger"]
