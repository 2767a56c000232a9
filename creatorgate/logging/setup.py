"""Structlog configuration for creatorgate."""

import logging
import sys
from typing import Any

import structlog

from creatorgate.config import GatewayConfig, LogFormat

# Event keys whose values are provider credentials or carry them.
SECRET_KEYS = frozenset({
    "api_token",
    "token",
    "access_token",
    "api_key",
    "secret",
    "authorization",
    "x-api-key",
    "headers",
})

REDACTED = "***"


def redact_secrets(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Mask credential-bearing keys, including inside nested dicts."""
    return _redact(event_dict)


def _redact(mapping: dict) -> dict:
    cleaned = {}
    for key, value in mapping.items():
        if isinstance(key, str) and key.lower() in SECRET_KEYS:
            cleaned[key] = _redact(value) if isinstance(value, dict) and key.lower() == "headers" else REDACTED
        elif isinstance(value, dict):
            cleaned[key] = _redact(value)
        else:
            cleaned[key] = value
    return cleaned


def configure_logging(config: GatewayConfig | None = None) -> None:
    """
    Configure structlog for the gateway.

    Logs go to stderr so CLI output on stdout stays machine-readable.
    Credentials are masked before any renderer sees the event.

    Args:
        config: GatewayConfig instance, uses defaults if None
    """
    if config is None:
        config = GatewayConfig()

    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)

    processors: list = [
        structlog.contextvars.merge_contextvars,
        redact_secrets,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.log_format == LogFormat.JSON:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def bind_request(account_id: str | None, operation: str, **extra: Any) -> None:
    """
    Tag later events in the current context with the calling account and operation.

    Each FastAPI request runs in its own context, so bindings do not leak
    between requests.
    """
    structlog.contextvars.bind_contextvars(account_id=account_id, operation=operation, **extra)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Logger bound to a component name."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(component=name)
    return logger
