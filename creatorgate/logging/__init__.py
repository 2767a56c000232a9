"""Structured logging for creatorgate."""

from creatorgate.logging.setup import configure_logging, get_logger, redact_secrets, bind_request

__all__ = ["configure_logging", "get_logger", "redact_secrets", "bind_request"]
