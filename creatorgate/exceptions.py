"""Custom exception hierarchy for creatorgate."""

import re
from typing import Any

GENERIC_UPSTREAM_MESSAGE = "Upstream provider request failed"
CREDENTIAL_EXHAUSTED_MESSAGE = "Upstream provider rejected the configured credentials"
UNAVAILABLE_MESSAGE = "Upstream provider is unavailable"

_SENSITIVE_TERMS = ("token", "bearer", "authorization", "api key", "apikey", "api-key")


class CreatorGateError(Exception):
    """Base exception for all creatorgate errors."""


class InvalidRequestError(CreatorGateError):
    """Caller supplied an unusable platform, query or identifier."""


class QuotaExceededError(CreatorGateError):
    """The account has no quota left for the requested feature."""

    def __init__(self, feature_key: str, limit: int, used: int, requested: int, remaining: int):
        self.feature_key = feature_key
        self.limit = limit
        self.used = used
        self.requested = requested
        self.remaining = remaining
        super().__init__(f"Quota exceeded for feature {feature_key}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "feature": self.feature_key,
            "limit": self.limit,
            "used": self.used,
            "requested": self.requested,
            "remaining": self.remaining,
        }


class UpstreamError(CreatorGateError):
    """Base for failures talking to the analytics provider."""

    def __init__(self, status_code: int, message: str, payload: Any = None):
        self.status_code = status_code
        self.message = message
        self.payload = payload
        super().__init__(f"HTTP {status_code}: {message}")


class CredentialExhaustedError(UpstreamError):
    """Every credential encoding was rejected as unauthorized."""

    def __init__(self, status_code: int = 401, payload: Any = None):
        super().__init__(status_code, CREDENTIAL_EXHAUSTED_MESSAGE, payload)


class UpstreamRejectedError(UpstreamError):
    """Provider answered with a non-auth, non-success status."""


class ProfileNotFoundError(UpstreamRejectedError):
    """No search or report result for the given handle or id."""

    def __init__(self, message: str = "Profile not found", payload: Any = None):
        super().__init__(404, message, payload)


class UpstreamUnavailableError(UpstreamError):
    """Transport failure talking to the provider."""

    def __init__(self, status_code: int = 503):
        super().__init__(status_code, UNAVAILABLE_MESSAGE)


class CacheError(CreatorGateError):
    """Cache operation failed."""


class DuplicateKeyError(CacheError):
    """Store rejected a write because a uniqueness constraint was violated."""

    def __init__(self, field: str, value: str | None = None):
        self.field = field
        self.value = value
        super().__init__(f"Duplicate key on {field}={value!r}")


class CacheConflictError(CacheError):
    """Uniqueness conflict persisted after an authoritative re-read."""


class ConfigError(CreatorGateError):
    """Invalid configuration."""


def sanitize_upstream_message(message: str | None, provider_name: str | None = None) -> str:
    """
    Scrub an upstream error message before it reaches a caller.

    Messages mentioning the provider or anything credential-like are replaced
    wholesale with a generic message.

    Args:
        message: Raw message from the provider
        provider_name: Provider name that must not leak to callers

    Returns:
        The original message, or the generic replacement
    """
    if not message or not str(message).strip():
        return GENERIC_UPSTREAM_MESSAGE

    text = str(message)
    lowered = text.lower()
    terms = list(_SENSITIVE_TERMS)
    if provider_name:
        terms.append(provider_name.lower())

    for term in terms:
        if re.search(re.escape(term), lowered):
            return GENERIC_UPSTREAM_MESSAGE
    return text
