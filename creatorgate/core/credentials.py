"""Credential encodings and the order they are tried in."""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from creatorgate.config import GatewayConfig

BEARER_PREFIX = "bearer "
API_KEY_PREFIXES = ("key_", "api_", "apikey_")


class CredentialScheme(str, Enum):
    """Ways of putting the shared secret into request headers."""
    BEARER = "bearer"
    ACCESS_TOKEN = "access_token"
    API_KEY = "api_key"


# Header each scheme writes; order here is the fallback order after the primary.
SCHEME_HEADERS: dict[CredentialScheme, str] = {
    CredentialScheme.BEARER: "Authorization",
    CredentialScheme.ACCESS_TOKEN: "x-access-token",
    CredentialScheme.API_KEY: "x-api-key",
}


@dataclass(frozen=True)
class CredentialVariant:
    """One header encoding of the secret."""

    scheme: CredentialScheme
    header_name: str
    header_value: str

    def headers(self) -> dict[str, str]:
        return {self.header_name: self.header_value}

    def __repr__(self) -> str:
        return f"CredentialVariant(scheme={self.scheme.value!r}, header_name={self.header_name!r})"


def strip_secret(secret: str) -> str:
    """Remove whitespace and any leading ``Bearer`` marker from the secret."""
    secret = (secret or "").strip()
    if secret.lower().startswith(BEARER_PREFIX):
        secret = secret[len(BEARER_PREFIX):].strip()
    return secret


def infer_scheme(secret: str) -> CredentialScheme:
    """
    Guess the preferred encoding from the shape of the configured secret.

    Examples:
        "Bearer abc" -> BEARER
        "eyJh.eyJz.sig" -> ACCESS_TOKEN
        "key_123" -> API_KEY
        "abc123" -> BEARER
    """
    raw = (secret or "").strip()
    if raw.lower().startswith(BEARER_PREFIX):
        return CredentialScheme.BEARER

    parts = raw.split(".")
    if len(parts) == 3 and all(parts):
        return CredentialScheme.ACCESS_TOKEN

    if raw.lower().startswith(API_KEY_PREFIXES):
        return CredentialScheme.API_KEY

    return CredentialScheme.BEARER


def resolve_scheme_order(
    secret: str,
    override: CredentialScheme | None = None,
) -> list[CredentialScheme]:
    """
    Order every supported scheme with the primary one first.

    Args:
        secret: Configured shared secret
        override: Explicit primary scheme, wins over inference

    Returns:
        Non-empty, de-duplicated list of schemes
    """
    primary = CredentialScheme(override) if override else infer_scheme(secret)
    order = [primary]
    for scheme in SCHEME_HEADERS:
        if scheme not in order:
            order.append(scheme)
    return order


def build_credential_variants(config: "GatewayConfig") -> list[CredentialVariant]:
    """Derive the ordered credential variants from static configuration."""
    raw_secret = config.api_token.get_secret_value()
    secret = strip_secret(raw_secret)

    variants = []
    for scheme in resolve_scheme_order(raw_secret, config.auth_scheme):
        value = f"Bearer {secret}" if scheme == CredentialScheme.BEARER else secret
        variants.append(CredentialVariant(scheme, SCHEME_HEADERS[scheme], value))
    return variants
