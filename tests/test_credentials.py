"""Unit tests for credential encodings and their fallback order."""

from creatorgate.core.credentials import (
    CredentialScheme,
    build_credential_variants,
    infer_scheme,
    resolve_scheme_order,
    strip_secret,
)
from creatorgate.config import GatewayConfig


class TestInferScheme:
    def test_bearer_prefix(self):
        assert infer_scheme("Bearer abc123") == CredentialScheme.BEARER

    def test_jwt_shape(self):
        assert infer_scheme("eyJhbGci.eyJzdWIi.c2lnbmF0dXJl") == CredentialScheme.ACCESS_TOKEN

    def test_api_key_prefix(self):
        assert infer_scheme("key_live_123") == CredentialScheme.API_KEY
        assert infer_scheme("apikey_abc") == CredentialScheme.API_KEY

    def test_opaque_defaults_to_bearer(self):
        assert infer_scheme("abc123") == CredentialScheme.BEARER

    def test_dotted_with_empty_segment_is_not_jwt(self):
        assert infer_scheme("a..b") == CredentialScheme.BEARER


class TestStripSecret:
    def test_strips_bearer_marker(self):
        assert strip_secret("  Bearer abc  ") == "abc"

    def test_plain_secret_unchanged(self):
        assert strip_secret("abc") == "abc"


class TestSchemeOrder:
    def test_primary_first_then_remaining(self):
        order = resolve_scheme_order("key_123")
        assert order[0] == CredentialScheme.API_KEY
        assert set(order) == set(CredentialScheme)
        assert len(order) == len(set(order))

    def test_override_wins(self):
        order = resolve_scheme_order("key_123", CredentialScheme.ACCESS_TOKEN)
        assert order[0] == CredentialScheme.ACCESS_TOKEN


class TestBuildVariants:
    def test_variants_for_opaque_secret(self):
        variants = build_credential_variants(GatewayConfig(api_token="abc"))
        assert [v.scheme for v in variants] == [
            CredentialScheme.BEARER,
            CredentialScheme.ACCESS_TOKEN,
            CredentialScheme.API_KEY,
        ]
        assert variants[0].headers() == {"Authorization": "Bearer abc"}
        assert variants[1].headers() == {"x-access-token": "abc"}
        assert variants[2].headers() == {"x-api-key": "abc"}

    def test_bearer_prefixed_secret_not_doubled(self):
        variants = build_credential_variants(GatewayConfig(api_token="Bearer abc"))
        assert variants[0].header_value == "Bearer abc"
        assert variants[1].header_value == "abc"

    def test_repr_hides_secret(self):
        variants = build_credential_variants(GatewayConfig(api_token="super-secret"))
        assert all("super-secret" not in repr(v) for v in variants)
