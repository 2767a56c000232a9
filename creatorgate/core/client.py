"""httpx-based client for the analytics provider API."""

from typing import Any
from urllib.parse import quote

import httpx

from creatorgate.config import GatewayConfig
from creatorgate.core.credentials import CredentialVariant, build_credential_variants
from creatorgate.exceptions import (
    CredentialExhaustedError,
    UpstreamRejectedError,
    UpstreamUnavailableError,
    sanitize_upstream_message,
)
from creatorgate.logging import get_logger
from creatorgate.platforms import Platform

# The only status that makes another credential encoding worth trying.
AUTH_FAILURE_STATUS = 401


def _parse_body(response: httpx.Response) -> Any:
    """Parsed JSON body, or None when the body is empty or not JSON."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(payload: Any, status_code: int) -> str:
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return f"HTTP {status_code}"


class ProviderClient:
    """
    Stateless caller of the provider API with credential fallback.

    Example:
        async with ProviderClient(config) as client:
            payload = await client.report(Platform.INSTAGRAM, "173560420")
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            config: GatewayConfig instance, uses defaults if None
            transport: Optional httpx transport (tests inject a mock)
        """
        self.config = config or GatewayConfig()
        self._variants: list[CredentialVariant] = build_credential_variants(self.config)
        self._log = get_logger("provider_client")
        self._http = httpx.AsyncClient(
            base_url=self.config.api_base_url.rstrip("/"),
            timeout=httpx.Timeout(self.config.request_timeout_seconds),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "ProviderClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    @property
    def variants(self) -> list[CredentialVariant]:
        return list(self._variants)

    async def call(
        self,
        method: str,
        path: str,
        query: dict[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        """
        Issue a provider request, falling back across credential encodings.

        Only a 401 moves on to the next encoding; any other failure is raised
        straight away.

        Args:
            method: HTTP method
            path: Path relative to the provider base URL
            query: Query string parameters
            body: JSON body

        Returns:
            Parsed JSON payload, or None for an empty/non-JSON body

        Raises:
            CredentialExhaustedError: Every encoding was rejected
            UpstreamRejectedError: Any other non-success status
            UpstreamUnavailableError: Transport failure
        """
        params = {k: v for k, v in (query or {}).items() if v is not None}
        last_auth_error: CredentialExhaustedError | None = None

        for attempt, variant in enumerate(self._variants, start=1):
            try:
                response = await self._http.request(
                    method,
                    "/" + path.lstrip("/"),
                    params=params or None,
                    json=body,
                    headers=variant.headers(),
                )
            except httpx.TransportError as e:
                self._log.error(
                    "upstream_unavailable",
                    method=method,
                    path=path,
                    error=type(e).__name__,
                )
                raise UpstreamUnavailableError() from e

            payload = _parse_body(response)
            status = response.status_code

            if response.is_success:
                self._log.debug(
                    "upstream_ok",
                    method=method,
                    path=path,
                    status=status,
                    scheme=variant.scheme.value,
                    attempt=attempt,
                )
                return payload

            if status == AUTH_FAILURE_STATUS:
                self._log.warning(
                    "credential_rejected",
                    path=path,
                    scheme=variant.scheme.value,
                    attempt=attempt,
                )
                last_auth_error = CredentialExhaustedError(status)
                continue

            message = sanitize_upstream_message(
                _error_message(payload, status),
                self.config.provider_name,
            )
            self._log.warning("upstream_rejected", method=method, path=path, status=status)
            raise UpstreamRejectedError(status, message, payload)

        self._log.error("credentials_exhausted", path=path, attempts=len(self._variants))
        raise last_auth_error or CredentialExhaustedError()

    async def search_users(self, platform: Platform, query: str, limit: int) -> Any:
        """Lightweight handle search: ``GET /{platform}/users``."""
        return await self.call(
            "GET",
            f"/{Platform(platform).value}/users",
            query={"limit": limit, "query": query},
        )

    async def search(self, platform: Platform, body: dict[str, Any]) -> Any:
        """Filter-based discovery: ``POST /{platform}/search``."""
        return await self.call("POST", f"/{Platform(platform).value}/search", body=body)

    async def report(
        self,
        platform: Platform,
        user_id: str,
        calculation_method: str | None = None,
    ) -> Any:
        """Full profile report: ``GET /{platform}/profile/{user_id}/report``."""
        method = calculation_method or self.config.calculation_method.value
        return await self.call(
            "GET",
            f"/{Platform(platform).value}/profile/{quote(str(user_id), safe='')}/report",
            query={"calculationMethod": method},
        )
