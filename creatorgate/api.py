"""FastAPI web server for the creatorgate gateway."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from creatorgate import CreatorGateway, GatewayConfig, __version__
from creatorgate.core.exporter import to_dict
from creatorgate.exceptions import (
    CredentialExhaustedError,
    InvalidRequestError,
    ProfileNotFoundError,
    QuotaExceededError,
    UpstreamRejectedError,
    UpstreamUnavailableError,
)
from creatorgate.platforms import Platform


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


class ConfigResponse(BaseModel):
    """Current gateway configuration, without secrets."""

    api_base_url: str = Field(..., description="Provider API base URL.")
    auth_scheme: str | None = Field(
        ...,
        description="Explicit primary credential encoding, or null when inferred from the secret. "
        "Options: 'bearer', 'access_token', 'api_key'.",
    )
    enabled_platforms: list[str] = Field(..., description="Platforms callers may query.")
    calculation_method: str = Field(
        ...,
        description="How report metrics are aggregated per post. Options: 'median', 'average'.",
        json_schema_extra={"example": "median"},
    )
    lookup_limit: int = Field(..., description="Default hits per platform for handle lookups.")
    search_limit: int = Field(..., description="Default cap on aggregated search results.")
    cache_backend: str = Field(
        ...,
        description="Storage backend for cached profiles. Options: 'sqlite', 'redis', 'none'.",
        json_schema_extra={"example": "sqlite", "enum": ["sqlite", "redis", "none"]},
    )
    log_level: str = Field(..., description="Logging verbosity level.")


# Global gateway instance
_gateway: Optional[CreatorGateway] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage gateway lifecycle."""
    global _gateway
    _gateway = CreatorGateway(GatewayConfig())
    await _gateway.__aenter__()
    yield
    await _gateway.__aexit__(None, None, None)
    _gateway = None


def get_gateway() -> CreatorGateway:
    """Dependency returning the running gateway."""
    return _gateway


app = FastAPI(
    title="creatorgate API",
    description="Creator search and profile report gateway",
    version=__version__,
    lifespan=lifespan,
)


def _error(status_code: int, error: str, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message, **extra})


@app.exception_handler(QuotaExceededError)
async def quota_exceeded_handler(request: Request, exc: QuotaExceededError):
    return _error(403, "limit_reached", str(exc), usage=exc.to_dict())


@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError):
    return _error(400, "invalid_request", str(exc))


@app.exception_handler(ProfileNotFoundError)
async def not_found_handler(request: Request, exc: ProfileNotFoundError):
    return _error(404, "not_found", exc.message)


@app.exception_handler(CredentialExhaustedError)
async def credential_handler(request: Request, exc: CredentialExhaustedError):
    return _error(502, "upstream_auth_failed", exc.message)


@app.exception_handler(UpstreamRejectedError)
async def upstream_rejected_handler(request: Request, exc: UpstreamRejectedError):
    status = exc.status_code if 400 <= exc.status_code < 500 else 502
    return _error(status, "upstream_rejected", exc.message, upstream_status=exc.status_code)


@app.exception_handler(UpstreamUnavailableError)
async def unavailable_handler(request: Request, exc: UpstreamUnavailableError):
    return _error(exc.status_code, "service_unavailable", exc.message)


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Check API health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now().isoformat(),
    )


@app.get("/api/config", response_model=ConfigResponse, tags=["System"])
async def get_config(gateway: CreatorGateway = Depends(get_gateway)):
    """Gateway configuration in effect, secrets excluded."""
    config = gateway.config
    return ConfigResponse(
        api_base_url=config.api_base_url,
        auth_scheme=config.auth_scheme.value if config.auth_scheme else None,
        enabled_platforms=[p.value for p in config.enabled_platforms],
        calculation_method=config.calculation_method.value,
        lookup_limit=config.lookup_limit,
        search_limit=config.search_limit,
        cache_backend=config.cache_backend.value,
        log_level=config.log_level,
    )


@app.get("/api/{platform}/users", tags=["Search"])
async def lookup_users(
    platform: str,
    query: str = Query(..., min_length=1, description="Handle or name fragment"),
    limit: int = Query(10, ge=1, le=50, description="Max hits"),
    account_id: str = Header(..., alias="X-Account-Id"),
    gateway: CreatorGateway = Depends(get_gateway),
):
    """Lightweight handle search on one platform."""
    items = await gateway.lookup_users(account_id, platform, query, limit=limit)
    return {"platform": platform, "total": len(items), "items": [to_dict(i) for i in items]}


@app.post("/api/{platform}/search", tags=["Search"])
async def search_platform(
    platform: str,
    body: dict[str, Any],
    account_id: str = Header(..., alias="X-Account-Id"),
    gateway: CreatorGateway = Depends(get_gateway),
):
    """Filter-based discovery on one platform."""
    page = await gateway.search(account_id, platform, body)
    return to_dict(page)


@app.get("/api/search", tags=["Search"])
async def search_creators(
    query: str = Query(..., min_length=1, description="Name, handle or profile URL"),
    platforms: list[Platform] | None = Query(None, description="Platforms to search"),
    exact: bool = Query(False, description="Only exact username/handle matches"),
    limit: int | None = Query(None, ge=1, le=100),
    account_id: str = Header(..., alias="X-Account-Id"),
    gateway: CreatorGateway = Depends(get_gateway),
):
    """Ranked creator search across platforms."""
    result = await gateway.search_creators(
        account_id,
        query,
        platforms=platforms,
        exact=exact,
        limit=limit,
    )
    return to_dict(result)


@app.get("/api/{platform}/report/{user_id}", tags=["Reports"])
async def profile_report(
    platform: str,
    user_id: str,
    force_refresh: bool = Query(False, description="Skip cache"),
    linked_entity_id: str | None = Query(None, description="Internal creator account to link"),
    calculation_method: str | None = Query(None, pattern="^(median|average)$"),
    account_id: str = Header(..., alias="X-Account-Id"),
    gateway: CreatorGateway = Depends(get_gateway),
):
    """Full profile report for one creator."""
    report = await gateway.report(
        account_id,
        platform,
        user_id,
        force_refresh=force_refresh,
        linked_entity_id=linked_entity_id,
        calculation_method=calculation_method,
    )
    return to_dict(report)


@app.get("/api/entities/{linked_entity_id}/profiles", tags=["Reports"])
async def entity_profiles(
    linked_entity_id: str,
    gateway: CreatorGateway = Depends(get_gateway),
):
    """Public-safe summaries of the profiles cached for an internal entity."""
    profiles = await gateway.cached_profiles(linked_entity_id)
    return {"total": len(profiles), "profiles": [to_dict(p) for p in profiles]}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
