"""Shared helpers: canned provider payloads and a fake provider transport."""

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from creatorgate.config import CacheBackend, GatewayConfig

FIXTURES_DIR = Path(__file__).parent / "fixtures"

PROVIDER_URL = "https://provider.test"


def load_payload(name: str) -> Any:
    """Load a provider payload from tests/fixtures."""
    path = FIXTURES_DIR / f"{name}.json"
    if not path.exists():
        pytest.skip(f"Fixture not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


Route = tuple[int, Any] | Callable[[httpx.Request], httpx.Response]


class FakeProvider:
    """
    Routes requests by (method, path) to canned responses and records them.

    A route is either ``(status, json_payload)`` or a callable taking the
    request and returning an ``httpx.Response``.
    """

    def __init__(self, routes: dict[tuple[str, str], Route] | None = None):
        self.routes = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": True, "message": "Not found"})
        if callable(route):
            return route(request)
        status, payload = route
        return httpx.Response(status, json=payload)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)


def make_config(tmp_path=None, **overrides) -> GatewayConfig:
    """Gateway config pointed at the fake provider and a throwaway cache."""
    values: dict[str, Any] = {
        "api_base_url": PROVIDER_URL,
        "api_token": "test-secret",
        "log_level": "WARNING",
    }
    if tmp_path is not None:
        values["cache_backend"] = CacheBackend.SQLITE
        values["sqlite_path"] = str(tmp_path / "gateway.db")
    else:
        values["cache_backend"] = CacheBackend.NONE
    values.update(overrides)
    return GatewayConfig(**values)
