"""
Integration tests - live calls against the real provider API.

These spend provider credits; run sparingly and only with a real token.

Run with: CREATORGATE_API_TOKEN=... pytest tests/test_integration_provider.py -v
"""

import os

import pytest

from creatorgate import CreatorGateway, GatewayConfig
from creatorgate.config import CacheBackend
from creatorgate.platforms import Platform

# Mark all tests in this module as integration tests (slow, requires internet)
pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.environ.get("CREATORGATE_API_TOKEN"),
        reason="CREATORGATE_API_TOKEN not set",
    ),
]

# Well-known accounts per platform: (query, expected username)
TEST_ACCOUNTS = {
    Platform.INSTAGRAM: ("cristiano", "cristiano"),
    Platform.TIKTOK: ("khaby.lame", "khaby.lame"),
    Platform.YOUTUBE: ("mkbhd", "mkbhd"),
}


def live_config(tmp_path) -> GatewayConfig:
    return GatewayConfig(cache_backend=CacheBackend.SQLITE, sqlite_path=str(tmp_path / "live.db"))


@pytest.mark.asyncio
@pytest.mark.parametrize("platform", list(TEST_ACCOUNTS))
async def test_lookup_finds_known_account(platform, tmp_path):
    query, expected = TEST_ACCOUNTS[platform]
    async with CreatorGateway(live_config(tmp_path)) as gateway:
        items = await gateway.lookup_users("integration", platform, query, limit=5)

    assert items, f"No {platform.value} hits for {query!r}"
    assert expected in [(c.username or "").lower() for c in items]


@pytest.mark.asyncio
async def test_report_then_cache_hit(tmp_path):
    query, _ = TEST_ACCOUNTS[Platform.YOUTUBE]
    async with CreatorGateway(live_config(tmp_path)) as gateway:
        hits = await gateway.lookup_users("integration", Platform.YOUTUBE, query, limit=1)
        user_id = hits[0].user_id

        fresh = await gateway.report("integration", Platform.YOUTUBE, user_id)
        cached = await gateway.report("integration", Platform.YOUTUBE, user_id)

    assert fresh.persisted is True
    assert fresh.profile.followers and fresh.profile.followers > 0
    assert cached.cached is True
    assert cached.profile.record_id == fresh.profile.record_id
