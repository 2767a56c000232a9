"""Capture live provider payloads as test fixtures."""

import asyncio
import json
from datetime import datetime
from pathlib import Path

from creatorgate.config import GatewayConfig
from creatorgate.core.client import ProviderClient
from creatorgate.core.normalizer import extract_results, normalize
from creatorgate.exceptions import UpstreamError
from creatorgate.platforms import Platform

# Handle looked up on each platform; the first hit's report is captured too
ACCOUNTS = {
    Platform.INSTAGRAM: "cristiano",
    Platform.TIKTOK: "khaby.lame",
    Platform.YOUTUBE: "mkbhd",
}

FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures"


def save(name: str, payload) -> Path:
    FIXTURES_DIR.mkdir(parents=True, exist_ok=True)
    path = FIXTURES_DIR / f"live_{name}.json"
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


async def capture(client: ProviderClient, platform: Platform, handle: str) -> dict:
    """Capture users + report payloads for one account."""
    print(f"\n{'='*60}")
    print(f"{platform.value}: @{handle}")
    print(f"{'='*60}")

    start = datetime.now()
    try:
        users = await client.search_users(platform, handle, 5)
    except UpstreamError as e:
        print(f"❌ Lookup failed: {e}")
        return {"platform": platform.value, "success": False, "error": str(e)}

    items, _ = extract_results(users)
    print(f"✓ {len(items)} lookup hits -> {save(f'users_{platform.value}', users)}")
    if not items:
        return {"platform": platform.value, "success": False, "error": "no hits"}

    user_id = items[0].get("userId") or items[0].get("channelId") or handle
    try:
        report = await client.report(platform, user_id)
    except UpstreamError as e:
        print(f"❌ Report failed: {e}")
        return {"platform": platform.value, "success": False, "error": str(e)}

    duration_ms = (datetime.now() - start).total_seconds() * 1000
    print(f"✓ Report in {duration_ms:.0f}ms -> {save(f'report_{platform.value}', report)}")

    profile = normalize(platform, report)
    print(f"  username:   {profile.username}")
    print(f"  followers:  {profile.followers}")
    print(f"  engagement: {profile.engagement_rate}")

    return {"platform": platform.value, "success": True, "user_id": profile.user_id}


async def main():
    config = GatewayConfig()
    if not config.api_token.get_secret_value():
        print("Set CREATORGATE_API_TOKEN first.")
        return

    async with ProviderClient(config) as client:
        results = [await capture(client, p, h) for p, h in ACCOUNTS.items()]

    print(f"\n{'='*60}")
    passed = sum(1 for r in results if r["success"])
    print(f"Captured {passed}/{len(results)} accounts")
    for r in results:
        mark = "✓" if r["success"] else "❌"
        print(f"  {mark} {r['platform']}: {r.get('user_id') or r.get('error')}")


if __name__ == "__main__":
    asyncio.run(main())
