"""Supported provider platforms and their per-platform conventions."""

import re
from dataclasses import dataclass
from enum import Enum


class Platform(str, Enum):
    """Platforms served by the analytics provider."""
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"


@dataclass(frozen=True)
class PlatformSpec:
    """Static conventions for one platform."""

    platform: Platform
    # Canonical path prefix of a profile URL; the handle follows directly.
    handle_path: str
    # Extracts the username from a profile URL.
    url_pattern: re.Pattern


PLATFORMS: dict[Platform, PlatformSpec] = {
    Platform.INSTAGRAM: PlatformSpec(
        platform=Platform.INSTAGRAM,
        handle_path="instagram.com/",
        url_pattern=re.compile(r"instagram\.com/([A-Za-z0-9._]+)", re.IGNORECASE),
    ),
    Platform.TIKTOK: PlatformSpec(
        platform=Platform.TIKTOK,
        handle_path="tiktok.com/@",
        url_pattern=re.compile(r"tiktok\.com/@([A-Za-z0-9._-]+)", re.IGNORECASE),
    ),
    Platform.YOUTUBE: PlatformSpec(
        platform=Platform.YOUTUBE,
        handle_path="youtube.com/@",
        url_pattern=re.compile(
            r"youtube\.com/(?:@|c/|user/)([A-Za-z0-9._-]+)", re.IGNORECASE
        ),
    ),
}


def get_platform_spec(platform: Platform) -> PlatformSpec:
    return PLATFORMS[Platform(platform)]


def handle_url_fragment(platform: Platform, handle: str) -> str:
    """Lowercased URL fragment identifying ``handle`` on ``platform``."""
    return f"{get_platform_spec(platform).handle_path}{handle.lstrip('@')}".lower()


def username_from_url(platform: Platform, url: str | None) -> str | None:
    """Pull the username out of a platform profile URL, if it has one."""
    if not url:
        return None
    match = get_platform_spec(platform).url_pattern.search(url)
    return match.group(1) if match else None
