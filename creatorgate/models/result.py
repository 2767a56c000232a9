"""Result wrapper models returned by the gateway."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from creatorgate.models.candidate import SearchCandidate
from creatorgate.models.profile import CanonicalProfile
from creatorgate.platforms import Platform


class SearchPage(BaseModel):
    """One filter-based search against a single platform."""

    platform: Platform
    total: int = 0
    items: list[SearchCandidate] = []
    relaxed: bool = False


class CreatorSearchResult(BaseModel):
    """Ranked, de-duplicated hits merged across platforms."""

    query: str
    platforms: list[Platform]
    items: list[SearchCandidate] = []
    total: int = 0
    errors: dict[str, str] = {}


class ProfileReport(BaseModel):
    """Wrapper for a profile report request."""

    profile: CanonicalProfile
    cached: bool = False
    cache_age_seconds: float | None = None
    persisted: bool = False
    fetched_at: datetime


class SocialProfileSummary(BaseModel):
    """Public-safe slim view of a cached profile."""

    provider: Platform
    username: str | None = None
    display_name: str | None = None
    url: str | None = None
    picture: str | None = None

    followers: int | None = None
    engagements: float | None = None
    engagement_rate: float | None = None
    average_views: float | None = None

    stats: dict[str, Any] | None = None
    categories: list[Any] = []

    recent_posts: list[Any] = []
    popular_posts: list[Any] = []
    hashtags: list[Any] = []
    mentions: list[Any] = []
    brand_affinity: list[Any] = []
    lookalikes: list[Any] = []
    sponsored_posts: list[Any] = []

    created_at: datetime | None = None
    updated_at: datetime | None = None
