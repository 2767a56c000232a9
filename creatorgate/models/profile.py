"""Canonical profile model."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from creatorgate.platforms import Platform

# Fields that identify a record in the cache; never overwritten once set.
IDENTITY_FIELDS = ("provider", "user_id", "linked_entity_id")

# Store bookkeeping, owned by the store rather than the normalizer.
STORE_FIELDS = ("record_id", "created_at", "updated_at")


class CanonicalProfile(BaseModel):
    """One creator on one platform, normalized from any provider payload.

    Every content field defaults to ``None`` so an absent upstream value can
    be told apart from a real zero or empty string when merging.
    """

    provider: Platform
    user_id: str | None = None
    linked_entity_id: str | None = None

    # Identity
    username: str | None = None
    display_name: str | None = None
    handle: str | None = None
    url: str | None = None
    picture: str | None = None

    # Headline metrics
    followers: int | None = None
    engagements: float | None = None
    engagement_rate: float | None = None
    average_views: float | None = None

    # State/meta
    is_private: bool | None = None
    is_verified: bool | None = None
    account_type: str | None = None
    sec_uid: str | None = None

    # Localization
    city: str | None = None
    state: str | None = None
    country: str | None = None
    language: Any = None
    age_group: str | None = None
    gender: str | None = None

    # Content stats
    stats: dict[str, Any] | None = None
    stats_by_content_type: dict[str, Any] | None = None
    posts_count: int | None = None
    avg_likes: float | None = None
    avg_comments: float | None = None
    avg_views: float | None = None
    avg_reels_plays: float | None = None
    total_likes: float | None = None
    total_views: float | None = None

    # Bio, tags, brands
    bio: str | None = None
    categories: list[Any] | None = None
    hashtags: list[Any] | None = None
    mentions: list[Any] | None = None
    brand_affinity: list[Any] | None = None

    # Posts
    recent_posts: list[Any] | None = None
    popular_posts: list[Any] | None = None
    sponsored_posts: list[Any] | None = None

    # Sponsored performance
    paid_post_performance: float | None = None
    paid_post_performance_views: float | None = None
    sponsored_posts_median_views: float | None = None
    sponsored_posts_median_likes: float | None = None
    non_sponsored_posts_median_views: float | None = None
    non_sponsored_posts_median_likes: float | None = None

    # Audience
    audience: dict[str, Any] | None = None
    audience_commenters: dict[str, Any] | None = None
    audience_extra: dict[str, Any] | None = None
    lookalikes: list[Any] | None = None

    provider_raw: Any = None

    # Store bookkeeping
    record_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
