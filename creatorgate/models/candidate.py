"""Search candidate model."""

from pydantic import BaseModel

from creatorgate.platforms import Platform


class SearchCandidate(BaseModel):
    """A single normalized search hit, built per request and never stored."""

    provider: Platform
    user_id: str | None = None
    username: str | None = None
    display_name: str = ""
    followers: int = 0
    engagement_rate: float = 0.0
    engagements: float | None = None
    average_views: float | None = None
    picture: str | None = None
    url: str | None = None
    is_verified: bool = False
    is_private: bool = False

    # Set by the aggregator when ranking against a query
    score: int | None = None
