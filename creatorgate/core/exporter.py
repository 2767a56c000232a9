"""Export utilities for gateway results."""

from pathlib import Path

from pydantic import BaseModel

from creatorgate.models.profile import CanonicalProfile
from creatorgate.models.result import ProfileReport, SocialProfileSummary


def to_json(result: BaseModel, indent: int = 2) -> str:
    """
    Convert a result model to a JSON string.

    Args:
        result: ProfileReport, CreatorSearchResult or any other result model
        indent: JSON indentation level

    Returns:
        JSON string
    """
    return result.model_dump_json(indent=indent)


def to_dict(result: BaseModel) -> dict:
    """
    Convert a result model to a JSON-safe dictionary.

    Args:
        result: Result model to convert

    Returns:
        Dictionary representation
    """
    return result.model_dump(mode="json")


def save_json(
    result: BaseModel,
    filepath: str | Path,
    indent: int = 2,
) -> Path:
    """
    Save a result model to a JSON file.

    Args:
        result: Result model to save
        filepath: Output file path
        indent: JSON indentation level

    Returns:
        Path to saved file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(result.model_dump_json(indent=indent), encoding="utf-8")
    return path


def load_json(filepath: str | Path) -> ProfileReport:
    """
    Load a ProfileReport from a JSON file.

    Args:
        filepath: Path to JSON file

    Returns:
        ProfileReport instance
    """
    path = Path(filepath)
    return ProfileReport.model_validate_json(path.read_text(encoding="utf-8"))


def to_social_profile(profile: CanonicalProfile) -> SocialProfileSummary:
    """
    Project a cached profile onto its public-safe summary.

    Drops the raw provider payload, audience breakdowns and store metadata
    other than timestamps.
    """
    return SocialProfileSummary(
        provider=profile.provider,
        username=profile.username or profile.handle,
        display_name=profile.display_name,
        url=profile.url,
        picture=profile.picture,
        followers=profile.followers,
        engagements=profile.engagements,
        engagement_rate=profile.engagement_rate,
        average_views=profile.average_views,
        stats=profile.stats,
        categories=profile.categories or [],
        recent_posts=profile.recent_posts or [],
        popular_posts=profile.popular_posts or [],
        hashtags=profile.hashtags or [],
        mentions=profile.mentions or [],
        brand_affinity=profile.brand_affinity or [],
        lookalikes=profile.lookalikes or [],
        sponsored_posts=profile.sponsored_posts or [],
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


def to_social_profiles(profiles: list[CanonicalProfile]) -> list[SocialProfileSummary]:
    """Summaries for several cached profiles, in input order."""
    return [to_social_profile(p) for p in profiles]
