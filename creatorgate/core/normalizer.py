"""Normalization of provider payloads into canonical models."""

import copy
import math
from typing import Any, Callable

from creatorgate.models.candidate import SearchCandidate
from creatorgate.models.profile import CanonicalProfile
from creatorgate.platforms import Platform, username_from_url

# Keys the provider uses for the list of hits in a search response.
RESULT_BAG_KEYS = (
    "results",
    "items",
    "influencers",
    "directs",
    "lookalikes",
    "users",
    "channels",
)

_MULTIPLIERS = {
    "K": 1_000,
    "M": 1_000_000,
    "B": 1_000_000_000,
}


def safe_number(value: Any) -> int | float | None:
    """
    Convert provider numbers to int/float, or None when unusable.

    Examples:
        1200 -> 1200
        "1.2K" -> 1200
        "1,234" -> 1234
        "n/a" -> None
        float("nan") -> None
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = value.strip().upper().replace(",", "").replace("_", "")
        if not text:
            return None
        multiplier = 1
        if text[-1] in _MULTIPLIERS:
            multiplier = _MULTIPLIERS[text[-1]]
            text = text[:-1]
        try:
            number = float(text) * multiplier
        except ValueError:
            return None
    else:
        return None

    if isinstance(number, float):
        if math.isnan(number) or math.isinf(number):
            return None
        if number.is_integer() and isinstance(value, str):
            return int(number)
    return number


def _as_int(value: Any) -> int | None:
    number = safe_number(value)
    return int(number) if number is not None else None


def _as_float(value: Any) -> float | None:
    number = safe_number(value)
    return float(number) if number is not None else None


def _as_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _as_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
    return None


def _as_dict(value: Any) -> dict | None:
    return copy.deepcopy(value) if isinstance(value, dict) else None


def _as_list(value: Any) -> list | None:
    return copy.deepcopy(value) if isinstance(value, list) else None


def _as_any(value: Any) -> Any:
    return copy.deepcopy(value)


def _handle(value: Any) -> str | None:
    text = _as_str(value)
    if not text:
        return None
    return text.lstrip("@") or None


# canonical field -> (provider aliases, coercion)
PROFILE_FIELDS: dict[str, tuple[tuple[str, ...], Callable[[Any], Any]]] = {
    "user_id": (("userId", "user_id", "channelId"), _as_str),
    "username": (("username",), _handle),
    "display_name": (("fullname", "fullName", "displayName", "name"), _as_str),
    "handle": (("handle", "customUrl"), _as_str),
    "url": (("url", "channelUrl", "profileUrl"), _as_str),
    "picture": (("picture", "avatar", "profilePicture"), _as_str),
    "followers": (("followers", "followerCount", "subscribers"), _as_int),
    "engagements": (("engagements",), _as_float),
    "engagement_rate": (("engagementRate",), _as_float),
    "average_views": (("averageViews",), _as_float),
    "is_private": (("isPrivate",), _as_bool),
    "is_verified": (("isVerified",), _as_bool),
    "account_type": (("accountType",), _as_str),
    "sec_uid": (("secUid",), _as_str),
    "city": (("city",), _as_str),
    "state": (("state",), _as_str),
    "country": (("country",), _as_str),
    "language": (("language",), _as_any),
    "age_group": (("ageGroup",), _as_str),
    "gender": (("gender",), _as_str),
    "stats": (("stats",), _as_dict),
    "stats_by_content_type": (("statsByContentType",), _as_dict),
    "posts_count": (("postsCount", "postsCounts"), _as_int),
    "avg_likes": (("avgLikes",), _as_float),
    "avg_comments": (("avgComments",), _as_float),
    "avg_views": (("avgViews",), _as_float),
    "avg_reels_plays": (("avgReelsPlays",), _as_float),
    "total_likes": (("totalLikes",), _as_float),
    "total_views": (("totalViews",), _as_float),
    "bio": (("description", "bio"), _as_str),
    "categories": (("categories", "interests"), _as_list),
    "hashtags": (("hashtags",), _as_list),
    "mentions": (("mentions",), _as_list),
    "brand_affinity": (("brandAffinity",), _as_list),
    "recent_posts": (("recentPosts",), _as_list),
    "popular_posts": (("popularPosts",), _as_list),
    "sponsored_posts": (("sponsoredPosts",), _as_list),
    "paid_post_performance": (("paidPostPerformance",), _as_float),
    "paid_post_performance_views": (("paidPostPerformanceViews",), _as_float),
    "sponsored_posts_median_views": (("sponsoredPostsMedianViews",), _as_float),
    "sponsored_posts_median_likes": (("sponsoredPostsMedianLikes",), _as_float),
    "non_sponsored_posts_median_views": (("nonSponsoredPostsMedianViews",), _as_float),
    "non_sponsored_posts_median_likes": (("nonSponsoredPostsMedianLikes",), _as_float),
    "audience": (("audience",), _as_dict),
    "audience_commenters": (("audienceCommenters",), _as_dict),
    "audience_extra": (("audienceExtra",), _as_dict),
    "lookalikes": (("lookalikes", "audienceLookalikes"), _as_list),
}

# canonical candidate field -> provider aliases
CANDIDATE_FIELDS: dict[str, tuple[str, ...]] = {
    "user_id": ("userId", "user_id", "channelId", "id", "secUid"),
    "username": ("username", "handle", "slug", "customUrl", "vanityUrl", "uniqueId"),
    "display_name": ("fullname", "fullName", "displayName", "name", "title", "nickname"),
    "url": ("url", "channelUrl", "profileUrl", "link"),
    "picture": ("picture", "avatar", "profilePicture", "thumbnail", "image"),
    "followers": ("followers", "followerCount", "subscribers", "subscriberCount"),
    "engagement_rate": ("engagementRate", "engagement_rate", "er"),
    "engagements": ("engagements", "avgEngagements", "engagementCount"),
    "average_views": ("averageViews", "avgViews", "avg_views"),
    "is_verified": ("isVerified", "verified", "is_verified"),
    "is_private": ("isPrivate", "private", "is_private"),
}


def _sources(payload: Any) -> list[dict]:
    """Candidate dicts holding profile fields, most specific first."""
    if not isinstance(payload, dict):
        return []
    root = payload.get("profile") if isinstance(payload.get("profile"), dict) else payload
    nested = root.get("profile") if isinstance(root.get("profile"), dict) else None

    sources = []
    for source in (nested, root, payload):
        if isinstance(source, dict) and not any(source is s for s in sources):
            sources.append(source)
    return sources


def _pick(
    sources: list[dict],
    aliases: tuple[str, ...],
    coerce: Callable[[Any], Any] = _as_any,
) -> Any:
    """First value that survives coercion, checking every source for every alias."""
    for source in sources:
        for alias in aliases:
            value = source.get(alias)
            if value is None or value == "":
                continue
            value = coerce(value)
            if value is not None:
                return value
    return None


def normalize(platform: Platform, payload: Any) -> CanonicalProfile:
    """
    Map a raw report payload into a CanonicalProfile.

    Each field is resolved on its own: the nested ``profile.profile`` shape
    first, then ``profile``, then the flat payload. Missing fields stay None.

    Args:
        platform: Platform the payload came from
        payload: Parsed provider response

    Returns:
        CanonicalProfile with the untouched payload kept in provider_raw
    """
    sources = _sources(payload)
    fields = {}
    for name, (aliases, coerce) in PROFILE_FIELDS.items():
        value = _pick(sources, aliases, coerce)
        if value is not None:
            fields[name] = value

    if "username" not in fields:
        derived = username_from_url(platform, fields.get("url"))
        if derived:
            fields["username"] = derived

    return CanonicalProfile(
        provider=Platform(platform),
        provider_raw=copy.deepcopy(payload),
        **fields,
    )


def canonical_user_id(profile: CanonicalProfile) -> str | None:
    """Stable cache key for a profile: user id, then secUid, then username."""
    return profile.user_id or profile.sec_uid or profile.username


def normalize_candidate(platform: Platform, raw: Any) -> SearchCandidate:
    """
    Map one raw search hit into a SearchCandidate.

    Args:
        platform: Platform searched
        raw: One element of the provider's result bag

    Returns:
        SearchCandidate; numeric fields that fail to parse are left out
    """
    sources = _sources(raw)

    def pick(field: str, coerce: Callable[[Any], Any]) -> Any:
        return _pick(sources, CANDIDATE_FIELDS[field], coerce)

    url = pick("url", _as_str)
    username = pick("username", _handle) or username_from_url(platform, url)
    display_name = pick("display_name", _as_str) or username or ""

    return SearchCandidate(
        provider=Platform(platform),
        user_id=pick("user_id", _as_str),
        username=username,
        display_name=display_name,
        followers=pick("followers", _as_int) or 0,
        engagement_rate=pick("engagement_rate", _as_float) or 0.0,
        engagements=pick("engagements", _as_float),
        average_views=pick("average_views", _as_float),
        picture=pick("picture", _as_str),
        url=url,
        is_verified=bool(pick("is_verified", _as_bool)),
        is_private=bool(pick("is_private", _as_bool)),
    )


def extract_results(payload: Any) -> tuple[list[Any], int]:
    """
    Pull the hit list and total count out of a search response.

    Returns:
        (items, total); total falls back to the number of items
    """
    if isinstance(payload, list):
        return payload, len(payload)
    if not isinstance(payload, dict):
        return [], 0

    # First non-empty bag wins; responses often carry several, some empty.
    items: list[Any] = []
    for key in RESULT_BAG_KEYS:
        bag = payload.get(key)
        if isinstance(bag, list) and bag:
            items = bag
            break

    total = _as_int(payload.get("total"))
    return items, total if total is not None else len(items)
