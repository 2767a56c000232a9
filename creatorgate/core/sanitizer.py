"""Per-platform repair of search filter payloads before dispatch."""

import copy
from typing import Any, Callable

from creatorgate.platforms import Platform

MIN_LASTPOSTED_DAYS = 30
ALLOWED_AGE_BOUNDS = frozenset({18, 25, 35, 45, 65})
COMPOSITE_OPERATOR_KEYS = ("filterOperations", "and", "or", "not")
RELAXED_INFLUENCER_KEYS = (
    "followersGrowthRate",
    "views",
    "engagements",
    "lastposted",
)

DEFAULT_PAGE = 0
DEFAULT_SORT = {"field": "followers", "direction": "desc"}


def _filter_block(body: dict, name: str) -> dict | None:
    filters = body.get("filter")
    if not isinstance(filters, dict):
        return None
    block = filters.get(name)
    return block if isinstance(block, dict) else None


def _apply_defaults(body: dict, with_sort: bool) -> None:
    if body.get("page") is None:
        body["page"] = DEFAULT_PAGE
    if with_sort and not body.get("sort"):
        body["sort"] = dict(DEFAULT_SORT)


def _fix_lastposted(influencer: dict) -> None:
    if "lastposted" not in influencer:
        return
    try:
        days = int(influencer["lastposted"])
    except (TypeError, ValueError):
        del influencer["lastposted"]
        return
    influencer["lastposted"] = max(days, MIN_LASTPOSTED_DAYS)


def _fix_age_bracket(influencer: dict) -> None:
    age = influencer.get("age")
    if age is None:
        return
    if not isinstance(age, dict):
        del influencer["age"]
        return
    for bound in ("min", "max"):
        value = age.get(bound)
        if value is None:
            continue
        try:
            valid = int(value) in ALLOWED_AGE_BOUNDS
        except (TypeError, ValueError):
            valid = False
        if not valid:
            del influencer["age"]
            return


def _strip_composites(block: dict) -> None:
    for key in COMPOSITE_OPERATOR_KEYS:
        block.pop(key, None)


def _sanitize_youtube(body: dict, relaxed: bool) -> dict:
    _apply_defaults(body, with_sort=True)

    influencer = _filter_block(body, "influencer")
    audience = _filter_block(body, "audience")

    if relaxed:
        if isinstance(body.get("filter"), dict):
            body["filter"].pop("audience", None)
        if influencer is not None:
            for key in RELAXED_INFLUENCER_KEYS:
                influencer.pop(key, None)
        body["sort"] = dict(DEFAULT_SORT)
        audience = None

    if influencer is not None:
        _fix_lastposted(influencer)
        _fix_age_bracket(influencer)
        _strip_composites(influencer)

    if audience is not None:
        # Upstream rejects both shapes together; the explicit range wins.
        if "ageRange" in audience and "age" in audience:
            del audience["age"]
        _strip_composites(audience)

    return body


def _sanitize_passthrough(body: dict, relaxed: bool) -> dict:
    _apply_defaults(body, with_sort=False)
    return body


SANITIZERS: dict[Platform, Callable[[dict, bool], dict]] = {
    Platform.INSTAGRAM: _sanitize_passthrough,
    Platform.TIKTOK: _sanitize_passthrough,
    Platform.YOUTUBE: _sanitize_youtube,
}

# Platforms that get one relaxed retry after an empty first page.
RELAXED_RETRY_PLATFORMS = frozenset({Platform.YOUTUBE})


def sanitize(platform: Platform, body: dict[str, Any] | None, relaxed: bool = False) -> dict[str, Any]:
    """
    Correct a search body so the platform's upstream validation accepts it.

    Args:
        platform: Platform being searched
        body: Caller's search body (left untouched)
        relaxed: Loosen filters for a retry after an empty result

    Returns:
        Corrected copy of the body
    """
    corrected = copy.deepcopy(body) if isinstance(body, dict) else {}
    return SANITIZERS[Platform(platform)](corrected, relaxed)


def should_relax(platform: Platform) -> bool:
    """Whether an empty first page on this platform warrants a relaxed retry."""
    return Platform(platform) in RELAXED_RETRY_PLATFORMS
