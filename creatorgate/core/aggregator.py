"""Scoring, de-duplication and ranking of search candidates."""

import re
from typing import Iterable, Mapping

from creatorgate.models.candidate import SearchCandidate
from creatorgate.platforms import PLATFORMS, Platform, handle_url_fragment, username_from_url

SCORE_EXACT_USERNAME = 100
SCORE_HANDLE_URL = 95
SCORE_EXACT_DISPLAY_NAME = 90
SCORE_PREFIX_USERNAME = 70
SCORE_PREFIX_DISPLAY_NAME = 60
SCORE_CONTAINS_USERNAME = 45
SCORE_CONTAINS_DISPLAY_NAME = 35
SCORE_FALLBACK = 10

_TOKEN_SPLIT = re.compile(r"[\s,]+")


def query_tokens(query: str) -> list[str]:
    """
    Break a free-text query into lowercased match tokens.

    The whole query is kept as a token alongside its words, and a pasted
    profile URL contributes the username it points at.

    Examples:
        "@Jane Doe" -> ["jane doe", "jane", "doe"]
        "https://www.tiktok.com/@jane" -> [..., "jane"]
    """
    text = (query or "").strip().lower()
    if not text:
        return []

    tokens = [text.lstrip("@")]
    for word in _TOKEN_SPLIT.split(text):
        tokens.append(word.lstrip("@"))
    for platform in PLATFORMS:
        derived = username_from_url(platform, text)
        if derived:
            tokens.append(derived.lower())

    seen = []
    for token in tokens:
        if token and token not in seen:
            seen.append(token)
    return seen


def _score_token(candidate: SearchCandidate, token: str) -> int:
    username = (candidate.username or "").lower()
    display_name = (candidate.display_name or "").lower()
    url = (candidate.url or "").lower()

    if username and username == token:
        return SCORE_EXACT_USERNAME
    if url and handle_url_fragment(candidate.provider, token) in url:
        return SCORE_HANDLE_URL
    if display_name and display_name == token:
        return SCORE_EXACT_DISPLAY_NAME
    if username and username.startswith(token):
        return SCORE_PREFIX_USERNAME
    if display_name and display_name.startswith(token):
        return SCORE_PREFIX_DISPLAY_NAME
    if username and token in username:
        return SCORE_CONTAINS_USERNAME
    if display_name and token in display_name:
        return SCORE_CONTAINS_DISPLAY_NAME
    return SCORE_FALLBACK


def score_for_query(candidate: SearchCandidate, tokens: Iterable[str]) -> int:
    """Best score of the candidate across all query tokens."""
    scores = [_score_token(candidate, token) for token in tokens if token]
    return max(scores) if scores else SCORE_FALLBACK


def _identity(candidate: SearchCandidate) -> str:
    return (
        candidate.user_id
        or (candidate.username or "").lower()
        or (candidate.url or "").lower()
    )


def dedupe_by_best(candidates: Iterable[SearchCandidate]) -> list[SearchCandidate]:
    """
    Keep the highest-scored candidate per (platform, username).

    Candidates without a username are grouped by id or URL instead.
    """
    best: dict[tuple[Platform, str], SearchCandidate] = {}
    for candidate in candidates:
        name = (candidate.username or "").lower() or _identity(candidate)
        key = (candidate.provider, name or f"#{id(candidate)}")
        current = best.get(key)
        if current is None or (candidate.score or 0) > (current.score or 0):
            best[key] = candidate
    return list(best.values())


def _content_key(candidate: SearchCandidate) -> tuple:
    """Total order over every field but the score; a missing value sorts below any present one."""
    key = []
    for name in SearchCandidate.model_fields:
        if name == "score":
            continue
        value = getattr(candidate, name)
        key.append((value is not None, "" if value is None else value))
    return tuple(key)


def better_search_result(a: SearchCandidate, b: SearchCandidate) -> SearchCandidate:
    """
    Pick the more useful of two hits for the same creator.

    Tie-break chain: verified, has a username, followers, engagement rate,
    engagement count, has a profile URL, has a picture. Candidates still
    tied are ordered by content so the result does not depend on argument
    order; fully identical ones keep ``a``.
    """
    criteria = (
        lambda c: c.is_verified,
        lambda c: bool(c.username),
        lambda c: c.followers or 0,
        lambda c: c.engagement_rate or 0.0,
        lambda c: c.engagements or 0.0,
        lambda c: bool(c.url),
        lambda c: bool(c.picture),
    )
    for criterion in criteria:
        left, right = criterion(a), criterion(b)
        if left != right:
            return a if left > right else b

    left, right = _content_key(a), _content_key(b)
    if left != right:
        return a if left > right else b
    return a


def dedupe_search_items(candidates: Iterable[SearchCandidate]) -> list[SearchCandidate]:
    """
    Collapse raw hits describing the same creator, keeping the better one.

    Groups by (platform, user id or username or URL); first-seen group order
    is kept.
    """
    groups: dict[tuple[Platform, str], SearchCandidate] = {}
    for candidate in candidates:
        identity = _identity(candidate) or f"#{id(candidate)}"
        key = (candidate.provider, identity)
        current = groups.get(key)
        groups[key] = candidate if current is None else better_search_result(current, candidate)
    return list(groups.values())


def rank_candidates(candidates: Iterable[SearchCandidate]) -> list[SearchCandidate]:
    """Score desc, verified first, followers desc, username asc."""
    return sorted(
        candidates,
        key=lambda c: (
            -(c.score or 0),
            not c.is_verified,
            -(c.followers or 0),
            (c.username or "").lower(),
        ),
    )


def filter_exact(candidates: Iterable[SearchCandidate], tokens: Iterable[str]) -> list[SearchCandidate]:
    """Keep candidates whose username equals a token or whose URL holds its handle."""
    tokens = [t for t in tokens if t]
    kept = []
    for candidate in candidates:
        username = (candidate.username or "").lower()
        url = (candidate.url or "").lower()
        for token in tokens:
            if username == token or (url and handle_url_fragment(candidate.provider, token) in url):
                kept.append(candidate)
                break
    return kept


def aggregate(
    candidates_by_platform: Mapping[Platform, Iterable[SearchCandidate]],
    query: str,
    exact: bool = False,
    limit: int | None = None,
) -> list[SearchCandidate]:
    """
    Merge per-platform hits into one ranked, de-duplicated list.

    Args:
        candidates_by_platform: Normalized hits keyed by platform
        query: Caller's free-text query
        exact: Only keep exact username/handle matches
        limit: Optional cap on the returned list

    Returns:
        Ranked candidates with ``score`` populated
    """
    merged = []
    for items in candidates_by_platform.values():
        merged.extend(items)

    tokens = query_tokens(query)
    unique = dedupe_search_items(merged)
    scored = [c.model_copy(update={"score": score_for_query(c, tokens)}) for c in unique]
    best = dedupe_by_best(scored)
    if exact:
        best = filter_exact(best, tokens)

    ranked = rank_candidates(best)
    return ranked[:limit] if limit else ranked
