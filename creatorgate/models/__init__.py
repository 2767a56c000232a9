"""Pydantic models for creatorgate."""

from creatorgate.models.candidate import SearchCandidate
from creatorgate.models.profile import CanonicalProfile
from creatorgate.models.result import (
    CreatorSearchResult,
    ProfileReport,
    SearchPage,
    SocialProfileSummary,
)

__all__ = [
    "CanonicalProfile",
    "SearchCandidate",
    "SearchPage",
    "CreatorSearchResult",
    "ProfileReport",
    "SocialProfileSummary",
]
