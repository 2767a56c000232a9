"""creatorgate - creator profile intelligence gateway."""

from creatorgate.models.profile import CanonicalProfile
from creatorgate.models.candidate import SearchCandidate
from creatorgate.models.result import CreatorSearchResult, ProfileReport, SearchPage
from creatorgate.config import GatewayConfig
from creatorgate.platforms import Platform
from creatorgate.core.gateway import CreatorGateway
from creatorgate.core.exporter import to_json, to_dict, save_json, load_json

__version__ = "0.1.0"

__all__ = [
    # Main interface
    "CreatorGateway",
    "GatewayConfig",
    "Platform",
    # Models
    "CanonicalProfile",
    "SearchCandidate",
    "SearchPage",
    "CreatorSearchResult",
    "ProfileReport",
    # Export utilities
    "to_json",
    "to_dict",
    "save_json",
    "load_json",
    "__version__",
]
