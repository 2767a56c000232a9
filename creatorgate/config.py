"""Configuration management using Pydantic Settings."""

from enum import Enum

from pydantic import SecretStr
from pydantic_settings import BaseSettings

from creatorgate.core.credentials import CredentialScheme
from creatorgate.platforms import Platform


class CacheBackend(str, Enum):
    """Profile cache backend type."""
    SQLITE = "sqlite"
    REDIS = "redis"
    NONE = "none"


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


class CalculationMethod(str, Enum):
    """How the provider aggregates per-post metrics in a report."""
    MEDIAN = "median"
    AVERAGE = "average"


class GatewayConfig(BaseSettings):
    """Configuration for the creatorgate gateway.

    Built once at startup and passed by reference; instances are frozen.
    """

    # Provider settings
    api_base_url: str = "https://api.modash.io/v1"
    api_token: SecretStr = SecretStr("")
    auth_scheme: CredentialScheme | None = None
    provider_name: str = "modash"
    request_timeout_seconds: float = 30.0

    # Platforms and query defaults
    enabled_platforms: list[Platform] = list(Platform)
    calculation_method: CalculationMethod = CalculationMethod.MEDIAN
    lookup_limit: int = 10
    search_limit: int = 25

    # Cache settings
    cache_backend: CacheBackend = CacheBackend.SQLITE
    sqlite_path: str = ".creatorgate_cache.db"
    redis_url: str = "redis://localhost:6379/0"

    # Quota feature keys
    quota_feature_lookup: str = "creator_lookup"
    quota_feature_search: str = "creator_search"
    quota_feature_report: str = "profile_report"

    # Logging
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.CONSOLE

    model_config = {
        "env_prefix": "CREATORGATE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
    }
