"""Gateway facade - coordinates quota, provider calls, normalization and caching."""

import asyncio
from datetime import datetime
from typing import Any, Iterable

from creatorgate.cache.base import ProfileStore
from creatorgate.cache.redis_cache import RedisProfileStore
from creatorgate.cache.repository import ProfileRepository
from creatorgate.cache.sqlite_cache import SQLiteProfileStore
from creatorgate.config import CacheBackend, GatewayConfig
from creatorgate.core.aggregator import aggregate
from creatorgate.core.client import ProviderClient
from creatorgate.core.exporter import to_social_profiles
from creatorgate.core.normalizer import (
    canonical_user_id,
    extract_results,
    normalize,
    normalize_candidate,
)
from creatorgate.core.sanitizer import sanitize, should_relax
from creatorgate.exceptions import (
    ConfigError,
    CreatorGateError,
    InvalidRequestError,
    ProfileNotFoundError,
    UpstreamError,
    UpstreamRejectedError,
)
from creatorgate.logging import bind_request, configure_logging, get_logger
from creatorgate.models.candidate import SearchCandidate
from creatorgate.models.result import (
    CreatorSearchResult,
    ProfileReport,
    SearchPage,
    SocialProfileSummary,
)
from creatorgate.platforms import Platform
from creatorgate.quota import QuotaService, UnlimitedQuota


class CreatorGateway:
    """
    High-level gateway interface with quota enforcement and caching.

    Example:
        async with CreatorGateway() as gateway:
            report = await gateway.report("acct-1", "instagram", "173560420")
            print(report.profile.followers)
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        quota: QuotaService | None = None,
        store: ProfileStore | None = None,
        client: ProviderClient | None = None,
    ):
        """
        Initialize gateway with optional collaborators.

        Args:
            config: GatewayConfig instance, uses defaults if None
            quota: Quota service consulted before every operation
            store: Profile store; built from config.cache_backend if None
            client: Provider client; built from config if None
        """
        self.config = config or GatewayConfig()
        self.quota = quota or UnlimitedQuota()
        self._store = store
        self._client = client
        self._repo: ProfileRepository | None = None
        self._log = get_logger("gateway")

    async def __aenter__(self) -> "CreatorGateway":
        """Async context manager entry - initialize resources."""
        configure_logging(self.config)
        if not self.config.enabled_platforms:
            raise ConfigError("At least one platform must be enabled")
        if self.config.cache_backend == CacheBackend.REDIS and not self.config.redis_url:
            raise ConfigError("Redis cache backend needs CREATORGATE_REDIS_URL")

        if self._store is None:
            if self.config.cache_backend == CacheBackend.SQLITE:
                self._store = SQLiteProfileStore(self.config.sqlite_path)
            elif self.config.cache_backend == CacheBackend.REDIS:
                self._store = RedisProfileStore(self.config.redis_url)
        if self._store is not None:
            self._repo = ProfileRepository(self._store)

        if self._client is None:
            self._client = ProviderClient(self.config)

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - cleanup resources."""
        if self._repo:
            await self._repo.close()
        if self._client:
            await self._client.close()

    @property
    def client(self) -> ProviderClient:
        if self._client is None:
            raise CreatorGateError("Gateway used outside its async context")
        return self._client

    @property
    def repository(self) -> ProfileRepository | None:
        return self._repo

    def _platform(self, platform: Platform | str) -> Platform:
        try:
            resolved = platform if isinstance(platform, Platform) else Platform(str(platform).strip().lower())
        except ValueError:
            raise InvalidRequestError(f"Unsupported platform: {platform}") from None
        if resolved not in self.config.enabled_platforms:
            raise InvalidRequestError(f"Platform not enabled: {resolved.value}")
        return resolved

    @staticmethod
    def _required(value: str | None, name: str, strip: str = "") -> str:
        text = (value or "").strip().lstrip(strip).strip()
        if not text:
            raise InvalidRequestError(f"{name} is required")
        return text

    async def lookup_users(
        self,
        account_id: str,
        platform: Platform | str,
        query: str,
        limit: int | None = None,
    ) -> list[SearchCandidate]:
        """
        Lightweight handle search on one platform.

        Args:
            account_id: Account charged for the lookup
            platform: Platform to search
            query: Handle or name fragment
            limit: Max hits (config default if None)

        Returns:
            Normalized candidates in provider order
        """
        platform = self._platform(platform)
        bind_request(account_id, "lookup_users", platform=platform.value)
        query = self._required(query, "query", strip="@")
        await self.quota.ensure_quota(account_id, self.config.quota_feature_lookup)

        items = await self._lookup(platform, query, limit or self.config.lookup_limit)
        self._log.info("lookup_complete", platform=platform.value, hits=len(items))
        return items

    async def _lookup(self, platform: Platform, query: str, limit: int) -> list[SearchCandidate]:
        payload = await self.client.search_users(platform, query, limit)
        raw_items, _ = extract_results(payload)
        return [normalize_candidate(platform, raw) for raw in raw_items if isinstance(raw, dict)]

    async def search(
        self,
        account_id: str,
        platform: Platform | str,
        body: dict[str, Any] | None = None,
    ) -> SearchPage:
        """
        Filter-based discovery on one platform.

        An empty first page on a platform with strict filter validation gets
        exactly one relaxed retry.

        Args:
            account_id: Account charged for the search
            platform: Platform to search
            body: Search body with page, sort and filter blocks

        Returns:
            SearchPage of normalized candidates
        """
        platform = self._platform(platform)
        bind_request(account_id, "search", platform=platform.value)
        if body is not None and not isinstance(body, dict):
            raise InvalidRequestError("Search body must be an object")
        await self.quota.ensure_quota(account_id, self.config.quota_feature_search)

        page = await self._search_once(platform, sanitize(platform, body))
        if not page.items and should_relax(platform):
            self._log.info("relaxed_retry", platform=platform.value)
            page = await self._search_once(platform, sanitize(platform, body, relaxed=True))
            page = page.model_copy(update={"relaxed": True})

        self._log.info(
            "search_complete",
            platform=platform.value,
            hits=len(page.items),
            total=page.total,
            relaxed=page.relaxed,
        )
        return page

    async def _search_once(self, platform: Platform, body: dict[str, Any]) -> SearchPage:
        payload = await self.client.search(platform, body)
        raw_items, total = extract_results(payload)
        items = [normalize_candidate(platform, raw) for raw in raw_items if isinstance(raw, dict)]
        return SearchPage(platform=platform, total=total, items=items)

    async def search_creators(
        self,
        account_id: str,
        query: str,
        platforms: Iterable[Platform | str] | None = None,
        exact: bool = False,
        limit: int | None = None,
    ) -> CreatorSearchResult:
        """
        Find creators matching free text across several platforms.

        Args:
            account_id: Account charged once for the whole search
            query: Name, handle or profile URL
            platforms: Platforms to query (all enabled if None)
            exact: Only keep exact username/handle matches
            limit: Max ranked hits (config default if None)

        Returns:
            CreatorSearchResult with ranked, de-duplicated hits

        Raises:
            ProfileNotFoundError: exact=True and nothing matched
            UpstreamError: Every platform failed
        """
        query = self._required(query, "query")
        bind_request(account_id, "search_creators", platform=None)
        lookup_query = self._required(query, "query", strip="@")
        targets = [self._platform(p) for p in (platforms or self.config.enabled_platforms)]
        targets = list(dict.fromkeys(targets))
        if not targets:
            raise InvalidRequestError("At least one platform is required")
        await self.quota.ensure_quota(account_id, self.config.quota_feature_search)

        outcomes = await asyncio.gather(
            *(self._lookup(p, lookup_query, self.config.lookup_limit) for p in targets),
            return_exceptions=True,
        )

        by_platform: dict[Platform, list[SearchCandidate]] = {}
        errors: dict[str, str] = {}
        failures: list[UpstreamError] = []
        for platform, outcome in zip(targets, outcomes):
            if isinstance(outcome, UpstreamError):
                self._log.warning(
                    "platform_search_failed",
                    platform=platform.value,
                    status=outcome.status_code,
                )
                errors[platform.value] = outcome.message
                failures.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                by_platform[platform] = outcome

        if failures and not by_platform:
            raise failures[0]

        items = aggregate(by_platform, query, exact=exact, limit=limit or self.config.search_limit)
        if exact and not items:
            raise ProfileNotFoundError(f"No creator matches {query!r}")

        self._log.info("creator_search_complete", hits=len(items), platforms=len(targets))
        return CreatorSearchResult(
            query=query,
            platforms=targets,
            items=items,
            total=len(items),
            errors=errors,
        )

    async def report(
        self,
        account_id: str,
        platform: Platform | str,
        user_id: str,
        force_refresh: bool = False,
        linked_entity_id: str | None = None,
        calculation_method: str | None = None,
    ) -> ProfileReport:
        """
        Full profile report, served from cache unless forced.

        Args:
            account_id: Account charged for the report
            platform: Platform of the profile
            user_id: Provider user id or handle
            force_refresh: Skip cache and fetch fresh data
            linked_entity_id: Internal creator account to link the profile to
            calculation_method: "median" or "average" (config default if None)

        Returns:
            ProfileReport with the canonical profile
        """
        platform = self._platform(platform)
        bind_request(account_id, "report", platform=platform.value)
        requested_id = self._required(user_id, "user_id", strip="@")
        await self.quota.ensure_quota(account_id, self.config.quota_feature_report)

        self._log.info(
            "report_start",
            platform=platform.value,
            user_id=requested_id,
            force_refresh=force_refresh,
        )

        if self._repo and not force_refresh:
            cached = await self._read_cache(platform, requested_id, linked_entity_id)
            if cached is not None:
                age = None
                if cached.updated_at:
                    age = (datetime.now() - cached.updated_at).total_seconds()
                self._log.info("cache_hit", platform=platform.value, user_id=requested_id, age_seconds=age)
                return ProfileReport(
                    profile=cached,
                    cached=True,
                    cache_age_seconds=age,
                    persisted=True,
                    fetched_at=datetime.now(),
                )

        try:
            payload = await self.client.report(platform, requested_id, calculation_method)
        except UpstreamRejectedError as e:
            if e.status_code == 404:
                raise ProfileNotFoundError(f"No {platform.value} profile for {requested_id!r}") from e
            raise

        if payload is None:
            raise ProfileNotFoundError(f"Empty report for {requested_id!r}")

        profile = normalize(platform, payload)
        if linked_entity_id:
            profile = profile.model_copy(update={"linked_entity_id": linked_entity_id})

        persisted = False
        if self._repo:
            if canonical_user_id(profile) is None:
                self._log.warning(
                    "cache_skipped_no_identity",
                    platform=platform.value,
                    requested_id=requested_id,
                )
            else:
                stored = await self._write_cache(profile, requested_id, linked_entity_id)
                if stored is not None:
                    profile = stored
                    persisted = True

        self._log.info("report_complete", platform=platform.value, user_id=profile.user_id, persisted=persisted)
        return ProfileReport(profile=profile, cached=False, persisted=persisted, fetched_at=datetime.now())

    async def _read_cache(self, platform: Platform, requested_id: str, linked_entity_id: str | None):
        try:
            return await self._repo.find_cached(
                platform,
                requested_user_id=requested_id,
                linked_entity_id=linked_entity_id,
            )
        except Exception as e:
            self._log.warning("cache_read_failed", platform=platform.value, error=repr(e))
        return None

    async def _write_cache(self, profile, requested_id: str, linked_entity_id: str | None):
        try:
            return await self._repo.upsert(
                profile,
                requested_user_id=requested_id,
                linked_entity_id=linked_entity_id,
            )
        except Exception as e:
            self._log.error(
                "cache_write_failed",
                platform=profile.provider.value,
                user_id=profile.user_id,
                error=repr(e),
            )
        return None

    async def cached_profiles(self, linked_entity_id: str) -> list[SocialProfileSummary]:
        """Public-safe summaries of every cached profile linked to an entity."""
        linked_entity_id = self._required(linked_entity_id, "linked_entity_id")
        if not self._repo:
            return []
        profiles = await self._repo.profiles_for_entity(linked_entity_id)
        return to_social_profiles(profiles)
