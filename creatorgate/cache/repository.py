"""Conflict-safe profile cache on top of a ProfileStore."""

from dataclasses import dataclass
from typing import Callable

from creatorgate.cache.base import ProfileStore, username_key
from creatorgate.core.normalizer import canonical_user_id
from creatorgate.exceptions import CacheConflictError, CacheError, DuplicateKeyError
from creatorgate.logging import get_logger
from creatorgate.models.profile import IDENTITY_FIELDS, STORE_FIELDS, CanonicalProfile
from creatorgate.platforms import Platform

# One retry after a uniqueness conflict; a second one is surfaced.
MAX_CONFLICT_RETRIES = 1

_log = get_logger("repository")


@dataclass(frozen=True)
class LookupKey:
    """Every identifier a cached profile might be filed under."""

    provider: Platform
    user_id: str | None = None
    requested_user_id: str | None = None
    linked_entity_id: str | None = None


@dataclass(frozen=True)
class LookupStrategy:
    name: str
    field: str
    value: Callable[[LookupKey], str | None]
    # Hits by a non-identity field must still belong to the requested creator.
    verify: bool = False


# Tried in order; the first accepted hit wins.
LOOKUP_STRATEGIES: tuple[LookupStrategy, ...] = (
    LookupStrategy("canonical_id", "user_id", lambda key: key.user_id),
    LookupStrategy("requested_id", "user_id", lambda key: key.requested_user_id),
    LookupStrategy("requested_handle", "username", lambda key: key.requested_user_id, verify=True),
    LookupStrategy("linked_entity", "linked_entity_id", lambda key: key.linked_entity_id, verify=True),
)


def lookup_plan(key: LookupKey) -> list[tuple[str, str, str]]:
    """
    Resolve the lookup strategies for a key into concrete queries.

    Returns:
        (strategy name, field, value) triples, skipping empty values and
        repeats of an earlier (field, value)
    """
    plan = []
    seen = set()
    for strategy in LOOKUP_STRATEGIES:
        value = strategy.value(key)
        if not value or (strategy.field, value) in seen:
            continue
        seen.add((strategy.field, value))
        plan.append((strategy.name, strategy.field, value))
    return plan


def belongs_to(found: CanonicalProfile, key: LookupKey) -> bool:
    """
    Whether a record reached through a handle or link is the creator asked for.

    A record with no user id yet is claimable. Otherwise its user id must be
    one the caller named. When the canonical id is still unknown, a matching
    handle identifies the creator too.
    """
    if found.user_id is None:
        return True
    if found.user_id in (key.user_id, key.requested_user_id):
        return True
    if key.user_id is None and key.requested_user_id:
        return username_key(found.username) == username_key(key.requested_user_id)
    return False


def merge_profiles(
    existing: CanonicalProfile,
    incoming: CanonicalProfile,
    requested_user_id: str | None = None,
) -> CanonicalProfile:
    """
    Fold freshly normalized fields into a stored record.

    Present incoming values overwrite; absent ones never do. ``user_id`` and
    ``linked_entity_id`` are kept once set, except that a record filed under
    the caller's provisional identifier is moved to the canonical id.
    """
    skip = set(IDENTITY_FIELDS) | set(STORE_FIELDS)
    updates = {
        name: value
        for name, value in incoming
        if name not in skip and value is not None
    }

    user_id = existing.user_id
    if incoming.user_id and (
        user_id is None
        or (requested_user_id and user_id == requested_user_id and user_id != incoming.user_id)
    ):
        user_id = incoming.user_id
    updates["user_id"] = user_id

    link = existing.linked_entity_id
    if link is None:
        link = incoming.linked_entity_id
    elif incoming.linked_entity_id and incoming.linked_entity_id != link:
        _log.warning(
            "link_mismatch",
            provider=existing.provider.value,
            user_id=existing.user_id,
            kept=link,
            ignored=incoming.linked_entity_id,
        )
    updates["linked_entity_id"] = link

    return existing.model_copy(update=updates)


class ProfileRepository:
    """
    Finds and upserts canonical profiles, tolerating concurrent writers.

    Example:
        repo = ProfileRepository(SQLiteProfileStore("cache.db"))
        stored = await repo.upsert(profile, requested_user_id="@handle")
    """

    def __init__(self, store: ProfileStore):
        self.store = store

    async def close(self) -> None:
        await self.store.close()

    async def find_cached(
        self,
        provider: Platform,
        user_id: str | None = None,
        linked_entity_id: str | None = None,
        requested_user_id: str | None = None,
    ) -> CanonicalProfile | None:
        """
        Look a profile up by canonical id, requested id, requested handle, then link.

        Handle and link hits that belong to a different creator are skipped.

        Args:
            provider: Platform of the profile
            user_id: Canonical user id
            linked_entity_id: Internal entity the profile is linked to
            requested_user_id: Identifier the caller originally asked for

        Returns:
            Stored CanonicalProfile or None
        """
        key = LookupKey(
            provider=Platform(provider),
            user_id=user_id,
            requested_user_id=requested_user_id,
            linked_entity_id=linked_entity_id,
        )
        verified = {s.name for s in LOOKUP_STRATEGIES if s.verify}
        for name, field, value in lookup_plan(key):
            found = await self.store.find_one(key.provider, field, value)
            if found is None:
                continue
            if name in verified and not belongs_to(found, key):
                _log.info(
                    "cache_lookup_rejected",
                    strategy=name,
                    provider=key.provider.value,
                    stored_user_id=found.user_id,
                )
                continue
            _log.debug("cache_lookup_hit", strategy=name, provider=key.provider.value)
            return found
        return None

    async def upsert(
        self,
        profile: CanonicalProfile,
        requested_user_id: str | None = None,
        linked_entity_id: str | None = None,
    ) -> CanonicalProfile:
        """
        Insert or merge a profile, retrying once on a uniqueness conflict.

        Args:
            profile: Freshly normalized profile
            requested_user_id: Identifier the caller originally asked for
            linked_entity_id: Internal entity to link, if known

        Returns:
            The stored profile

        Raises:
            CacheError: Profile has no identity to file it under
            CacheConflictError: Conflict persisted after the retry
        """
        incoming = profile.model_copy(update={
            "user_id": canonical_user_id(profile),
            "linked_entity_id": linked_entity_id or profile.linked_entity_id,
            "record_id": None,
            "created_at": None,
            "updated_at": None,
        })
        if not incoming.user_id and not incoming.linked_entity_id:
            raise CacheError("Profile has no identifier to cache it under")

        last_conflict: DuplicateKeyError | None = None
        for attempt in range(MAX_CONFLICT_RETRIES + 1):
            existing = await self.find_cached(
                incoming.provider,
                user_id=incoming.user_id,
                linked_entity_id=incoming.linked_entity_id,
                requested_user_id=requested_user_id,
            )
            try:
                if existing is None:
                    stored = await self.store.insert(incoming)
                    _log.info("cache_insert", provider=stored.provider.value, user_id=stored.user_id)
                else:
                    stored = await self.store.update(
                        merge_profiles(existing, incoming, requested_user_id)
                    )
                    _log.info("cache_update", provider=stored.provider.value, user_id=stored.user_id)
                return stored
            except DuplicateKeyError as e:
                last_conflict = e
                _log.info(
                    "cache_conflict",
                    provider=incoming.provider.value,
                    field=e.field,
                    attempt=attempt + 1,
                )
                if e.field == "linked_entity_id":
                    # The link already belongs to another record; keep the data, drop the link.
                    incoming = incoming.model_copy(update={"linked_entity_id": None})
                    if not incoming.user_id:
                        break

        raise CacheConflictError(
            f"Unresolved conflict on {last_conflict.field} for {incoming.provider.value}"
        ) from last_conflict

    async def profiles_for_entity(self, linked_entity_id: str) -> list[CanonicalProfile]:
        """Every cached profile linked to an internal entity."""
        return await self.store.list_profiles(linked_entity_id=linked_entity_id)
