"""Abstract profile store interface."""

from abc import ABC, abstractmethod

from creatorgate.models.profile import CanonicalProfile
from creatorgate.platforms import Platform

# Identity columns; each is unique per provider when set.
UNIQUE_FIELDS = ("user_id", "linked_entity_id")

# Columns a record can be looked up by. Usernames are not unique and match
# case-insensitively; the most recently updated record wins.
LOOKUP_FIELDS = UNIQUE_FIELDS + ("username",)


class ProfileStore(ABC):
    """Persistent record store for canonical profiles.

    Implementations enforce two uniqueness constraints: (provider, user_id)
    and (provider, linked_entity_id), each only when the value is set.
    """

    @abstractmethod
    async def find_one(self, provider: Platform, field: str, value: str) -> CanonicalProfile | None:
        """
        Retrieve the record whose ``field`` equals ``value`` for a provider.

        Args:
            provider: Platform of the record
            field: One of LOOKUP_FIELDS
            value: Identifier to match

        Returns:
            Stored CanonicalProfile or None
        """
        ...

    @abstractmethod
    async def insert(self, profile: CanonicalProfile) -> CanonicalProfile:
        """
        Store a new record.

        Returns:
            The stored profile with record_id and timestamps set

        Raises:
            DuplicateKeyError: A uniqueness constraint would be violated
        """
        ...

    @abstractmethod
    async def update(self, profile: CanonicalProfile) -> CanonicalProfile:
        """
        Replace the record identified by ``profile.record_id``.

        Raises:
            DuplicateKeyError: The new identity collides with another record
            CacheError: No record with that record_id
        """
        ...

    @abstractmethod
    async def list_profiles(
        self,
        provider: Platform | None = None,
        linked_entity_id: str | None = None,
    ) -> list[CanonicalProfile]:
        """List stored records, optionally filtered."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Cleanup connections and resources."""
        ...

    async def __aenter__(self) -> "ProfileStore":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - cleanup."""
        await self.close()


def check_lookup_field(field: str) -> str:
    if field not in LOOKUP_FIELDS:
        raise ValueError(f"Unsupported lookup field: {field}")
    return field


def username_key(username: str | None) -> str | None:
    """Lookup form of a handle: no leading @, lower case."""
    if not username:
        return None
    return username.strip().lstrip("@").lower() or None
