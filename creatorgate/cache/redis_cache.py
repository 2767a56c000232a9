"""Redis profile store implementation."""

import time
import uuid
from datetime import datetime

import redis.asyncio as redis

from creatorgate.cache.base import UNIQUE_FIELDS, ProfileStore, check_lookup_field, username_key
from creatorgate.exceptions import CacheError, DuplicateKeyError
from creatorgate.models.profile import CanonicalProfile
from creatorgate.platforms import Platform


class RedisProfileStore(ProfileStore):
    """
    Redis-based profile store.

    Records live under ``profile:{record_id}``; each identity column gets an
    index key claimed with ``SET NX`` so the uniqueness constraints hold
    across processes. Usernames get a plain alias key that the latest writer
    owns.

    Example:
        store = RedisProfileStore("redis://localhost:6379/0")
        async with store:
            await store.insert(profile)
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        key_prefix: str = "creatorgate:",
        client: redis.Redis | None = None,
    ):
        """
        Initialize Redis store.

        Args:
            redis_url: Redis connection URL
            key_prefix: Namespace for every key written
            client: Ready-made client, used instead of connecting to redis_url
        """
        self.redis_url = redis_url
        self._client: redis.Redis | None = client
        self._key_prefix = key_prefix

    async def _ensure_client(self) -> redis.Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._client = redis.from_url(self.redis_url)
        return self._client

    def _record_key(self, record_id: str) -> str:
        return f"{self._key_prefix}profile:{record_id}"

    def _index_key(self, provider: Platform, field: str, value: str) -> str:
        return f"{self._key_prefix}idx:{Platform(provider).value}:{field}:{value}"

    @staticmethod
    def _decode(value) -> str | None:
        if value is None:
            return None
        return value.decode() if isinstance(value, bytes) else str(value)

    async def _load(self, record_id: str) -> CanonicalProfile | None:
        client = await self._ensure_client()
        pipe = client.pipeline()
        pipe.get(self._record_key(record_id))
        pipe.get(f"{self._record_key(record_id)}:ts")
        data, timestamps = await pipe.execute()
        if data is None:
            return None

        created_at, updated_at = (float(x) for x in self._decode(timestamps).split(":"))
        profile = CanonicalProfile.model_validate_json(data)
        return profile.model_copy(update={
            "record_id": record_id,
            "created_at": datetime.fromtimestamp(created_at),
            "updated_at": datetime.fromtimestamp(updated_at),
        })

    async def _claim(self, profile: CanonicalProfile, record_id: str, fields) -> list[str]:
        """Claim index keys for ``fields``; undo and raise on the first clash."""
        client = await self._ensure_client()
        claimed = []
        for field in fields:
            value = getattr(profile, field)
            if value is None:
                continue
            key = self._index_key(profile.provider, field, value)
            if await client.set(key, record_id, nx=True):
                claimed.append(key)
                continue
            owner = self._decode(await client.get(key))
            if owner == record_id:
                continue
            if claimed:
                await client.delete(*claimed)
            raise DuplicateKeyError(field, value)
        return claimed

    async def _write(self, profile: CanonicalProfile, record_id: str, created_at: float, now: float) -> None:
        client = await self._ensure_client()
        key = self._record_key(record_id)
        payload = profile.model_dump_json(exclude={"record_id", "created_at", "updated_at"})
        pipe = client.pipeline()
        pipe.set(key, payload)
        pipe.set(f"{key}:ts", f"{created_at}:{now}")
        await pipe.execute()

    async def _move_alias(self, profile: CanonicalProfile, record_id: str, previous: str | None) -> None:
        """Point the username alias at this record, dropping the old one it still owns."""
        client = await self._ensure_client()
        old, new = username_key(previous), username_key(profile.username)
        if old and old != new:
            old_key = self._index_key(profile.provider, "username", old)
            if self._decode(await client.get(old_key)) == record_id:
                await client.delete(old_key)
        if new:
            await client.set(self._index_key(profile.provider, "username", new), record_id)

    async def find_one(self, provider: Platform, field: str, value: str) -> CanonicalProfile | None:
        """Retrieve record through its identity index key."""
        client = await self._ensure_client()
        field = check_lookup_field(field)
        if field == "username":
            value = username_key(value)
            if value is None:
                return None
        record_id = self._decode(await client.get(self._index_key(provider, field, value)))
        if record_id is None:
            return None
        profile = await self._load(record_id)
        if profile is not None and field == "username" and username_key(profile.username) != value:
            return None
        return profile

    async def insert(self, profile: CanonicalProfile) -> CanonicalProfile:
        """Claim identity keys, then write the record."""
        record_id = uuid.uuid4().hex
        now = time.time()

        await self._claim(profile, record_id, UNIQUE_FIELDS)
        await self._write(profile, record_id, now, now)
        await self._move_alias(profile, record_id, None)

        return profile.model_copy(update={
            "record_id": record_id,
            "created_at": datetime.fromtimestamp(now),
            "updated_at": datetime.fromtimestamp(now),
        })

    async def update(self, profile: CanonicalProfile) -> CanonicalProfile:
        """Move changed identity keys, then overwrite the record."""
        if not profile.record_id:
            raise CacheError("Cannot update a profile without record_id")

        current = await self._load(profile.record_id)
        if current is None:
            raise CacheError(f"No stored profile with record_id {profile.record_id}")

        changed = [f for f in UNIQUE_FIELDS if getattr(profile, f) != getattr(current, f)]
        await self._claim(profile, profile.record_id, changed)

        client = await self._ensure_client()
        stale = [
            self._index_key(current.provider, f, getattr(current, f))
            for f in changed
            if getattr(current, f) is not None
        ]
        if stale:
            await client.delete(*stale)

        now = time.time()
        await self._write(profile, profile.record_id, current.created_at.timestamp(), now)
        await self._move_alias(profile, profile.record_id, current.username)
        return profile.model_copy(update={
            "created_at": current.created_at,
            "updated_at": datetime.fromtimestamp(now),
        })

    async def list_profiles(
        self,
        provider: Platform | None = None,
        linked_entity_id: str | None = None,
    ) -> list[CanonicalProfile]:
        """Scan stored records, optionally filtered."""
        client = await self._ensure_client()
        profiles = []
        cursor = 0
        while True:
            cursor, keys = await client.scan(cursor, match=f"{self._key_prefix}profile:*")
            for key in keys:
                key = self._decode(key)
                if key.endswith(":ts"):
                    continue
                profile = await self._load(key.rsplit(":", 1)[1])
                if profile is None:
                    continue
                if provider is not None and profile.provider != Platform(provider):
                    continue
                if linked_entity_id is not None and profile.linked_entity_id != linked_entity_id:
                    continue
                profiles.append(profile)
            if cursor == 0:
                break
        return sorted(profiles, key=lambda p: p.created_at)

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
