"""Profile cache implementations."""

from creatorgate.cache.base import ProfileStore
from creatorgate.cache.redis_cache import RedisProfileStore
from creatorgate.cache.repository import ProfileRepository
from creatorgate.cache.sqlite_cache import SQLiteProfileStore

__all__ = ["ProfileStore", "SQLiteProfileStore", "RedisProfileStore", "ProfileRepository"]
