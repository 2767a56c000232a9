"""SQLite-based profile store."""

import asyncio
import sqlite3
import time
import uuid
from datetime import datetime
from pathlib import Path

import aiosqlite

from creatorgate.cache.base import UNIQUE_FIELDS, ProfileStore, check_lookup_field, username_key
from creatorgate.exceptions import CacheError, DuplicateKeyError
from creatorgate.models.profile import CanonicalProfile
from creatorgate.platforms import Platform

_INDEX_NAMES = {
    "user_id": "ux_profiles_provider_user",
    "linked_entity_id": "ux_profiles_provider_link",
}


def _conflict_field(error: sqlite3.IntegrityError) -> str:
    """Which identity column a UNIQUE failure was about."""
    message = str(error)
    for field in UNIQUE_FIELDS:
        if f"profiles.{field}" in message or _INDEX_NAMES[field] in message:
            return field
    return "record_id"


class SQLiteProfileStore(ProfileStore):
    """SQLite-based local profile store using aiosqlite."""

    def __init__(self, db_path: str = ".creatorgate_cache.db"):
        """
        Initialize SQLite store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._db: aiosqlite.Connection | None = None
        # One connection is shared; setup and write transactions take turns on it.
        self._lock = asyncio.Lock()

    async def _ensure_db(self) -> aiosqlite.Connection:
        """Ensure database connection and schema exist."""
        async with self._lock:
            if self._db is None:
                self._db = await self._connect()
        return self._db

    async def _connect(self) -> aiosqlite.Connection:
        db = await aiosqlite.connect(self.db_path)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS profiles (
                record_id TEXT PRIMARY KEY,
                provider TEXT NOT NULL,
                user_id TEXT,
                linked_entity_id TEXT,
                username_key TEXT,
                profile_json TEXT NOT NULL,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
        """)
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS ux_profiles_provider_user
            ON profiles(provider, user_id) WHERE user_id IS NOT NULL
        """)
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS ux_profiles_provider_link
            ON profiles(provider, linked_entity_id) WHERE linked_entity_id IS NOT NULL
        """)
        async with db.execute("PRAGMA table_info(profiles)") as cursor:
            columns = {row[1] for row in await cursor.fetchall()}
        if "username_key" not in columns:
            await db.execute("ALTER TABLE profiles ADD COLUMN username_key TEXT")
        await db.execute("""
            CREATE INDEX IF NOT EXISTS ix_profiles_provider_username
            ON profiles(provider, username_key)
        """)
        await db.commit()
        return db

    @staticmethod
    def _from_row(row: tuple) -> CanonicalProfile:
        record_id, profile_json, created_at, updated_at = row
        profile = CanonicalProfile.model_validate_json(profile_json)
        return profile.model_copy(update={
            "record_id": record_id,
            "created_at": datetime.fromtimestamp(created_at),
            "updated_at": datetime.fromtimestamp(updated_at),
        })

    @staticmethod
    def _to_json(profile: CanonicalProfile) -> str:
        return profile.model_dump_json(exclude={"record_id", "created_at", "updated_at"})

    async def _write(self, sql: str, params: tuple, profile: CanonicalProfile) -> int:
        """Run one write in its own transaction, returning the affected row count."""
        db = await self._ensure_db()
        async with self._lock:
            try:
                cursor = await db.execute(sql, params)
                await db.commit()
            except sqlite3.IntegrityError as e:
                await db.rollback()
                field = _conflict_field(e)
                raise DuplicateKeyError(field, getattr(profile, field, None)) from e
        return cursor.rowcount

    async def find_one(self, provider: Platform, field: str, value: str) -> CanonicalProfile | None:
        """Retrieve record by provider and identity column."""
        column = check_lookup_field(field)
        if column == "username":
            column, value = "username_key", username_key(value)
        db = await self._ensure_db()

        async with db.execute(
            f"SELECT record_id, profile_json, created_at, updated_at FROM profiles "
            f"WHERE provider = ? AND {column} = ? ORDER BY updated_at DESC, rowid DESC LIMIT 1",
            (Platform(provider).value, value),
        ) as cursor:
            row = await cursor.fetchone()

        return self._from_row(row) if row else None

    async def insert(self, profile: CanonicalProfile) -> CanonicalProfile:
        """Store a new record, raising DuplicateKeyError on identity clash."""
        now = time.time()
        record_id = uuid.uuid4().hex

        await self._write(
            """
            INSERT INTO profiles
                (record_id, provider, user_id, linked_entity_id, username_key,
                 profile_json, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record_id,
                profile.provider.value,
                profile.user_id,
                profile.linked_entity_id,
                username_key(profile.username),
                self._to_json(profile),
                now,
                now,
            ),
            profile,
        )

        return profile.model_copy(update={
            "record_id": record_id,
            "created_at": datetime.fromtimestamp(now),
            "updated_at": datetime.fromtimestamp(now),
        })

    async def update(self, profile: CanonicalProfile) -> CanonicalProfile:
        """Replace an existing record by record_id."""
        if not profile.record_id:
            raise CacheError("Cannot update a profile without record_id")

        now = time.time()
        rowcount = await self._write(
            """
            UPDATE profiles
            SET user_id = ?, linked_entity_id = ?, username_key = ?, profile_json = ?, updated_at = ?
            WHERE record_id = ?
            """,
            (
                profile.user_id,
                profile.linked_entity_id,
                username_key(profile.username),
                self._to_json(profile),
                now,
                profile.record_id,
            ),
            profile,
        )

        if rowcount == 0:
            raise CacheError(f"No stored profile with record_id {profile.record_id}")

        return profile.model_copy(update={"updated_at": datetime.fromtimestamp(now)})

    async def list_profiles(
        self,
        provider: Platform | None = None,
        linked_entity_id: str | None = None,
    ) -> list[CanonicalProfile]:
        """List records, optionally filtered by provider and/or link."""
        db = await self._ensure_db()
        clauses = []
        params: list = []
        if provider is not None:
            clauses.append("provider = ?")
            params.append(Platform(provider).value)
        if linked_entity_id is not None:
            clauses.append("linked_entity_id = ?")
            params.append(linked_entity_id)

        sql = "SELECT record_id, profile_json, created_at, updated_at FROM profiles"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at"

        async with db.execute(sql, params) as cursor:
            rows = await cursor.fetchall()
        return [self._from_row(row) for row in rows]

    async def close(self) -> None:
        """Close database connection."""
        if self._db is not None:
            await self._db.close()
            self._db = None
