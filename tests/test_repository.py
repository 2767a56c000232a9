"""Unit tests for the conflict-safe profile repository."""

import asyncio

import pytest

from conftest import load_payload
from creatorgate.cache.base import ProfileStore
from creatorgate.cache.repository import (
    LookupKey,
    ProfileRepository,
    belongs_to,
    lookup_plan,
    merge_profiles,
)
from creatorgate.cache.sqlite_cache import SQLiteProfileStore
from creatorgate.core.normalizer import normalize
from creatorgate.exceptions import CacheConflictError, CacheError, DuplicateKeyError
from creatorgate.models.profile import CanonicalProfile
from creatorgate.platforms import Platform


@pytest.fixture
def repo(tmp_path):
    return ProfileRepository(SQLiteProfileStore(str(tmp_path / "repo.db")))


def tiktok(**fields) -> CanonicalProfile:
    return CanonicalProfile(provider=Platform.TIKTOK, **fields)


class TestLookupPlan:
    def test_order_and_skips(self):
        key = LookupKey(Platform.TIKTOK, user_id="123", requested_user_id="newuser", linked_entity_id="ent")
        assert lookup_plan(key) == [
            ("canonical_id", "user_id", "123"),
            ("requested_id", "user_id", "newuser"),
            ("requested_handle", "username", "newuser"),
            ("linked_entity", "linked_entity_id", "ent"),
        ]

    def test_repeated_id_tried_once(self):
        key = LookupKey(Platform.TIKTOK, user_id="123", requested_user_id="123")
        assert lookup_plan(key) == [
            ("canonical_id", "user_id", "123"),
            ("requested_handle", "username", "123"),
        ]

    def test_empty(self):
        assert lookup_plan(LookupKey(Platform.TIKTOK)) == []


class TestBelongsTo:
    def test_unclaimed_record(self):
        assert belongs_to(tiktok(), LookupKey(Platform.TIKTOK, requested_user_id="999"))

    def test_same_id(self):
        assert belongs_to(tiktok(user_id="1"), LookupKey(Platform.TIKTOK, user_id="1"))
        assert belongs_to(tiktok(user_id="1"), LookupKey(Platform.TIKTOK, requested_user_id="1"))

    def test_other_creator(self):
        assert not belongs_to(tiktok(user_id="1", username="one"), LookupKey(Platform.TIKTOK, requested_user_id="999"))

    def test_handle_matches_before_id_known(self):
        assert belongs_to(tiktok(user_id="1", username="One"), LookupKey(Platform.TIKTOK, requested_user_id="one"))

    def test_handle_ignored_once_id_known(self):
        key = LookupKey(Platform.TIKTOK, user_id="2", requested_user_id="one")
        assert not belongs_to(tiktok(user_id="1", username="one"), key)


class TestMergeProfiles:
    def test_present_fields_overwrite(self):
        merged = merge_profiles(tiktok(user_id="1", followers=10), tiktok(user_id="1", followers=20))
        assert merged.followers == 20

    def test_absent_fields_kept(self):
        merged = merge_profiles(tiktok(user_id="1", followers=10, bio="hi"), tiktok(user_id="1"))
        assert merged.followers == 10
        assert merged.bio == "hi"

    def test_zero_overwrites(self):
        merged = merge_profiles(tiktok(user_id="1", followers=10), tiktok(user_id="1", followers=0))
        assert merged.followers == 0

    def test_link_kept_once_set(self):
        merged = merge_profiles(
            tiktok(user_id="1", linked_entity_id="ent-1"),
            tiktok(user_id="1", linked_entity_id="ent-2"),
        )
        assert merged.linked_entity_id == "ent-1"

    def test_link_filled_when_missing(self):
        merged = merge_profiles(tiktok(user_id="1"), tiktok(user_id="1", linked_entity_id="ent"))
        assert merged.linked_entity_id == "ent"

    def test_provisional_id_upgraded(self):
        merged = merge_profiles(tiktok(user_id="newuser"), tiktok(user_id="123"), requested_user_id="newuser")
        assert merged.user_id == "123"

    def test_established_id_kept(self):
        merged = merge_profiles(tiktok(user_id="123"), tiktok(user_id="456"), requested_user_id="someone")
        assert merged.user_id == "123"

    def test_store_fields_kept(self):
        existing = tiktok(user_id="1", record_id="rec")
        assert merge_profiles(existing, tiktok(user_id="1")).record_id == "rec"


class TestUpsert:
    """Test insert-or-merge against a real SQLite store."""

    @pytest.mark.asyncio
    async def test_insert_then_merge(self, repo):
        async with repo.store:
            first = await repo.upsert(tiktok(user_id="1", followers=10))
            second = await repo.upsert(tiktok(user_id="1", followers=20))

            assert second.record_id == first.record_id
            assert second.followers == 20
            assert len(await repo.store.list_profiles()) == 1

    @pytest.mark.asyncio
    async def test_canonical_id_from_sec_uid(self, repo):
        async with repo.store:
            profile = normalize(Platform.TIKTOK, load_payload("report_tiktok_partial"))
            stored = await repo.upsert(profile, requested_user_id="newuser")
            assert stored.user_id == "MS4wLjABAAAAnewuser"

    @pytest.mark.asyncio
    async def test_found_by_requested_id_and_upgraded(self, repo):
        async with repo.store:
            provisional = await repo.upsert(tiktok(username="newuser"))
            assert provisional.user_id == "newuser"

            upgraded = await repo.upsert(tiktok(user_id="123", username="newuser"), requested_user_id="newuser")

            assert upgraded.record_id == provisional.record_id
            assert upgraded.user_id == "123"
            assert await repo.find_cached(Platform.TIKTOK, user_id="123") is not None
            assert len(await repo.store.list_profiles()) == 1

    @pytest.mark.asyncio
    async def test_found_by_link_for_same_creator(self, repo):
        async with repo.store:
            linked = await repo.upsert(tiktok(user_id="1", username="one"), linked_entity_id="ent")

            by_id = await repo.find_cached(Platform.TIKTOK, requested_user_id="1", linked_entity_id="ent")
            by_handle = await repo.find_cached(Platform.TIKTOK, requested_user_id="one", linked_entity_id="ent")

            assert by_id.record_id == linked.record_id
            assert by_handle.record_id == linked.record_id

    @pytest.mark.asyncio
    async def test_link_hit_for_other_creator_ignored(self, repo):
        async with repo.store:
            await repo.upsert(tiktok(user_id="1", username="one"), linked_entity_id="ent")

            assert await repo.find_cached(Platform.TIKTOK, requested_user_id="999", linked_entity_id="ent") is None
            assert await repo.find_cached(Platform.TIKTOK, user_id="999", linked_entity_id="ent") is None

    @pytest.mark.asyncio
    async def test_other_creator_on_same_link_gets_own_record(self, repo):
        """Refreshing a second creator under a taken link never rewrites the first one."""
        async with repo.store:
            first = await repo.upsert(tiktok(user_id="1", username="one", followers=100), linked_entity_id="ent")

            second = await repo.upsert(
                tiktok(user_id="999", username="someoneelse", followers=5),
                requested_user_id="999",
                linked_entity_id="ent",
            )

            assert second.record_id != first.record_id
            assert second.linked_entity_id is None
            kept = await repo.find_cached(Platform.TIKTOK, user_id="1")
            assert (kept.username, kept.followers, kept.linked_entity_id) == ("one", 100, "ent")
            assert len(await repo.store.list_profiles()) == 2

    @pytest.mark.asyncio
    async def test_link_only_record_claimed_by_first_identity(self, repo):
        async with repo.store:
            placeholder = await repo.upsert(tiktok(display_name="Pending"), linked_entity_id="ent")
            assert placeholder.user_id is None

            claimed = await repo.upsert(tiktok(user_id="7", followers=3), requested_user_id="7", linked_entity_id="ent")

            assert claimed.record_id == placeholder.record_id
            assert claimed.user_id == "7"

    @pytest.mark.asyncio
    async def test_found_by_handle_after_id_resolved(self, repo):
        async with repo.store:
            stored = await repo.upsert(tiktok(user_id="123", username="newuser"), requested_user_id="newuser")
            found = await repo.find_cached(Platform.TIKTOK, requested_user_id="@NewUser")
            assert found.record_id == stored.record_id

    @pytest.mark.asyncio
    async def test_no_identity_rejected(self, repo):
        async with repo.store:
            with pytest.raises(CacheError):
                await repo.upsert(tiktok(display_name="Ghost"))

    @pytest.mark.asyncio
    async def test_concurrent_upserts_leave_one_record(self, repo):
        """Racing writers for one identity end with a single merged record."""
        async with repo.store:
            results = await asyncio.gather(
                repo.upsert(tiktok(user_id="1", followers=10), requested_user_id="newuser"),
                repo.upsert(tiktok(user_id="1", bio="hello"), requested_user_id="newuser"),
            )

            records = await repo.store.list_profiles()
            assert len(records) == 1
            assert {r.record_id for r in results} == {records[0].record_id}
            assert records[0].followers == 10
            assert records[0].bio == "hello"

    @pytest.mark.asyncio
    async def test_profiles_for_entity(self, repo):
        async with repo.store:
            await repo.upsert(tiktok(user_id="1"), linked_entity_id="ent")
            await repo.upsert(CanonicalProfile(provider=Platform.YOUTUBE, user_id="9"), linked_entity_id="ent")
            await repo.upsert(tiktok(user_id="2"))

            profiles = await repo.profiles_for_entity("ent")
            assert sorted(p.user_id for p in profiles) == ["1", "9"]


class RacingStore(ProfileStore):
    """Store whose first lookups miss, emulating a writer that won the race."""

    def __init__(self, conflicts: list[str]):
        self.conflicts = list(conflicts)
        self.records: list[CanonicalProfile] = []
        self.inserts = 0

    async def find_one(self, provider, field, value):
        for record in self.records:
            if getattr(record, field) == value:
                return record
        return None

    async def insert(self, profile):
        self.inserts += 1
        if self.conflicts:
            raise DuplicateKeyError(self.conflicts.pop(0))
        stored = profile.model_copy(update={"record_id": f"r{len(self.records)}"})
        self.records.append(stored)
        return stored

    async def update(self, profile):
        return profile

    async def list_profiles(self, provider=None, linked_entity_id=None):
        return list(self.records)

    async def close(self):
        pass


class TestConflictRetry:
    @pytest.mark.asyncio
    async def test_one_retry_then_success(self):
        store = RacingStore(["user_id"])
        stored = await ProfileRepository(store).upsert(tiktok(user_id="1"))
        assert stored.record_id == "r0"
        assert store.inserts == 2

    @pytest.mark.asyncio
    async def test_persistent_conflict_surfaces(self):
        store = RacingStore(["user_id", "user_id"])
        with pytest.raises(CacheConflictError):
            await ProfileRepository(store).upsert(tiktok(user_id="1"))
        assert store.inserts == 2

    @pytest.mark.asyncio
    async def test_link_conflict_drops_link(self):
        store = RacingStore(["linked_entity_id"])
        stored = await ProfileRepository(store).upsert(tiktok(user_id="1"), linked_entity_id="ent")
        assert stored.user_id == "1"
        assert stored.linked_entity_id is None
