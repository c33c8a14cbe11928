"""
Unit tests for profile stores.

The SQL store runs against a temporary SQLite database file.
"""

import pytest

from src.db.database import session_scope
from src.db.models import UserProfileRecord
from src.engine.exceptions import ProfileStoreError
from src.storage import InMemoryProfileStore, ProfileStore
from src.storage.sql_store import SqlProfileStore
from tests.factories import make_profile, set_type_stats


@pytest.fixture
def sql_store(tmp_path):
    store = SqlProfileStore(f"sqlite:///{tmp_path / 'profiles.db'}")
    yield store
    store.close()


class TestInMemoryProfileStore:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryProfileStore(), ProfileStore)

    @pytest.mark.asyncio
    async def test_missing_user_loads_none(self):
        assert await InMemoryProfileStore().load("nobody") is None

    @pytest.mark.asyncio
    async def test_save_and_load(self):
        store = InMemoryProfileStore()
        await store.save("user-1", make_profile(solved=12, accuracy=0.5))

        loaded = await store.load("user-1")

        assert loaded.total_puzzles_solved == 12
        assert "user-1" in store
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_stored_profiles_are_isolated_copies(self):
        store = InMemoryProfileStore()
        profile = make_profile(solved=12)
        await store.save("user-1", profile)

        profile.total_puzzles_solved = 99
        loaded = await store.load("user-1")
        loaded.total_puzzles_solved = 50

        assert (await store.load("user-1")).total_puzzles_solved == 12

    @pytest.mark.asyncio
    async def test_delete(self):
        store = InMemoryProfileStore({"user-1": make_profile()})

        await store.delete("user-1")
        await store.delete("user-1")

        assert "user-1" not in store


class TestSqlProfileStore:
    def test_satisfies_protocol(self, sql_store):
        assert isinstance(sql_store, ProfileStore)

    @pytest.mark.asyncio
    async def test_missing_user_loads_none(self, sql_store):
        assert await sql_store.load("nobody") is None

    @pytest.mark.asyncio
    async def test_profile_survives_storage(self, sql_store):
        profile = make_profile(solved=40, accuracy=0.75, skill=0.55, results=[True, False, True], level=4)
        set_type_stats(profile, "number-series", attempts=12, accuracy=0.5, preference=0.7)
        profile.skill_history = [0.3, 0.4, 0.55]

        await sql_store.save("user-1", profile)
        loaded = await sql_store.load("user-1")

        assert loaded.user_id == "user-1"
        assert loaded.total_puzzles_solved == 40
        assert loaded.current_skill_level == pytest.approx(0.55)
        assert loaded.current_level == 4
        assert loaded.puzzle_type_stats["number-series"].preference_score == pytest.approx(0.7)
        assert [s.success for s in loaded.behavioral_pattern.snapshots] == [True, False, True]
        assert loaded.skill_history == [0.3, 0.4, 0.55]

    @pytest.mark.asyncio
    async def test_save_overwrites(self, sql_store):
        await sql_store.save("user-1", make_profile(solved=1))
        await sql_store.save("user-1", make_profile(solved=2))

        assert (await sql_store.load("user-1")).total_puzzles_solved == 2
        assert sql_store.list_users() == ["user-1"]

    @pytest.mark.asyncio
    async def test_delete(self, sql_store):
        await sql_store.save("user-1", make_profile())
        await sql_store.save("user-2", make_profile(user_id="user-2"))

        await sql_store.delete("user-1")

        assert sql_store.list_users() == ["user-2"]

    @pytest.mark.asyncio
    async def test_corrupt_payload_raises_store_error(self, sql_store):
        with session_scope(sql_store._session_factory) as session:
            session.add(UserProfileRecord(user_id="broken", payload={"total_puzzles_solved": 3}))

        with pytest.raises(ProfileStoreError) as exc_info:
            await sql_store.load("broken")

        assert exc_info.value.operation == "load"
