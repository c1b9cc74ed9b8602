"""Unit tests for the MongoDB user store."""

from unittest.mock import AsyncMock, MagicMock

from pymongo.errors import NetworkTimeout
import pytest

from biokey_auth.errors import ConflictError, InternalError, NotFoundError
from biokey_auth.routes.auth.models import Role
from biokey_auth.routes.auth.services.users.store import MongoUserStore

from conftest import START_TIME, FakeCollection


class TestMongoUserStore:
    @pytest.mark.asyncio
    async def test_create_sets_defaults(self, user_store):
        user = await user_store.create("a@example.com", "hash", Role.USER)

        assert user.email == "a@example.com"
        assert user.password_hash == "hash"
        assert user.biometric_key is None
        assert user.role is Role.USER
        assert user.created_at == START_TIME
        assert user.updated_at == START_TIME

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, user_store):
        await user_store.create("a@example.com", "hash")

        with pytest.raises(ConflictError) as exc_info:
            await user_store.create("a@example.com", "other-hash")
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_find_by_email_and_id(self, user_store):
        created = await user_store.create("a@example.com", "hash")

        assert (await user_store.find_by_email("a@example.com")).id == created.id
        assert (await user_store.find_by_id(created.id)).email == "a@example.com"
        assert await user_store.find_by_email("b@example.com") is None

    @pytest.mark.asyncio
    async def test_find_by_malformed_id_returns_none(self, user_store):
        assert await user_store.find_by_id("not-an-object-id") is None

    @pytest.mark.asyncio
    async def test_update_sets_fields_and_timestamp(self, user_store, clock):
        created = await user_store.create("a@example.com", "hash")
        later = clock.advance(minutes=3)

        updated = await user_store.update(created.id, {"biometric_key": "04ab"})

        assert updated.biometric_key == "04ab"
        assert updated.updated_at == later
        assert updated.created_at == START_TIME

    @pytest.mark.asyncio
    async def test_update_unknown_user_returns_none(self, user_store):
        assert await user_store.update("65a1f0c2e4b0a1b2c3d4e5f6", {"biometric_key": "04ab"}) is None
        assert await user_store.update("bogus", {"biometric_key": "04ab"}) is None

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, user_store):
        created = await user_store.create("a@example.com", "hash")

        with pytest.raises(ValueError):
            await user_store.update(created.id, {"is_admin": True})

    @pytest.mark.asyncio
    async def test_update_to_taken_email_conflicts(self, user_store):
        await user_store.create("a@example.com", "hash")
        second = await user_store.create("b@example.com", "hash")

        with pytest.raises(ConflictError):
            await user_store.update(second.id, {"email": "a@example.com"})

    @pytest.mark.asyncio
    async def test_find_all_oldest_first(self, user_store, clock):
        assert await user_store.find_all() == []

        clock.advance(minutes=1)
        later = await user_store.create("b@example.com", "hash")
        clock.advance(minutes=-5)
        earlier = await user_store.create("a@example.com", "hash")

        assert [user.id for user in await user_store.find_all()] == [earlier.id, later.id]

    @pytest.mark.asyncio
    async def test_delete_returns_removed_user(self, user_store):
        created = await user_store.create("a@example.com", "hash")

        removed = await user_store.delete(created.id)

        assert removed.id == created.id
        assert await user_store.find_by_id(created.id) is None

    @pytest.mark.asyncio
    async def test_delete_unknown_user_raises_not_found(self, user_store):
        with pytest.raises(NotFoundError) as exc_info:
            await user_store.delete("65a1f0c2e4b0a1b2c3d4e5f6")
        assert exc_info.value.message == "User not found"

        with pytest.raises(NotFoundError):
            await user_store.delete("bogus")

    @pytest.mark.asyncio
    async def test_driver_failure_becomes_internal_error(self):
        collection = MagicMock()
        collection.find_one = AsyncMock(side_effect=NetworkTimeout("timed out"))
        store = MongoUserStore(collection)

        with pytest.raises(InternalError):
            await store.find_by_email("a@example.com")

    @pytest.mark.asyncio
    async def test_ensure_indexes(self):
        collection = FakeCollection("users")
        await MongoUserStore(collection).ensure_indexes()

        assert collection.indexes["email_1"] == {"key": "email", "unique": True}
