"""Tests for the development account seed."""

from unittest.mock import AsyncMock, patch

import pytest

from biokey_auth import seed
from biokey_auth.routes.auth.models import Role

from conftest import FakeCollection


@pytest.mark.asyncio
async def test_seed_creates_default_accounts(user_service, password_hasher):
    created = await seed.seed_users(user_service, seed.DEFAULT_ACCOUNTS)

    assert [user.email for user in created] == ["testuser1@example.com", "testuser2@example.com"]
    assert all(user.role is Role.USER for user in created)
    assert password_hasher.compare("password1", created[0].password_hash)


@pytest.mark.asyncio
async def test_seed_is_rerunnable(user_service, users_collection):
    await seed.seed_users(user_service, seed.DEFAULT_ACCOUNTS)

    assert await seed.seed_users(user_service, seed.DEFAULT_ACCOUNTS) == []
    assert len(users_collection.docs) == 2


@pytest.mark.asyncio
async def test_seed_admin_account(user_service):
    created = await seed.seed_users(user_service, seed.build_accounts("admin@example.com", "admin-password"))

    assert created[-1].email == "admin@example.com"
    assert created[-1].role is Role.ADMIN


def test_admin_arguments_go_together():
    with pytest.raises(SystemExit):
        seed.parse_args(["--admin-email", "admin@example.com"])

    args = seed.parse_args(["--admin-email", "admin@example.com", "--admin-password", "admin-password"])
    assert args.admin_email == "admin@example.com"


@pytest.mark.asyncio
async def test_main_seeds_and_disconnects():
    users = FakeCollection("users")
    sessions = FakeCollection("auth_sessions")
    collections = {"users": users, "auth_sessions": sessions}

    with patch.object(seed.db_manager, "connect", AsyncMock()), patch.object(
        seed.db_manager, "disconnect", AsyncMock()
    ) as disconnect, patch.object(seed.db_manager, "get_collection", side_effect=collections.__getitem__):
        assert await seed.main([]) == 0

    disconnect.assert_awaited_once()
    assert sorted(doc["email"] for doc in users.docs) == ["testuser1@example.com", "testuser2@example.com"]
    assert users.indexes["email_1"]["unique"] is True
