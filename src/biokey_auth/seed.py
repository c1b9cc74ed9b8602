"""
Seed the user collection with development accounts.

Creates two password users and, when asked, an administrator. Accounts whose
email is already registered are left untouched, so the seed can be re-run.

Usage:
    biokey-auth-seed
    biokey-auth-seed --admin-email admin@example.com --admin-password 'a-strong-password'
"""

import argparse
import asyncio
from typing import Iterable, List, NamedTuple, Optional, Sequence

from biokey_auth.config import settings
from biokey_auth.database import db_manager
from biokey_auth.errors import ConflictError
from biokey_auth.managers.logging_manager import get_logger
from biokey_auth.routes.auth.models import Role, UserInDB
from biokey_auth.routes.auth.services.auth.password import BcryptPasswordHasher
from biokey_auth.routes.auth.services.users.service import UserService
from biokey_auth.routes.auth.services.users.store import MongoUserStore
from biokey_auth.routes.auth.services.webauthn.sessions import SessionStore

logger = get_logger(prefix="[Seed]")


class SeedAccount(NamedTuple):
    email: str
    password: str
    role: Role = Role.USER


DEFAULT_ACCOUNTS = (
    SeedAccount("testuser1@example.com", "password1"),
    SeedAccount("testuser2@example.com", "password1"),
)


async def seed_users(service: UserService, accounts: Iterable[SeedAccount]) -> List[UserInDB]:
    """Create each account that does not exist yet; returns the ones created."""
    created = []
    for account in accounts:
        try:
            user = await service.create_user(account.email, account.password, account.role)
        except ConflictError:
            logger.info("Seed account %s already exists, skipping", account.email)
            continue
        logger.info("Seeded %s account %s", user.role.value, user.email)
        created.append(user)
    return created


def build_accounts(admin_email: Optional[str] = None, admin_password: Optional[str] = None) -> List[SeedAccount]:
    accounts = list(DEFAULT_ACCOUNTS)
    if admin_email:
        accounts.append(SeedAccount(admin_email, admin_password, Role.ADMIN))
    return accounts


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed development user accounts")
    parser.add_argument("--admin-email", help="also create an ADMIN account with this email")
    parser.add_argument("--admin-password", help="password for the ADMIN account")
    args = parser.parse_args(argv)
    if bool(args.admin_email) != bool(args.admin_password):
        parser.error("--admin-email and --admin-password must be given together")
    return args


async def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    await db_manager.connect()
    try:
        users = MongoUserStore(db_manager.get_collection(settings.USERS_COLLECTION))
        sessions = SessionStore(db_manager.get_collection(settings.SESSIONS_COLLECTION))
        await db_manager.create_indexes([users, sessions])

        service = UserService(
            users,
            sessions,
            BcryptPasswordHasher(rounds=settings.BCRYPT_ROUNDS),
            password_min_length=settings.PASSWORD_MIN_LENGTH,
        )
        created = await seed_users(service, build_accounts(args.admin_email, args.admin_password))
    finally:
        await db_manager.disconnect()

    logger.info("Seed finished: %d account(s) created", len(created))
    return 0


def run():
    """Console entry point."""
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    run()
