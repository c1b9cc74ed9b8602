"""Contracts the auth service requires from its collaborators."""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Protocol

from biokey_auth.routes.auth.models import Role, Session, TokenClaims, TokenPair, UserInDB


class UserStore(Protocol):
    async def create(self, email: str, password_hash: str, role: Role = Role.USER) -> UserInDB: ...

    async def find_by_email(self, email: str) -> Optional[UserInDB]: ...

    async def find_by_id(self, user_id: str) -> Optional[UserInDB]: ...

    async def update(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserInDB]: ...

    async def find_all(self) -> List[UserInDB]: ...

    async def delete(self, user_id: str) -> UserInDB: ...


class PasswordHasher(Protocol):
    def hash(self, plain: str) -> str: ...

    def compare(self, plain: str, hashed: str) -> bool: ...


class SessionRepository(Protocol):
    async def create(self, user_id: str, challenge: str, expire_at: datetime, now: datetime) -> Session: ...

    async def find_by_user_id(self, user_id: str) -> Optional[Session]: ...

    async def find_by_user_id_and_challenge(self, user_id: str, challenge: str) -> Optional[Session]: ...

    async def delete(self, user_id: str, challenge: str) -> bool: ...

    async def delete_for_user(self, user_id: str) -> int: ...


class TokenMinter(Protocol):
    def issue(self, user: UserInDB) -> TokenPair: ...

    def decode_access_token(self, token: str) -> TokenClaims: ...


class TokenSigner(Protocol):
    def sign(self, claims: Dict[str, Any], secret: str, expiry: timedelta) -> str: ...

    def decode(self, token: str, secret: str) -> Dict[str, Any]: ...
