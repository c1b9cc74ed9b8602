"""
Administrative user management: create, list, read, update and remove
accounts on behalf of an administrator.

Password rules are the same as for self-registration. Biometric keys are not
settable here; a key is only ever stored after its holder signed a challenge.
"""

import logging
from typing import List, Optional

from biokey_auth.errors import AuthError, NotFoundError, ValidationError
from biokey_auth.managers.logging_manager import get_logger
from biokey_auth.routes.auth.models import Role, UserInDB
from biokey_auth.routes.auth.services.auth.password import PASSWORD_MIN_LENGTH, validate_password_policy
from biokey_auth.routes.auth.services.auth.service import normalize_email
from biokey_auth.routes.auth.services.interfaces import PasswordHasher, SessionRepository, UserStore
from biokey_auth.utils.logging_utils import log_performance, log_security_event


class UserService:
    def __init__(
        self,
        users: UserStore,
        sessions: SessionRepository,
        passwords: PasswordHasher,
        *,
        password_min_length: int = PASSWORD_MIN_LENGTH,
        logger: Optional[logging.Logger] = None,
    ):
        self.users = users
        self.sessions = sessions
        self.passwords = passwords
        self.password_min_length = password_min_length
        self.logger = logger or get_logger(prefix="[User Service]")

    @log_performance("create_user")
    async def create_user(
        self, email: str, password: str, role: Role = Role.USER, *, actor_id: Optional[str] = None
    ) -> UserInDB:
        """
        Raises:
            ValidationError: missing email or password below policy.
            ConflictError: email already registered.
        """
        email = normalize_email(email)
        try:
            if not email:
                raise ValidationError("Email is required")
            validate_password_policy(password, self.password_min_length)
            user = await self.users.create(email, self.passwords.hash(password), Role(role))
        except AuthError as exc:
            self.logger.error("Error creating user %s: %s", email, exc)
            raise

        log_security_event(
            event_type="user_created",
            user_id=user.id,
            success=True,
            details={"role": user.role.value, "actor_id": actor_id},
        )
        return user

    async def list_users(self) -> List[UserInDB]:
        return await self.users.find_all()

    async def get_user(self, user_id: str) -> UserInDB:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    @log_performance("update_user")
    async def update_user(
        self,
        user_id: str,
        *,
        email: Optional[str] = None,
        password: Optional[str] = None,
        role: Optional[Role] = None,
        actor_id: Optional[str] = None,
    ) -> UserInDB:
        """
        Change any of the user's email, password or role.

        Raises:
            ValidationError: nothing to change, empty email or weak password.
            NotFoundError: unknown user.
            ConflictError: the new email belongs to another user.
        """
        fields = {}
        try:
            if email is not None:
                email = normalize_email(email)
                if not email:
                    raise ValidationError("Email is required")
                fields["email"] = email
            if password is not None:
                validate_password_policy(password, self.password_min_length)
                fields["password_hash"] = self.passwords.hash(password)
            if role is not None:
                fields["role"] = Role(role)
            if not fields:
                raise ValidationError("No fields to update")

            user = await self.users.update(user_id, fields)
            if user is None:
                raise NotFoundError("User not found")
        except AuthError as exc:
            self.logger.error("Error updating user %s: %s", user_id, exc)
            raise

        log_security_event(
            event_type="user_updated",
            user_id=user.id,
            success=True,
            details={"fields": sorted(fields), "actor_id": actor_id},
        )
        return user

    async def remove_user(self, user_id: str, *, actor_id: Optional[str] = None) -> UserInDB:
        """Delete the user and any pending biometric session; `NotFoundError` if unknown."""
        try:
            user = await self.users.delete(user_id)
        except AuthError as exc:
            self.logger.error("Error removing user %s: %s", user_id, exc)
            raise

        purged = await self.sessions.delete_for_user(user.id)
        log_security_event(
            event_type="user_removed",
            user_id=user.id,
            success=True,
            details={"sessions_removed": purged, "actor_id": actor_id},
        )
        return user
