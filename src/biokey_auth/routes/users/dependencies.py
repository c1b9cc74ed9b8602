"""FastAPI dependencies for the user management routes."""

from fastapi import Depends

from biokey_auth.routes.auth.dependencies import get_auth_service
from biokey_auth.routes.auth.services.auth.service import AuthService
from biokey_auth.routes.auth.services.users.service import UserService


def get_user_service(auth_service: AuthService = Depends(get_auth_service)) -> UserService:
    """Build a `UserService` over the same stores and hasher as the auth service."""
    return UserService(
        auth_service.users,
        auth_service.sessions,
        auth_service.passwords,
        password_min_length=auth_service.password_min_length,
    )
