"""
FastAPI dependencies for the auth routes.

`build_auth_service` wires the concrete stores, hasher, token issuer and
signature verifier from settings. The application builds one instance at
startup and keeps it on `app.state`; routes obtain it via `get_auth_service`,
which tests replace through `app.dependency_overrides`.
"""

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from biokey_auth.config import Settings, settings
from biokey_auth.database import DatabaseManager, db_manager
from biokey_auth.errors import ForbiddenError
from biokey_auth.managers.logging_manager import get_logger
from biokey_auth.routes.auth.models import Role, UserInDB
from biokey_auth.routes.auth.services.auth.password import BcryptPasswordHasher
from biokey_auth.routes.auth.services.auth.service import AuthService
from biokey_auth.routes.auth.services.auth.tokens import JoseTokenSigner, TokenIssuer
from biokey_auth.routes.auth.services.users.store import MongoUserStore
from biokey_auth.routes.auth.services.webauthn.crypto import SignatureVerifier
from biokey_auth.routes.auth.services.webauthn.sessions import SessionStore
from biokey_auth.utils.logging_utils import log_security_event

logger = get_logger(prefix="[Auth Dependencies]")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def build_auth_service(db: DatabaseManager = db_manager, config: Settings = settings) -> AuthService:
    """Assemble an `AuthService` over the connected database."""
    users = MongoUserStore(db.get_collection(config.USERS_COLLECTION))
    sessions = SessionStore(db.get_collection(config.SESSIONS_COLLECTION))
    tokens = TokenIssuer(
        config.SECRET_KEY.get_secret_value(),
        signer=JoseTokenSigner(algorithm=config.ALGORITHM),
        access_token_expire_minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES,
    )
    logger.info(
        "Auth service configured: challenge expiry %d min, token expiry %d min",
        config.CHALLENGE_EXPIRY_MINUTES,
        config.ACCESS_TOKEN_EXPIRE_MINUTES,
    )
    return AuthService(
        users,
        sessions,
        BcryptPasswordHasher(rounds=config.BCRYPT_ROUNDS),
        tokens,
        SignatureVerifier(),
        challenge_expiry_minutes=config.CHALLENGE_EXPIRY_MINUTES,
        password_min_length=config.PASSWORD_MIN_LENGTH,
    )


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        raise RuntimeError("Auth service is not initialised")
    return service


async def get_current_user_dep(
    token: str = Depends(oauth2_scheme), service: AuthService = Depends(get_auth_service)
) -> UserInDB:
    """Dependency function to retrieve the user behind the bearer token."""
    return await service.get_current_user(token)


async def require_admin(current_user: UserInDB = Depends(get_current_user_dep)) -> UserInDB:
    """Dependency that admits only users with the ADMIN role."""
    if current_user.role != Role.ADMIN:
        log_security_event(event_type="admin_access_denied", user_id=current_user.id, success=False)
        raise ForbiddenError("Admin access required")
    return current_user
