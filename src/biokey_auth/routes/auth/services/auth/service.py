"""
Authentication service: registration, password login, biometric login and
biometric key registration.

`AuthService` composes the user store, the session store, password hashing,
token issuance and signature verification, all handed in at construction.
It keeps no state of its own between calls; every operation is one attempt
whose failure is logged here and re-raised unchanged as an `AuthError`.

Biometric registration is a two step protocol:

1. `initiate_biometric_auth` issues a challenge and stores it in a session
   that expires after `challenge_expiry_minutes`. A user has at most one
   pending session.
2. `complete_biometric_registration` verifies the client's signature over
   that challenge with the submitted public key, stores the key on the user
   and removes the session. `abort_biometric_registration` discards it.

Login failures are deliberately uninformative: an unknown email and a wrong
password (or signature) produce the same `UnauthorizedError`.
"""

import logging
from typing import Callable, Optional

from biokey_auth.errors import AuthError, NotFoundError, UnauthorizedError, ValidationError
from biokey_auth.managers.logging_manager import get_logger
from biokey_auth.routes.auth.models import AuthResult, ChallengeResponse, Role, Session, UserInDB
from biokey_auth.routes.auth.services.auth.password import (
    PASSWORD_MAX_BYTES,
    PASSWORD_MIN_LENGTH,
    validate_password_policy,
)
from biokey_auth.routes.auth.services.interfaces import PasswordHasher, SessionRepository, TokenMinter, UserStore
from biokey_auth.routes.auth.services.webauthn.challenge import generate_secure_challenge
from biokey_auth.routes.auth.services.webauthn.crypto import SignatureVerifier
from biokey_auth.utils.datetime_utils import Clock, minutes_from, utc_now
from biokey_auth.utils.logging_utils import log_performance, log_security_event

CHALLENGE_EXPIRY_MINUTES = 5

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_BIOMETRIC_CREDENTIALS = "Invalid biometric credentials"
# Compared against when the email is unknown so both failures cost one bcrypt check
_TIMING_PLACEHOLDER_PASSWORD = "biokey-timing-placeholder"


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class AuthService:
    def __init__(
        self,
        users: UserStore,
        sessions: SessionRepository,
        passwords: PasswordHasher,
        tokens: TokenMinter,
        verifier: SignatureVerifier,
        *,
        challenge_factory: Callable[[], str] = generate_secure_challenge,
        clock: Clock = utc_now,
        challenge_expiry_minutes: int = CHALLENGE_EXPIRY_MINUTES,
        password_min_length: int = PASSWORD_MIN_LENGTH,
        logger: Optional[logging.Logger] = None,
    ):
        self.users = users
        self.sessions = sessions
        self.passwords = passwords
        self.tokens = tokens
        self.verifier = verifier
        self.challenge_factory = challenge_factory
        self.clock = clock
        self.challenge_expiry_minutes = challenge_expiry_minutes
        self.password_min_length = password_min_length
        self.logger = logger or get_logger(prefix="[Auth Service]")
        self._placeholder_hash: Optional[str] = None

    def _issue(self, user: UserInDB, challenge: Optional[str] = None) -> AuthResult:
        pair = self.tokens.issue(user)
        return AuthResult(
            user=user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            challenge=challenge,
        )

    # --- Password flows ---

    @log_performance("register_user")
    async def register(self, email: str, password: str, with_biometric: bool = False) -> AuthResult:
        """
        Create a user and return it with a token pair.

        With `with_biometric` a biometric registration is started as well and
        its challenge is part of the result.

        Raises:
            ValidationError: missing email or password below policy.
            ConflictError: email already registered.
        """
        email = normalize_email(email)
        try:
            if not email:
                raise ValidationError("Email is required")
            validate_password_policy(password, self.password_min_length)

            user = await self.users.create(email, self.passwords.hash(password), Role.USER)

            challenge = None
            if with_biometric:
                session = await self.initiate_biometric_auth(user.email)
                challenge = session.challenge

            result = self._issue(user, challenge)
        except AuthError as exc:
            self.logger.error("Error registering user %s: %s", email, exc)
            log_security_event(
                event_type="registration",
                success=False,
                details={"email": email, "reason": exc.code.value},
            )
            raise

        log_security_event(
            event_type="registration",
            user_id=user.id,
            success=True,
            details={"email": email, "with_biometric": with_biometric},
        )
        return result

    def _compare_placeholder(self, password: str) -> None:
        if self._placeholder_hash is None:
            self._placeholder_hash = self.passwords.hash(_TIMING_PLACEHOLDER_PASSWORD)
        self.passwords.compare(password, self._placeholder_hash)

    @log_performance("login_with_password")
    async def login_with_password(self, email: str, password: str) -> AuthResult:
        """
        Raises:
            UnauthorizedError: unknown email, wrong or overlong password, indistinguishably.
            InternalError: the stored password hash could not be checked.
        """
        email = normalize_email(email)
        candidate: Optional[str] = password or ""
        if len(candidate.encode("utf-8")) > PASSWORD_MAX_BYTES:
            # Registration refuses such passwords, so none can match; bcrypt would raise on it
            candidate = None
        try:
            user = await self.users.find_by_email(email) if email else None
            if user is None or candidate is None:
                self._compare_placeholder(candidate or "")
                raise UnauthorizedError(INVALID_CREDENTIALS)
            if not self.passwords.compare(candidate, user.password_hash):
                raise UnauthorizedError(INVALID_CREDENTIALS)
        except AuthError as exc:
            self.logger.error("Error logging in with password: %s", exc)
            log_security_event(event_type="login_password", success=False, details={"email": email})
            raise

        log_security_event(event_type="login_password", user_id=user.id, success=True)
        return self._issue(user)

    # --- Biometric flows ---

    @log_performance("biometric_login")
    async def biometric_login(self, email: str, challenge: str, signed_challenge: str) -> AuthResult:
        """
        Log in by proving possession of the private key registered for `email`.

        If `challenge` is the user's pending server-issued challenge, that
        session must still be live and is consumed on success.

        Raises:
            UnauthorizedError: for every failure, including a malformed key.
        """
        email = normalize_email(email)
        try:
            user = await self.users.find_by_email(email) if email else None
            if user is None or not user.biometric_key:
                raise UnauthorizedError(INVALID_BIOMETRIC_CREDENTIALS)

            try:
                valid = self.verifier.verify(signed_challenge, challenge, user.biometric_key)
            except ValidationError as exc:
                self.logger.warning("Stored biometric key for user %s is unusable: %s", user.id, exc)
                valid = False
            if not valid:
                raise UnauthorizedError(INVALID_BIOMETRIC_CREDENTIALS)

            session = await self.sessions.find_by_user_id_and_challenge(user.id, challenge)
            if session is not None:
                if session.is_expired(self.clock()):
                    raise UnauthorizedError(INVALID_BIOMETRIC_CREDENTIALS)
                await self.sessions.delete(user.id, challenge)
        except AuthError as exc:
            self.logger.error("Error logging in with biometric key: %s", exc)
            log_security_event(event_type="login_biometric", success=False, details={"email": email})
            raise

        log_security_event(event_type="login_biometric", user_id=user.id, success=True)
        return self._issue(user)

    @log_performance("initiate_biometric_auth")
    async def initiate_biometric_auth(self, email: str) -> Session:
        """
        Issue a challenge for `email` and store it as the user's pending session.

        Raises:
            ValidationError: empty email.
            NotFoundError: unknown user.
            UnauthorizedError: the user already has a pending, unexpired session.
        """
        email = normalize_email(email)
        try:
            if not email:
                raise ValidationError("Email is required")

            user = await self.users.find_by_email(email)
            if user is None:
                raise NotFoundError("User not found")

            now = self.clock()
            session = await self.sessions.create(
                user.id,
                self.challenge_factory(),
                minutes_from(now, self.challenge_expiry_minutes),
                now,
            )
        except AuthError as exc:
            self.logger.error("Error initiating biometric auth for %s: %s", email, exc)
            raise

        log_security_event(
            event_type="biometric_challenge_created",
            user_id=user.id,
            success=True,
            details={"expire_at": session.expire_at.isoformat()},
        )
        return session

    @log_performance("complete_biometric_registration")
    async def complete_biometric_registration(self, user_id: str, biometric_key: str, signed_challenge: str) -> bool:
        """
        Register `biometric_key` for the user once it has signed the pending challenge.

        An expired session is reported and left in place.

        Returns:
            bool: True on success, False if the user record could not be updated.

        Raises:
            NotFoundError: no pending session.
            ValidationError: expired session, malformed key or bad signature.
        """
        try:
            session = await self.sessions.find_by_user_id(user_id)
            if session is None:
                raise NotFoundError("Session not found")

            if session.is_expired(self.clock()):
                raise ValidationError("Session has expired")

            if not self.verifier.verify(signed_challenge, session.challenge, biometric_key):
                raise ValidationError("Invalid biometric key")

            user = await self.users.update(user_id, {"biometric_key": biometric_key})
            if user is None:
                self.logger.warning("User %s vanished before the biometric key was stored", user_id)
                return False

            await self.sessions.delete(user.id, session.challenge)
        except AuthError as exc:
            self.logger.error("Error completing biometric registration for user %s: %s", user_id, exc)
            log_security_event(
                event_type="biometric_registration",
                user_id=user_id,
                success=False,
                details={"reason": exc.message},
            )
            raise

        log_security_event(event_type="biometric_registration", user_id=user.id, success=True)
        return True

    async def abort_biometric_registration(self, user_id: str, challenge: str) -> bool:
        """Discard the pending session; returns whether one was removed."""
        removed = await self.sessions.delete(user_id, challenge)
        self.logger.info("Biometric registration aborted for user %s: removed=%s", user_id, removed)
        return removed

    # --- Boundary helpers ---

    async def resolve_user_id(self, user_id: Optional[str] = None, email: Optional[str] = None) -> str:
        """
        Return `user_id`, or look it up from `email` (`NotFoundError` if unknown).

        The reference is trusted as given; HTTP callers pass the bearer token's subject.
        """
        if user_id:
            return user_id
        email = normalize_email(email)
        if not email:
            raise ValidationError("Either user_id or email is required")
        user = await self.users.find_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        return user.id

    async def generate_challenge(self, email: str) -> ChallengeResponse:
        session = await self.initiate_biometric_auth(email)
        return ChallengeResponse(challenge=session.challenge)

    async def register_biometrics(
        self,
        biometric_key: str,
        signed_challenge: str,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> bool:
        resolved = await self.resolve_user_id(user_id, email)
        return await self.complete_biometric_registration(resolved, biometric_key, signed_challenge)

    async def get_user(self, user_id: str) -> UserInDB:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_current_user(self, token: str) -> UserInDB:
        """Resolve a bearer access token to its user; `UnauthorizedError` if either is gone."""
        claims = self.tokens.decode_access_token(token)
        user = await self.users.find_by_id(claims.sub)
        if user is None:
            self.logger.info("Access token for missing user %s rejected", claims.sub)
            raise UnauthorizedError("Invalid token")
        return user
