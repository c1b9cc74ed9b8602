"""
Access and refresh token issuance.

The access token carries `{email, sub, role}` and expires after
`ACCESS_TOKEN_EXPIRE_MINUTES`. The refresh token signs
`{payload: <access claims>, access_token: <access jwt>}` with the same
secret and the same expiry.

Known weakness, kept because clients depend on the token format: the refresh
token has no expiry, secret or claim set of its own and cannot be revoked on
its own. Hardening it means an opaque, server-tracked refresh identifier
with rotation.
"""

from datetime import timedelta
import logging
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from biokey_auth.errors import UnauthorizedError
from biokey_auth.managers.logging_manager import get_logger
from biokey_auth.routes.auth.models import TokenClaims, TokenPair, UserInDB
from biokey_auth.routes.auth.services.interfaces import TokenSigner
from biokey_auth.utils.datetime_utils import Clock, utc_now


class JoseTokenSigner:
    """`sign(claims, secret, expiry)` primitive backed by python-jose."""

    def __init__(self, algorithm: str = "HS256", clock: Clock = utc_now):
        self.algorithm = algorithm
        self.clock = clock

    def sign(self, claims: Dict[str, Any], secret: str, expiry: timedelta) -> str:
        now = self.clock()
        to_encode = claims.copy()
        to_encode.update({"exp": now + expiry, "iat": now})
        return jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def decode(self, token: str, secret: str) -> Dict[str, Any]:
        return jwt.decode(token, secret, algorithms=[self.algorithm])


class TokenIssuer:
    def __init__(
        self,
        secret_key: str,
        signer: Optional[TokenSigner] = None,
        access_token_expire_minutes: int = 15,
        logger: Optional[logging.Logger] = None,
    ):
        if not isinstance(secret_key, (str, bytes)) or not secret_key:
            raise RuntimeError("JWT secret key is missing or invalid. Check your settings.SECRET_KEY.")
        self.secret_key = secret_key
        self.signer = signer or JoseTokenSigner()
        self.expiry = timedelta(minutes=access_token_expire_minutes)
        self.logger = logger or get_logger(prefix="[Auth Tokens]")

    def issue(self, user: UserInDB) -> TokenPair:
        payload = {"email": user.email, "sub": user.id, "role": user.role.value}
        access_token = self.signer.sign(payload, self.secret_key, self.expiry)
        refresh_token = self.signer.sign(
            {"payload": payload, "access_token": access_token}, self.secret_key, self.expiry
        )
        self.logger.debug("Issued token pair for user %s", user.id)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def decode_access_token(self, token: str) -> TokenClaims:
        """
        Validate an access token and return its claims.

        Refresh tokens are signed with the same key but lack top-level claims,
        so they are rejected here.

        Raises:
            UnauthorizedError: on a bad signature, expiry or claim set.
        """
        try:
            claims = self.signer.decode(token, self.secret_key)
            return TokenClaims(**{k: claims.get(k) for k in ("email", "sub", "role")})
        except JWTError as e:
            self.logger.info("Rejected access token: %s", e)
            raise UnauthorizedError("Invalid token")
        except PydanticValidationError:
            self.logger.info("Rejected token without access claims")
            raise UnauthorizedError("Invalid token")
