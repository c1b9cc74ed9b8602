"""Authentication models: stored records, service results and HTTP payloads."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field

from biokey_auth.utils.datetime_utils import ensure_utc


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class UserInDB(BaseModel):
    """
    A user record as held by the user store.

    `password_hash` never leaves the service layer; HTTP responses use
    `UserOut`.
    """

    id: str
    email: str
    password_hash: str
    biometric_key: Optional[str] = None
    role: Role = Role.USER
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "UserInDB":
        return cls(
            id=str(doc["_id"]),
            email=doc["email"],
            password_hash=doc["password_hash"],
            biometric_key=doc.get("biometric_key"),
            role=Role(doc.get("role", Role.USER.value)),
            created_at=ensure_utc(doc["created_at"]),
            updated_at=ensure_utc(doc.get("updated_at") or doc["created_at"]),
        )


class Session(BaseModel):
    """A pending biometric challenge awaiting a signed response."""

    id: str
    user_id: str
    challenge: str
    expire_at: datetime
    created_at: datetime

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Session":
        return cls(
            id=str(doc["_id"]),
            user_id=doc["user_id"],
            challenge=doc["challenge"],
            expire_at=ensure_utc(doc["expire_at"]),
            created_at=ensure_utc(doc["created_at"]),
        )

    def is_expired(self, now: datetime) -> bool:
        # Same boundary as the store's `expire_at <= now` replacement query
        return now >= self.expire_at


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class TokenClaims(BaseModel):
    """Claims carried by an access token."""

    email: str
    sub: str
    role: Role


class AuthResult(BaseModel):
    """Outcome of a successful registration or login."""

    user: UserInDB
    access_token: str
    refresh_token: str
    challenge: Optional[str] = None


# --- HTTP payloads ---


class UserOut(BaseModel):
    id: str = Field(..., description="Unique user identifier.")
    email: str = Field(..., description="User email address.", examples=["a@example.com"])
    biometric_key: Optional[str] = Field(
        default=None, description="Registered public key (hex) used to verify signed challenges."
    )
    role: Role = Field(default=Role.USER, description="User role.")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: UserInDB) -> "UserOut":
        return cls(**user.model_dump(exclude={"password_hash"}))


class RegisterRequest(BaseModel):
    email: EmailStr = Field(..., description="Unique email address for the account.", examples=["a@example.com"])
    password: str = Field(..., description="Account password, at least 8 characters.", examples=["password1"])
    with_biometric: bool = Field(
        default=False, description="Start a biometric key registration and return its challenge."
    )


class LoginRequest(BaseModel):
    email: str = Field(..., examples=["a@example.com"])
    password: str = Field(..., examples=["password1"])


class ChallengeResponse(BaseModel):
    challenge: str = Field(..., description="Base64url challenge to be signed with the user's private key.")


class BiometricRegistrationRequest(BaseModel):
    """Enrols a key for the bearer token's user; the body carries no user reference."""

    biometric_key: str = Field(..., description="Hex encoded public key to register.")
    signed_challenge: str = Field(..., description="Hex encoded signature over the pending challenge.")


class AbortBiometricRequest(BaseModel):
    challenge: str = Field(..., description="Challenge of the pending registration to discard.")


class BiometricLoginRequest(BaseModel):
    email: str
    challenge: str
    signed_challenge: str = Field(..., description="Hex encoded signature over the challenge.")


class AuthResponse(BaseModel):
    user: UserOut
    access_token: str
    refresh_token: str
    challenge: Optional[str] = None

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthResponse":
        return cls(
            user=UserOut.from_user(result.user),
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            challenge=result.challenge,
        )


class LoginResponse(BaseModel):
    user: UserOut
    access_token: str
    refresh_token: str

    @classmethod
    def from_result(cls, result: AuthResult) -> "LoginResponse":
        return cls(
            user=UserOut.from_user(result.user),
            access_token=result.access_token,
            refresh_token=result.refresh_token,
        )


class SuccessResponse(BaseModel):
    success: bool
