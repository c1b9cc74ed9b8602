"""
Password policy and bcrypt hashing.

The auth service never stores or compares plaintext passwords itself; it
checks the policy and hands hashing and comparison to `BcryptPasswordHasher`.
"""

import logging
from typing import Optional

import bcrypt

from biokey_auth.errors import InternalError, ValidationError
from biokey_auth.managers.logging_manager import get_logger

PASSWORD_MIN_LENGTH: int = 8
# bcrypt only looks at the first 72 bytes; newer releases refuse longer input
PASSWORD_MAX_BYTES: int = 72


def validate_password_policy(password: str, min_length: int = PASSWORD_MIN_LENGTH) -> None:
    """
    Raise `ValidationError` unless `password` is acceptable.

    The only strength rule is a minimum length.
    """
    if not password or len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters long")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValidationError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes long")


class BcryptPasswordHasher:
    def __init__(self, rounds: int = 10, logger: Optional[logging.Logger] = None):
        self.rounds = rounds
        self.logger = logger or get_logger(prefix="[Auth Password]")

    def hash(self, plain: str) -> str:
        try:
            return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")
        except (ValueError, TypeError) as e:
            self.logger.error("Error hashing password: %s", e, exc_info=True)
            raise InternalError("Error hashing password") from e

    def compare(self, plain: str, hashed: str) -> bool:
        """
        Check `plain` against a stored bcrypt hash.

        Raises:
            InternalError: if the stored hash is unusable.
        """
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError) as e:
            self.logger.error("Error comparing passwords: %s", e, exc_info=True)
            raise InternalError("Error comparing passwords") from e
