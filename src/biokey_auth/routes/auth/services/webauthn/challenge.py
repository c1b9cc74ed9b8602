"""
Biometric challenge generation.

Challenges are 32 random bytes from the OS CSPRNG, encoded as unpadded
base64url text. That text is what gets stored in the session, returned to the
client, signed by the client and compared on lookup; the raw bytes are never
persisted.
"""

import secrets

CHALLENGE_LENGTH_BYTES = 32  # 256 bits of entropy


def generate_secure_challenge() -> str:
    """
    Generate a cryptographically secure challenge.

    Returns:
        str: A random challenge (base64url encoded, 43 characters)
    """
    return secrets.token_urlsafe(CHALLENGE_LENGTH_BYTES)
