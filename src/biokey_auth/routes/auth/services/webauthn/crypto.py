"""
Signature verification for biometric (public key) challenges.

A registered biometric key is the hex encoding of either a DER
SubjectPublicKeyInfo (EC or RSA) or a SEC1 encoded P-256 point. Clients sign
the UTF-8 bytes of the challenge with SHA-256: ECDSA (DER encoded signature)
for EC keys, PKCS#1 v1.5 for RSA keys. Signatures travel hex encoded.

Key *format* problems (empty, non-hex) raise `ValidationError` before any
cryptography runs. Everything after that, from undecodable key material to
an invalid signature, yields `False`.
"""

import logging
import re
from typing import Optional, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.serialization import load_der_public_key

from biokey_auth.errors import ValidationError
from biokey_auth.managers.logging_manager import get_logger

HEX_PATTERN = re.compile(r"[0-9a-fA-F]+")

# SEC1 point prefixes: 0x04 uncompressed, 0x02/0x03 compressed
SEC1_POINT_LENGTHS = {0x04: 65, 0x02: 33, 0x03: 33}

PublicKey = Union[ec.EllipticCurvePublicKey, rsa.RSAPublicKey]


class WebAuthnCryptoError(Exception):
    """Raised when public key material cannot be decoded."""


def is_hex(value: str) -> bool:
    return bool(value) and HEX_PATTERN.fullmatch(value) is not None


def load_public_key(public_key_hex: str) -> PublicKey:
    """
    Decode a hex public key into a `cryptography` key object.

    Raises:
        WebAuthnCryptoError: if the bytes are not a supported public key.
    """
    try:
        raw = bytes.fromhex(public_key_hex)
    except ValueError as e:
        raise WebAuthnCryptoError(f"Public key is not valid hex: {e}") from e

    try:
        if raw and SEC1_POINT_LENGTHS.get(raw[0]) == len(raw):
            return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), raw)
        key = load_der_public_key(raw)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise WebAuthnCryptoError(f"Unsupported public key encoding: {e}") from e

    if not isinstance(key, (ec.EllipticCurvePublicKey, rsa.RSAPublicKey)):
        raise WebAuthnCryptoError(f"Unsupported public key type: {type(key).__name__}")
    return key


class SignatureVerifier:
    """Validates a signed challenge against a hex encoded public key."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger(prefix="[WEBAUTHN-CRYPTO]")

    def validate_public_key(self, public_key_hex: str) -> None:
        if not public_key_hex:
            raise ValidationError("Empty biometric key")
        if not is_hex(public_key_hex):
            raise ValidationError("Invalid biometric key format")

    def verify(self, signature_hex: str, challenge: str, public_key_hex: str) -> bool:
        """
        Check `signature_hex` over `challenge` with the key in `public_key_hex`.

        Raises:
            ValidationError: if the key is empty or not hexadecimal.
        """
        self.validate_public_key(public_key_hex)

        try:
            key = load_public_key(public_key_hex)
            signature = bytes.fromhex(signature_hex or "")
            data = challenge.encode("utf-8")
            if isinstance(key, ec.EllipticCurvePublicKey):
                key.verify(signature, data, ec.ECDSA(hashes.SHA256()))
            else:
                key.verify(signature, data, padding.PKCS1v15(), hashes.SHA256())
        except InvalidSignature:
            self.logger.info("Signature did not verify against the supplied public key")
            return False
        except (WebAuthnCryptoError, ValueError, TypeError, UnsupportedAlgorithm) as e:
            self.logger.warning("Signature verification failed: %s", e)
            return False

        return True
