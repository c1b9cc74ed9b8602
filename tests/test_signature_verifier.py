"""
Unit tests for biometric signature verification.

Covers key format validation, EC (SEC1 and DER) and RSA keys, and the rule
that decode and signature failures yield False rather than raising.
"""

from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
import pytest

from biokey_auth.errors import ValidationError
from biokey_auth.routes.auth.services.webauthn.crypto import (
    SignatureVerifier,
    WebAuthnCryptoError,
    is_hex,
    load_public_key,
)

from conftest import make_ec_keypair, make_rsa_keypair, sign_challenge

CHALLENGE = "q1Zt7dVv4mIh0QbqkJc2Nf3Ww9yP8rLs5uXeTgHoA6E"


class TestSignatureVerifier:
    @pytest.fixture
    def verifier(self):
        return SignatureVerifier()

    def test_ec_uncompressed_point_verifies(self, verifier, ec_keypair):
        private_key, public_hex = ec_keypair
        assert verifier.verify(sign_challenge(private_key, CHALLENGE), CHALLENGE, public_hex) is True

    def test_ec_compressed_point_verifies(self, verifier, ec_keypair):
        private_key, _ = ec_keypair
        compressed = private_key.public_key().public_bytes(Encoding.X962, PublicFormat.CompressedPoint).hex()
        assert verifier.verify(sign_challenge(private_key, CHALLENGE), CHALLENGE, compressed) is True

    def test_ec_der_spki_verifies(self, verifier, ec_keypair):
        private_key, _ = ec_keypair
        der_hex = private_key.public_key().public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo).hex()
        assert verifier.verify(sign_challenge(private_key, CHALLENGE), CHALLENGE, der_hex) is True

    def test_rsa_der_spki_verifies(self, verifier):
        private_key, public_hex = make_rsa_keypair()
        assert verifier.verify(sign_challenge(private_key, CHALLENGE), CHALLENGE, public_hex) is True

    def test_uppercase_hex_key_accepted(self, verifier, ec_keypair):
        private_key, public_hex = ec_keypair
        assert verifier.verify(sign_challenge(private_key, CHALLENGE), CHALLENGE, public_hex.upper()) is True

    def test_signature_over_other_challenge_fails(self, verifier, ec_keypair):
        private_key, public_hex = ec_keypair
        signature = sign_challenge(private_key, "another-challenge")
        assert verifier.verify(signature, CHALLENGE, public_hex) is False

    def test_signature_from_other_key_fails(self, verifier, ec_keypair):
        _, public_hex = ec_keypair
        other_private, _ = make_ec_keypair()
        assert verifier.verify(sign_challenge(other_private, CHALLENGE), CHALLENGE, public_hex) is False

    def test_empty_key_raises(self, verifier):
        with pytest.raises(ValidationError) as exc_info:
            verifier.verify("00", CHALLENGE, "")
        assert exc_info.value.message == "Empty biometric key"

    def test_non_hex_key_raises(self, verifier):
        with pytest.raises(ValidationError) as exc_info:
            verifier.verify("00", CHALLENGE, "not-a-hex-key")
        assert exc_info.value.message == "Invalid biometric key format"

    def test_key_with_trailing_newline_raises(self, verifier, ec_keypair):
        private_key, public_hex = ec_keypair
        with pytest.raises(ValidationError) as exc_info:
            verifier.verify(sign_challenge(private_key, CHALLENGE), CHALLENGE, public_hex + "\n")
        assert exc_info.value.message == "Invalid biometric key format"

    def test_hex_but_not_a_key_returns_false(self, verifier):
        assert verifier.verify("3045", CHALLENGE, "deadbeef") is False

    def test_odd_length_hex_key_returns_false(self, verifier):
        assert verifier.verify("3045", CHALLENGE, "abc") is False

    def test_non_hex_signature_returns_false(self, verifier, ec_keypair):
        _, public_hex = ec_keypair
        assert verifier.verify("zz-not-hex", CHALLENGE, public_hex) is False

    def test_empty_signature_returns_false(self, verifier, ec_keypair):
        _, public_hex = ec_keypair
        assert verifier.verify("", CHALLENGE, public_hex) is False


class TestKeyHelpers:
    def test_is_hex(self):
        assert is_hex("0aF9")
        assert not is_hex("")
        assert not is_hex("0x12")
        assert not is_hex("0aF9\n")

    def test_load_public_key_rejects_garbage(self):
        with pytest.raises(WebAuthnCryptoError):
            load_public_key("04" + "00" * 64)
