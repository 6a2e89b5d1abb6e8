"""Tests for crypto module - Key derivation and credential encryption."""

import base64

import pytest

from snipsync.core import (
    DecryptionError,
    decrypt_value,
    derive_key,
    encrypt_value,
    generate_salt,
)


class TestKeyDerivation:
    """Tests for Argon2id key derivation."""

    def test_derive_key_returns_32_bytes(self) -> None:
        """Key derivation should return exactly 32 bytes (256 bits)."""
        key = derive_key("secret", generate_salt())
        assert len(key) == 32

    def test_derive_key_deterministic(self) -> None:
        """Same secret and salt should produce same key."""
        salt = generate_salt()
        assert derive_key("secret", salt) == derive_key("secret", salt)

    def test_derive_key_different_secrets(self) -> None:
        """Different secrets should produce different keys."""
        salt = generate_salt()
        assert derive_key("secret1", salt) != derive_key("secret2", salt)

    def test_generate_salt_is_random(self) -> None:
        """Two salts should differ."""
        assert generate_salt() != generate_salt()
        assert len(generate_salt()) == 16


class TestCredentialEncryption:
    """Tests for encrypt_value / decrypt_value."""

    def test_roundtrip(self) -> None:
        """Decrypting should return the original token."""
        token = encrypt_value("ghp_abc123", "app-secret")
        assert decrypt_value(token, "app-secret") == "ghp_abc123"

    def test_ciphertext_is_not_plaintext(self) -> None:
        """The stored value must not contain the token."""
        token = encrypt_value("ghp_abc123", "app-secret")
        assert "ghp_abc123" not in token
        raw = base64.urlsafe_b64decode(token)
        assert b"ghp_abc123" not in raw

    def test_encrypt_is_randomized(self) -> None:
        """Encrypting twice should produce different ciphertexts."""
        assert encrypt_value("ghp_abc123", "s") != encrypt_value("ghp_abc123", "s")

    def test_empty_values(self) -> None:
        """Empty strings pass through unchanged."""
        assert encrypt_value("", "s") == ""
        assert decrypt_value("", "s") == ""

    def test_wrong_secret_fails(self) -> None:
        """Decrypting with another secret should fail."""
        token = encrypt_value("ghp_abc123", "right")
        with pytest.raises(DecryptionError):
            decrypt_value(token, "wrong")

    def test_tampered_data_fails(self) -> None:
        """Modified ciphertext should fail authentication."""
        raw = bytearray(base64.urlsafe_b64decode(encrypt_value("ghp_abc123", "s")))
        raw[-1] ^= 0xFF
        with pytest.raises(DecryptionError):
            decrypt_value(base64.urlsafe_b64encode(bytes(raw)).decode("ascii"), "s")

    def test_malformed_input_fails(self) -> None:
        """Garbage and truncated input should raise DecryptionError."""
        with pytest.raises(DecryptionError):
            decrypt_value("not base64 at all!!", "s")
        with pytest.raises(DecryptionError):
            decrypt_value(base64.urlsafe_b64encode(b"short").decode("ascii"), "s")
