"""Cryptographic functions for stored credentials.

This module provides:
- Key derivation using Argon2id
- Authenticated encryption using AES-256-GCM
- Text-safe encoding of encrypted credentials
"""

import base64
import binascii
import os

from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

# Argon2id parameters (OWASP recommendations for password hashing)
ARGON2_TIME_COST = 3
ARGON2_MEMORY_COST = 65536  # 64 MiB
ARGON2_PARALLELISM = 4
ARGON2_HASH_LEN = 32  # 256 bits

# AES-GCM constants
NONCE_SIZE = 12  # 96 bits (recommended for AES-GCM)
SALT_SIZE = 16  # 128 bits


class DecryptionError(ValueError):
    """Raised when a stored credential cannot be decrypted."""


def generate_salt() -> bytes:
    """Generate a cryptographically secure random salt.

    Returns:
        16 bytes of random data for use as salt in key derivation.
    """
    return os.urandom(SALT_SIZE)


def derive_key(secret: str, salt: bytes) -> bytes:
    """Derive a 256-bit encryption key from the application secret using Argon2id.

    Args:
        secret: The application secret key.
        salt: A 16-byte random salt (use generate_salt()).

    Returns:
        32 bytes (256 bits) derived key suitable for AES-256.
    """
    return hash_secret_raw(
        secret=secret.encode("utf-8"),
        salt=salt,
        time_cost=ARGON2_TIME_COST,
        memory_cost=ARGON2_MEMORY_COST,
        parallelism=ARGON2_PARALLELISM,
        hash_len=ARGON2_HASH_LEN,
        type=Type.ID,
    )


def encrypt_value(plaintext: str, secret: str) -> str:
    """Encrypt a credential for storage.

    A fresh salt and nonce are generated for every call, so encrypting
    the same value twice yields different ciphertexts.

    Args:
        plaintext: Value to encrypt. An empty string is stored as-is.
        secret: The application secret key.

    Returns:
        URL-safe base64 of: salt (16 bytes) || nonce (12 bytes) || ciphertext || tag.
    """
    if not plaintext:
        return ""
    salt = generate_salt()
    nonce = os.urandom(NONCE_SIZE)
    aesgcm = AESGCM(derive_key(secret, salt))
    ciphertext = aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.urlsafe_b64encode(salt + nonce + ciphertext).decode("ascii")


def decrypt_value(token: str, secret: str) -> str:
    """Decrypt a credential produced by encrypt_value.

    Args:
        token: Encoded ciphertext. An empty string decrypts to "".
        secret: The application secret key.

    Returns:
        Decrypted plaintext.

    Raises:
        DecryptionError: If the token is malformed, the secret is wrong or
            the data was tampered with.
    """
    if not token:
        return ""
    try:
        raw = base64.urlsafe_b64decode(token.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise DecryptionError("Malformed encrypted value") from e
    if len(raw) <= SALT_SIZE + NONCE_SIZE:
        raise DecryptionError("Encrypted value is too short")

    salt = raw[:SALT_SIZE]
    nonce = raw[SALT_SIZE : SALT_SIZE + NONCE_SIZE]
    ciphertext = raw[SALT_SIZE + NONCE_SIZE :]
    aesgcm = AESGCM(derive_key(secret, salt))
    try:
        return aesgcm.decrypt(nonce, ciphertext, None).decode("utf-8")
    except InvalidTag as e:
        raise DecryptionError("Invalid secret key or tampered value") from e
