"""
AES-256-GCM encryption for stored API keys.

The operator-provisioned master secret is hashed once with SHA-256 to a fixed
32 bytes. Each encryption draws a fresh 16-byte salt and 16-byte nonce; the
per-key encryption key is PBKDF2-HMAC-SHA256(master, salt, 100k iterations).

Blob layout: salt (16) + nonce (16) + tag (16) + ciphertext.
The text form stored in the database is the base64 of that blob.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from tradescope.errors import ConfigurationError, DecryptionError, ValidationError

SALT_LENGTH = 16
NONCE_LENGTH = 16
TAG_LENGTH = 16
KEY_LENGTH = 32
HEADER_LENGTH = SALT_LENGTH + NONCE_LENGTH + TAG_LENGTH

# Changing this orphans every stored blob
KDF_ITERATIONS = 100_000


def get_master_key(secret: str | None = None) -> bytes:
    """Hash the master secret to 32 bytes. Reads the configured secret when none is given."""
    if secret is None:
        from tradescope.config import get_config

        secret = get_config().vault.master_secret
    if not secret:
        raise ConfigurationError("Encryption secret is not configured (TRADESCOPE_ENCRYPTION_SECRET)")
    return hashlib.sha256(secret.encode("utf-8")).digest()


def derive_key(master_key: bytes, salt: bytes) -> bytes:
    """PBKDF2-HMAC-SHA256 over the master key. Deterministic for a given salt."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(master_key)


def _require_master_key(master_key: bytes | None) -> bytes:
    if not master_key:
        raise ConfigurationError("Encryption secret is not configured (TRADESCOPE_ENCRYPTION_SECRET)")
    return master_key


def encrypt(plaintext: str, master_key: bytes | None) -> bytes:
    """Encrypt plaintext. Returns salt + nonce + tag + ciphertext."""
    if not isinstance(plaintext, str) or not plaintext:
        raise ValidationError("Invalid API key provided")
    master_key = _require_master_key(master_key)

    salt = secrets.token_bytes(SALT_LENGTH)
    nonce = secrets.token_bytes(NONCE_LENGTH)
    key = derive_key(master_key, salt)

    # AESGCM appends the 16-byte tag to the ciphertext
    sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return salt + nonce + tag + ciphertext


def decrypt(data: bytes, master_key: bytes | None) -> str:
    """Decrypt a blob produced by encrypt(). Raises DecryptionError, never returns partial text."""
    master_key = _require_master_key(master_key)
    if not isinstance(data, (bytes, bytearray)) or len(data) <= HEADER_LENGTH:
        raise DecryptionError("Encrypted data too short")

    salt = bytes(data[:SALT_LENGTH])
    nonce = bytes(data[SALT_LENGTH : SALT_LENGTH + NONCE_LENGTH])
    tag = bytes(data[SALT_LENGTH + NONCE_LENGTH : HEADER_LENGTH])
    ciphertext = bytes(data[HEADER_LENGTH:])

    key = derive_key(master_key, salt)
    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag:
        raise DecryptionError("Authentication tag mismatch") from None

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise DecryptionError("Decrypted data is not valid UTF-8") from None


def encode_blob(blob: bytes) -> str:
    return base64.b64encode(blob).decode("ascii")


def decode_blob(text: str) -> bytes:
    """Inverse of encode_blob(). Rejects anything that is not strict base64."""
    if not isinstance(text, str) or not text:
        raise DecryptionError("Invalid encrypted data provided")
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        raise DecryptionError("Encrypted data is not valid base64") from None


def encrypt_api_key(api_key: str, master_key: bytes | None) -> str:
    """Encrypt an API key to its base64 storage form."""
    return encode_blob(encrypt(api_key, master_key))


def decrypt_api_key(stored: str, master_key: bytes | None) -> str:
    """Decrypt the base64 storage form back to the API key."""
    master_key = _require_master_key(master_key)
    return decrypt(decode_blob(stored), master_key)
