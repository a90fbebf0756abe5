"""
TradeScope Vault — per-user encrypted API key storage.

Public API:
    encrypt_api_key(key, master_key)   → base64 blob
    decrypt_api_key(blob, master_key)  → key (or DecryptionError)
    validate_api_key_format(key)       → KeyValidation
    build_store(config)                → CredentialStore
"""

from __future__ import annotations

from tradescope.vault.crypto import decrypt_api_key, encrypt_api_key, get_master_key
from tradescope.vault.models import EncryptedCredentialRecord
from tradescope.vault.store import (
    CredentialStore,
    MemoryCredentialStore,
    PostgresCredentialStore,
    build_store,
)
from tradescope.vault.validation import KeyValidation, validate_api_key_format

__all__ = [
    "CredentialStore",
    "EncryptedCredentialRecord",
    "KeyValidation",
    "MemoryCredentialStore",
    "PostgresCredentialStore",
    "build_store",
    "decrypt_api_key",
    "encrypt_api_key",
    "get_master_key",
    "validate_api_key_format",
]
