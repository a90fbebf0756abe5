"""Vault data models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class EncryptedCredentialRecord(BaseModel):
    """A user's stored credential row. ``ciphertext`` is the base64 blob, never plaintext."""

    user_id: str
    ciphertext: str | None = None
    updated_at: datetime | None = None

    @property
    def has_credential(self) -> bool:
        return bool(self.ciphertext)
