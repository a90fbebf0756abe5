"""
Credential store — one encrypted API key per user.

Backed by the ``user_preferences`` table (PostgreSQL via psycopg2), or by a
process-local dict for single-instance development. Both report "no key on
file" as ``None`` whether the user never saved one or cleared it, and raise
StoreUnavailableError when the backend cannot be reached.
"""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime
from typing import Protocol

import psycopg2

from tradescope.config import Config, DatabaseConfig
from tradescope.errors import ConfigurationError, StoreUnavailableError
from tradescope.vault.models import EncryptedCredentialRecord

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    def get(self, user_id: str) -> EncryptedCredentialRecord | None: ...

    def upsert(self, user_id: str, ciphertext: str) -> None: ...

    def clear(self, user_id: str) -> None: ...

    def ping(self) -> bool: ...


class PostgresCredentialStore:
    """``user_preferences`` rows keyed by user_id. Clearing nulls the column, keeping updated_at."""

    def __init__(self, db: DatabaseConfig) -> None:
        self._db = db

    def _connection(self):
        from tradescope.db.connection import get_connection

        return get_connection(self._db)

    def get(self, user_id: str) -> EncryptedCredentialRecord | None:
        try:
            with self._connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "SELECT user_id, encrypted_api_key, updated_at "
                        "FROM user_preferences WHERE user_id = %s",
                        (user_id,),
                    )
                    row = cur.fetchone()
        except psycopg2.Error as e:
            raise StoreUnavailableError() from e
        if not row or not row[1]:
            return None
        return EncryptedCredentialRecord(user_id=row[0], ciphertext=row[1], updated_at=row[2])

    def upsert(self, user_id: str, ciphertext: str) -> None:
        try:
            with self._connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO user_preferences (user_id, encrypted_api_key, updated_at)
                        VALUES (%s, %s, %s)
                        ON CONFLICT (user_id)
                        DO UPDATE SET encrypted_api_key = EXCLUDED.encrypted_api_key,
                                      updated_at = EXCLUDED.updated_at
                        """,
                        (user_id, ciphertext, datetime.now(UTC)),
                    )
        except psycopg2.Error as e:
            raise StoreUnavailableError() from e

    def clear(self, user_id: str) -> None:
        try:
            with self._connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "UPDATE user_preferences SET encrypted_api_key = NULL, updated_at = %s "
                        "WHERE user_id = %s",
                        (datetime.now(UTC), user_id),
                    )
        except psycopg2.Error as e:
            raise StoreUnavailableError() from e

    def ping(self) -> bool:
        try:
            with self._connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
                    return cur.fetchone() is not None
        except (psycopg2.Error, StoreUnavailableError) as e:
            logger.warning("Credential store ping failed: %s", type(e).__name__)
            return False


class MemoryCredentialStore:
    """Process-local store. Lost on restart; not shared between instances."""

    def __init__(self) -> None:
        self._records: dict[str, EncryptedCredentialRecord] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> EncryptedCredentialRecord | None:
        with self._lock:
            record = self._records.get(user_id)
        if record is None or not record.has_credential:
            return None
        return record

    def upsert(self, user_id: str, ciphertext: str) -> None:
        with self._lock:
            self._records[user_id] = EncryptedCredentialRecord(
                user_id=user_id, ciphertext=ciphertext, updated_at=datetime.now(UTC)
            )

    def clear(self, user_id: str) -> None:
        with self._lock:
            if user_id in self._records:
                self._records[user_id] = EncryptedCredentialRecord(
                    user_id=user_id, ciphertext=None, updated_at=datetime.now(UTC)
                )

    def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def build_store(config: Config) -> CredentialStore:
    """Select the store backend named in config."""
    if config.store_backend == "memory":
        logger.warning("Using in-memory credential store; saved keys are lost on restart")
        return MemoryCredentialStore()
    if config.store_backend == "postgres":
        return PostgresCredentialStore(config.db)
    raise ConfigurationError(f"Unknown store backend: {config.store_backend}")
