"""Tests for credential store backends."""

from contextlib import contextmanager
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from tradescope.config import Config, DatabaseConfig
from tradescope.errors import ConfigurationError, StoreUnavailableError
from tradescope.vault.store import (
    MemoryCredentialStore,
    PostgresCredentialStore,
    build_store,
)


class TestMemoryStore:
    def test_get_unknown_user(self):
        assert MemoryCredentialStore().get("nobody") is None

    def test_upsert_then_get(self):
        store = MemoryCredentialStore()
        store.upsert("u1", "cipher-1")
        record = store.get("u1")
        assert record.user_id == "u1"
        assert record.ciphertext == "cipher-1"
        assert record.has_credential

    def test_upsert_replaces(self):
        store = MemoryCredentialStore()
        store.upsert("u1", "cipher-1")
        store.upsert("u1", "cipher-2")
        assert store.get("u1").ciphertext == "cipher-2"
        assert len(store) == 1

    def test_clear_reads_as_absent(self):
        store = MemoryCredentialStore()
        store.upsert("u1", "cipher-1")
        store.clear("u1")
        assert store.get("u1") is None
        # Row kept, column nulled
        assert len(store) == 1

    def test_clear_unknown_user_is_noop(self):
        store = MemoryCredentialStore()
        store.clear("nobody")
        assert store.get("nobody") is None
        assert len(store) == 0

    def test_users_isolated(self):
        store = MemoryCredentialStore()
        store.upsert("alice", "a")
        store.upsert("bob", "b")
        store.clear("alice")
        assert store.get("alice") is None
        assert store.get("bob").ciphertext == "b"

    def test_ping(self):
        assert MemoryCredentialStore().ping() is True


def _mock_connection(fetchone=None):
    """Patchable stand-in for get_connection yielding a MagicMock connection."""
    conn = MagicMock()
    cursor = MagicMock()
    cursor.fetchone.return_value = fetchone
    conn.cursor.return_value.__enter__.return_value = cursor

    @contextmanager
    def fake_get_connection(db=None, autocommit=False):
        yield conn

    return fake_get_connection, cursor


class TestPostgresStore:
    def setup_method(self):
        self.store = PostgresCredentialStore(DatabaseConfig())

    def test_get_returns_record(self):
        updated = datetime(2026, 1, 2, tzinfo=UTC)
        fake, cursor = _mock_connection(("u1", "cipher-1", updated))
        with patch("tradescope.db.connection.get_connection", fake):
            record = self.store.get("u1")
        assert record.ciphertext == "cipher-1"
        assert record.updated_at == updated
        sql, params = cursor.execute.call_args[0]
        assert "FROM user_preferences" in sql
        assert params == ("u1",)

    def test_get_missing_row(self):
        fake, _ = _mock_connection(None)
        with patch("tradescope.db.connection.get_connection", fake):
            assert self.store.get("u1") is None

    def test_get_cleared_row(self):
        fake, _ = _mock_connection(("u1", None, datetime.now(UTC)))
        with patch("tradescope.db.connection.get_connection", fake):
            assert self.store.get("u1") is None

    def test_upsert_uses_on_conflict(self):
        fake, cursor = _mock_connection()
        with patch("tradescope.db.connection.get_connection", fake):
            self.store.upsert("u1", "cipher-1")
        sql, params = cursor.execute.call_args[0]
        assert "ON CONFLICT (user_id)" in sql
        assert params[:2] == ("u1", "cipher-1")

    def test_clear_nulls_column(self):
        fake, cursor = _mock_connection()
        with patch("tradescope.db.connection.get_connection", fake):
            self.store.clear("u1")
        sql, params = cursor.execute.call_args[0]
        assert "encrypted_api_key = NULL" in sql
        assert params[-1] == "u1"

    def test_database_error_becomes_store_unavailable(self):
        fake, cursor = _mock_connection()
        cursor.execute.side_effect = psycopg2.OperationalError("connection refused")
        with patch("tradescope.db.connection.get_connection", fake):
            with pytest.raises(StoreUnavailableError):
                self.store.get("u1")
            with pytest.raises(StoreUnavailableError):
                self.store.upsert("u1", "c")
            with pytest.raises(StoreUnavailableError):
                self.store.clear("u1")

    def test_ping(self):
        fake, _ = _mock_connection((1,))
        with patch("tradescope.db.connection.get_connection", fake):
            assert self.store.ping() is True

    def test_ping_unreachable(self):
        def unreachable(db=None, autocommit=False):
            raise StoreUnavailableError()

        with patch("tradescope.db.connection.get_connection", unreachable):
            assert self.store.ping() is False


class TestBuildStore:
    def test_memory(self):
        assert isinstance(build_store(Config(store_backend="memory")), MemoryCredentialStore)

    def test_postgres(self):
        assert isinstance(build_store(Config(store_backend="postgres")), PostgresCredentialStore)

    def test_unknown(self):
        with pytest.raises(ConfigurationError):
            build_store(Config(store_backend="sqlite"))
