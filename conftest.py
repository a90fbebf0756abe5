"""
Root-level shared test fixtures.

Inherited by the tests/ suite and the subpackage suites under tradescope/.
"""

from __future__ import annotations

import pytest

from tradescope.config import reset_config


@pytest.fixture
def clean_env(monkeypatch):
    """Remove env vars that leak configuration between tests."""
    for key in [
        "TRADESCOPE_ENCRYPTION_SECRET",
        "ENCRYPTION_SECRET",
        "SUPABASE_URL",
        "VITE_SUPABASE_URL",
        "SUPABASE_SERVICE_ROLE_KEY",
        "RESEND_API_KEY",
        "TRADESCOPE_DB_HOST",
        "TRADESCOPE_DB_PORT",
        "TRADESCOPE_DB_NAME",
        "TRADESCOPE_DB_USER",
        "TRADESCOPE_DB_PASSWORD",
        "TRADESCOPE_STORE_BACKEND",
        "TRADESCOPE_RATE_LIMIT_MAX",
        "TRADESCOPE_RATE_LIMIT_WINDOW",
        "TRADESCOPE_RATE_LIMIT_BACKEND",
    ]:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
