"""
Shared fixtures for the TradeScope API and service tests.

Identity is stubbed (token -> user id table), the credential store is the
in-memory backend, crypto is real, and every outbound HTTP call goes to a
mocked httpx.AsyncClient.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio
from helpers import MASTER_SECRET, FakeClock, StubVerifier
from httpx import ASGITransport

from tradescope.api.app import create_app
from tradescope.config import AuthConfig, Config, EmailConfig, VaultConfig
from tradescope.ratelimit import FixedWindowRateLimiter
from tradescope.service import CredentialService
from tradescope.vault.store import MemoryCredentialStore


@pytest.fixture
def config():
    return Config(
        vault=VaultConfig(master_secret=MASTER_SECRET),
        auth=AuthConfig(supabase_url="https://project.supabase.co", service_role_key="service-role"),
        email=EmailConfig(),
        store_backend="memory",
    )


@pytest.fixture
def store():
    return MemoryCredentialStore()


@pytest.fixture
def verifier():
    return StubVerifier()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return FixedWindowRateLimiter(max_requests=5, window_seconds=60, clock=clock)


@pytest.fixture
def mock_http_client():
    """The mocked httpx.AsyncClient used for analysis and email calls."""
    return AsyncMock(spec=httpx.AsyncClient)


@pytest.fixture
def service(config, store, verifier, limiter, mock_http_client):
    return CredentialService(
        config,
        store=store,
        verifier=verifier,
        limiter=limiter,
        http_client=mock_http_client,
    )


@pytest_asyncio.fixture
async def test_client(service):
    """Async HTTP client wrapping the FastAPI app via ASGITransport."""
    app = create_app(service=service)
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
