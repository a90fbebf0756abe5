"""
Identity verification — bearer token to stable user id.

Each request's token is introspected against Supabase Auth
(``GET /auth/v1/user``) exactly once. Nothing is cached between requests.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from tradescope.config import AuthConfig
from tradescope.errors import AuthenticationError, ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class IdentityVerifier(Protocol):
    async def verify(self, token: str) -> str: ...


def extract_bearer_token(authorization: str | None) -> str:
    """Pull the token out of an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError("Missing or invalid authorization token")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError("Missing or invalid authorization token")
    return token


class SupabaseIdentityVerifier:
    """Introspects tokens with the Supabase service role key."""

    def __init__(self, config: AuthConfig, client: httpx.AsyncClient) -> None:
        self._config = config
        self._client = client

    async def verify(self, token: str) -> str:
        if not self._config.configured:
            raise ConfigurationError("Identity provider is not configured (SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY)")
        if not token:
            raise AuthenticationError("Missing or invalid authorization token")

        try:
            r = await self._client.get(
                self._config.user_url,
                headers={
                    "apikey": self._config.service_role_key,
                    "Authorization": f"{BEARER_PREFIX}{token}",
                },
                timeout=self._config.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning("Identity provider request failed: %s", type(e).__name__)
            raise UpstreamError("Identity provider unavailable", status_code=502) from None

        if r.status_code in (400, 401, 403, 404, 422):
            raise AuthenticationError("Invalid or expired authentication token")
        if r.status_code != 200:
            logger.warning("Identity provider returned HTTP %d", r.status_code)
            raise UpstreamError("Identity provider unavailable", status_code=502)

        try:
            user = r.json()
        except ValueError:
            user = None
        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id or not isinstance(user_id, str):
            raise AuthenticationError("Invalid or expired authentication token")
        return user_id
