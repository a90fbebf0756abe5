"""
Credential service — the save / delete / analyze request flows.

Flow order is fixed:
  save:    authenticate -> rate limit -> require key -> validate -> encrypt -> upsert
  delete:  authenticate -> rate limit -> clear
  analyze: authenticate -> image fields -> load record (403 if none) -> decrypt
           -> outbound analysis call -> relay text only

The plaintext key lives only in local variables of save_key() and analyze();
it is never logged, cached, or returned. Blocking work (PBKDF2, psycopg2)
runs in a worker thread so the event loop stays responsive.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from tradescope.analysis.client import analyze_chart, validate_image
from tradescope.auth.identity import IdentityVerifier, extract_bearer_token
from tradescope.config import Config
from tradescope.errors import (
    AuthorizationError,
    RateLimitError,
    ValidationError,
)
from tradescope.notify.email import EmailResult, TradeSession, send_trade_email
from tradescope.ratelimit import RateLimiter
from tradescope.vault.crypto import decrypt_api_key, encrypt_api_key, get_master_key
from tradescope.vault.store import CredentialStore
from tradescope.vault.validation import validate_api_key_format

logger = logging.getLogger(__name__)


class CredentialService:
    def __init__(
        self,
        config: Config,
        *,
        store: CredentialStore,
        verifier: IdentityVerifier,
        limiter: RateLimiter,
        http_client: httpx.AsyncClient,
    ) -> None:
        self.config = config
        self.store = store
        self.verifier = verifier
        self.limiter = limiter
        self.http_client = http_client

    async def authenticate(self, authorization: str | None) -> str:
        token = extract_bearer_token(authorization)
        return await self.verifier.verify(token)

    def _check_rate_limit(self, user_id: str) -> None:
        if not self.limiter.allow(user_id):
            logger.info("Rate limit hit for user %s", user_id)
            raise RateLimitError(retry_after=int(self.limiter.window_seconds))

    async def save_key(self, authorization: str | None, api_key: object) -> str:
        """Validate, encrypt and store the caller's API key. Returns the user id."""
        user_id = await self.authenticate(authorization)
        self._check_rate_limit(user_id)

        if not api_key:
            raise ValidationError("API key is required")
        validation = validate_api_key_format(api_key)
        if not validation.valid:
            raise ValidationError(validation.error)

        master_key = get_master_key(self.config.vault.master_secret)
        ciphertext = await asyncio.to_thread(encrypt_api_key, api_key.strip(), master_key)
        await asyncio.to_thread(self.store.upsert, user_id, ciphertext)

        logger.info("API key saved for user %s", user_id)
        return user_id

    async def delete_key(self, authorization: str | None) -> str:
        user_id = await self.authenticate(authorization)
        self._check_rate_limit(user_id)
        await asyncio.to_thread(self.store.clear, user_id)
        logger.info("API key deleted for user %s", user_id)
        return user_id

    async def has_key(self, user_id: str) -> bool:
        record = await asyncio.to_thread(self.store.get, user_id)
        return record is not None and record.has_credential

    async def analyze(self, authorization: str | None, image_data: object, image_type: object) -> str:
        """Run a chart analysis with the caller's stored key. Fails closed without one."""
        user_id = await self.authenticate(authorization)
        validate_image(image_data, image_type)

        record = await asyncio.to_thread(self.store.get, user_id)
        if record is None or not record.has_credential:
            logger.info("Analysis refused for user %s: no API key on file", user_id)
            raise AuthorizationError()

        master_key = get_master_key(self.config.vault.master_secret)
        api_key = await asyncio.to_thread(decrypt_api_key, record.ciphertext, master_key)
        try:
            analysis = await analyze_chart(
                api_key,
                image_data,
                image_type,
                config=self.config.anthropic,
                client=self.http_client,
            )
        finally:
            del api_key

        logger.info("Analysis completed for user %s (%d chars)", user_id, len(analysis))
        return analysis

    async def send_trade_email(self, authorization: str | None, to: str, session: TradeSession) -> EmailResult:
        user_id = await self.authenticate(authorization)
        result = await send_trade_email(to, session, config=self.config.email, client=self.http_client)
        logger.info("Trade log for user %s: email %s", user_id, "sent" if result.sent else "not sent")
        return result
