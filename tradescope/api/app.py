"""
TradeScope API — FastAPI app.

Endpoints:
  POST   /api/save-key          store the caller's encrypted API key
  DELETE /api/delete-key        remove it
  POST   /api/analyze           chart analysis with the stored key
  POST   /api/send-trade-email  trade decision log email
  GET    /health

Start:
  tradescope serve
  # or
  uvicorn tradescope.api.app:app --host 0.0.0.0 --port 8787
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tradescope import __version__
from tradescope.api.middleware import AccessLogMiddleware, CorrelationMiddleware
from tradescope.api.routers import analyze, email, health, keys
from tradescope.auth.identity import SupabaseIdentityVerifier
from tradescope.config import Config, get_config
from tradescope.errors import ConfigurationError, RateLimitError, TradescopeError
from tradescope.ratelimit import build_rate_limiter
from tradescope.service import CredentialService
from tradescope.vault.store import build_store

logger = logging.getLogger(__name__)


def build_service(config: Config, http_client: httpx.AsyncClient) -> CredentialService:
    """Wire the production components from config."""
    return CredentialService(
        config,
        store=build_store(config),
        verifier=SupabaseIdentityVerifier(config.auth, http_client),
        limiter=build_rate_limiter(config),
        http_client=http_client,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "service", None) is not None:
        yield
        return

    config: Config = app.state.config
    for name in config.missing():
        logger.warning("Configuration missing: %s — dependent endpoints will return 500", name)

    http_client = httpx.AsyncClient(timeout=30.0)
    app.state.service = build_service(config, http_client)
    logger.info("TradeScope API %s started (store=%s, rate_limit=%s)",
                __version__, config.store_backend, config.rate_limit.backend)
    try:
        yield
    finally:
        await http_client.aclose()
        if config.store_backend == "postgres":
            from tradescope.db.connection import close_pool

            close_pool()
        app.state.service = None


async def _tradescope_error_handler(request: Request, exc: TradescopeError) -> JSONResponse:
    if exc.status_code >= 500:
        if isinstance(exc, ConfigurationError):
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        else:
            logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path)
    else:
        logger.info("%s on %s %s", type(exc).__name__, request.method, request.url.path)

    headers = {}
    if isinstance(exc, RateLimitError) and exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)
    # Configuration details stay in the server log
    message = exc.default_message if isinstance(exc, ConfigurationError) else exc.message
    return JSONResponse({"error": message}, status_code=exc.status_code, headers=headers)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({str(err.get("loc", ["", "?"])[-1]) for err in exc.errors()})
    logger.info("Invalid request body on %s %s (fields: %s)", request.method, request.url.path, ", ".join(fields))
    return JSONResponse({"error": "Invalid request body"}, status_code=400)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def create_app(config: Config | None = None, service: CredentialService | None = None) -> FastAPI:
    """Build the app. Passing ``service`` skips the startup wiring (used by tests)."""
    config = config or (service.config if service else get_config())

    app = FastAPI(
        title="TradeScope API",
        description="Chart analysis journal with per-user encrypted API keys.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.service = service

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Correlation-Id"],
    )

    app.add_exception_handler(TradescopeError, _tradescope_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(health.router)
    app.include_router(keys.router)
    app.include_router(analyze.router)
    app.include_router(email.router)
    return app


app = create_app()
