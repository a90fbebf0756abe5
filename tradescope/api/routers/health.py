"""Health route. Reports which components are configured, never their values."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from tradescope.api.deps import get_service
from tradescope.service import CredentialService

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(service: CredentialService = Depends(get_service)):
    cfg = service.config
    components = {
        "vault": "ok" if cfg.vault.configured else "error:not configured",
        "auth": "ok" if cfg.auth.configured else "error:not configured",
        "email": "ok" if cfg.email.configured else "disabled",
        "rate_limit": cfg.rate_limit.backend,
    }

    try:
        store_ok = await asyncio.to_thread(service.store.ping)
    except Exception as e:
        store_ok = False
        components["store"] = f"error:{type(e).__name__}"
    else:
        components["store"] = "ok" if store_ok else "error:unreachable"

    all_ok = cfg.vault.configured and cfg.auth.configured and store_ok
    return JSONResponse(
        {"status": "ok" if all_ok else "degraded", "components": components},
        status_code=200 if all_ok else 503,
    )
