"""API key save/delete routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header

from tradescope.api.deps import get_service
from tradescope.api.models import SaveKeyRequest, SuccessResponse
from tradescope.service import CredentialService

router = APIRouter(prefix="/api", tags=["keys"])


@router.post("/save-key", response_model=SuccessResponse)
async def api_save_key(
    body: SaveKeyRequest | None = None,
    authorization: str | None = Header(None),
    service: CredentialService = Depends(get_service),
):
    """Encrypt and store the caller's Anthropic API key. The key is never echoed."""
    await service.save_key(authorization, body.apiKey if body else None)
    return SuccessResponse(message="API key saved successfully")


@router.delete("/delete-key", response_model=SuccessResponse)
async def api_delete_key(
    authorization: str | None = Header(None),
    service: CredentialService = Depends(get_service),
):
    await service.delete_key(authorization)
    return SuccessResponse(message="API key deleted successfully")
