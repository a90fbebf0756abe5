"""Chart analysis route — requires a saved API key."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header

from tradescope.api.deps import get_service
from tradescope.api.models import AnalyzeRequest, AnalyzeResponse
from tradescope.service import CredentialService

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/analyze", response_model=AnalyzeResponse)
async def api_analyze(
    body: AnalyzeRequest | None = None,
    authorization: str | None = Header(None),
    service: CredentialService = Depends(get_service),
):
    body = body or AnalyzeRequest()
    analysis = await service.analyze(authorization, body.imageData, body.imageType)
    return AnalyzeResponse(analysis=analysis)
