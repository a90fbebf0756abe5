"""Trade decision email route. Delivery problems never fail the request."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header

from tradescope.api.deps import get_service
from tradescope.api.models import SendTradeEmailRequest, SendTradeEmailResponse
from tradescope.service import CredentialService

router = APIRouter(prefix="/api", tags=["journal"])


@router.post("/send-trade-email", response_model=SendTradeEmailResponse)
async def api_send_trade_email(
    body: SendTradeEmailRequest,
    authorization: str | None = Header(None),
    service: CredentialService = Depends(get_service),
):
    result = await service.send_trade_email(authorization, body.to, body.sessionData)
    return SendTradeEmailResponse(emailSent=result.sent, message=result.message)
