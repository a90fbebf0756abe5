"""Pydantic request/response models for the TradeScope API.

Field names match the JSON the web client sends (camelCase).
"""

from __future__ import annotations

from pydantic import BaseModel, EmailStr

from tradescope.notify.email import TradeSession


class SaveKeyRequest(BaseModel):
    apiKey: str | None = None


class AnalyzeRequest(BaseModel):
    imageData: str | None = None
    imageType: str | None = None


class SendTradeEmailRequest(BaseModel):
    to: EmailStr
    sessionData: TradeSession


class SuccessResponse(BaseModel):
    success: bool = True
    message: str | None = None


class AnalyzeResponse(BaseModel):
    analysis: str


class SendTradeEmailResponse(BaseModel):
    success: bool = True
    emailSent: bool
    message: str
