"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from tradescope.errors import ConfigurationError
from tradescope.service import CredentialService


def get_service(request: Request) -> CredentialService:
    """The CredentialService built at startup (see tradescope.api.app)."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise ConfigurationError("Credential service not initialised")
    return service
