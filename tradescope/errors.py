"""
Error taxonomy for TradeScope.

Every error carries an HTTP status code and a message that is safe to show
to the caller. Credential material and decryption internals never go into
a message; the API layer surfaces only ``message`` and logs only the class.
"""

from __future__ import annotations


class TradescopeError(Exception):
    """Base error. ``message`` is always safe to return to the client."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class AuthenticationError(TradescopeError):
    """Missing, malformed, or expired bearer token."""

    status_code = 401
    default_message = "Missing or invalid authorization token"


class AuthorizationError(TradescopeError):
    """Authenticated, but no API key on file."""

    status_code = 403
    default_message = "No API key on file. Save your Anthropic API key to use AI analysis."


class ValidationError(TradescopeError, ValueError):
    """Malformed request body or API key format."""

    status_code = 400
    default_message = "Invalid request"


class RateLimitError(TradescopeError):
    status_code = 429
    default_message = "Too many requests. Please wait before trying again."

    def __init__(self, message: str | None = None, *, retry_after: int | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ConfigurationError(TradescopeError):
    """A required setting is absent. Details go to the server log only."""

    status_code = 500
    default_message = "Server configuration error"


class StoreUnavailableError(TradescopeError):
    """Credential store is not configured or not reachable.

    Distinct from "no record found", which is a ``None`` from the store.
    """

    status_code = 500
    default_message = "Credential store unavailable. Please try again."


class DecryptionError(TradescopeError, ValueError):
    """Tag mismatch or malformed blob. The stored key cannot be recovered."""

    status_code = 500
    default_message = "Failed to decrypt your API key. Please re-save your API key."

    def __init__(self, reason: str = "") -> None:
        super().__init__()
        # str(exc) carries the internal reason; ``message`` stays user-facing
        self.reason = reason
        self.args = (reason or self.message,)


class UpstreamError(TradescopeError):
    """Third-party provider failed or returned a malformed response."""

    status_code = 502
    default_message = "Upstream provider error"
