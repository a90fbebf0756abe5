"""Authentication — bearer token verification against the identity provider."""

from tradescope.auth.identity import IdentityVerifier, SupabaseIdentityVerifier, extract_bearer_token

__all__ = ["IdentityVerifier", "SupabaseIdentityVerifier", "extract_bearer_token"]
