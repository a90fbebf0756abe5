"""API key format validation. Runs before encryption; an invalid key is never stored."""

from __future__ import annotations

from dataclasses import dataclass

API_KEY_PREFIX = "sk-ant-"
MIN_API_KEY_LENGTH = 10


@dataclass(frozen=True)
class KeyValidation:
    valid: bool
    error: str | None = None


def validate_api_key_format(candidate: object) -> KeyValidation:
    """Cheap syntactic check on an Anthropic API key. Pure, no I/O."""
    if not candidate or not isinstance(candidate, str):
        return KeyValidation(False, "API key is required")

    trimmed = candidate.strip()
    if not trimmed:
        return KeyValidation(False, "API key is required")
    if len(trimmed) < MIN_API_KEY_LENGTH:
        return KeyValidation(False, "API key is too short")
    if not trimmed.startswith(API_KEY_PREFIX):
        return KeyValidation(False, f"Invalid API key format. Must start with {API_KEY_PREFIX}")

    return KeyValidation(True)
