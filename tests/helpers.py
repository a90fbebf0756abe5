"""Test doubles and helpers shared by the tests/ suite."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx

from tradescope.errors import AuthenticationError

MASTER_SECRET = "unit-test-master-secret"
VALID_KEY = "sk-ant-abcdefgh"

ALICE_TOKEN = "token-alice"
BOB_TOKEN = "token-bob"

PNG_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8BQDwAEhQGAhKmMIQAAAABJRU5ErkJggg=="


class StubVerifier:
    """Maps known tokens to user ids; anything else is an AuthenticationError."""

    def __init__(self, tokens: dict[str, str] | None = None) -> None:
        self.tokens = tokens or {ALICE_TOKEN: "user-alice", BOB_TOKEN: "user-bob"}
        self.calls: list[str] = []

    async def verify(self, token: str) -> str:
        self.calls.append(token)
        if token not in self.tokens:
            raise AuthenticationError("Invalid or expired authentication token")
        return self.tokens[token]


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def auth(token: str = ALICE_TOKEN) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def make_response(status_code=200, json_data=None):
    """Helper to create a mock httpx.Response."""
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.json.return_value = json_data if json_data is not None else {}
    return resp


def analysis_response(text: str = "1. TREND DIRECTION: Bullish"):
    return make_response(200, {
        "id": "msg_01",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": text}],
    })
