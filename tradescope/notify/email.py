"""
Trade decision log emails via Resend.

A side-channel: send_trade_email() never raises for delivery problems. When
Resend is not configured, or the send fails, the result says so and the
caller still reports success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

import httpx
from pydantic import BaseModel, Field

from tradescope.config import EmailConfig

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "Email service not configured. Trade logged locally."
SENT_MESSAGE = "Trade log email sent successfully"
FAILED_MESSAGE = "Trade logged, but the email could not be sent."


class TradeSession(BaseModel):
    """One journal entry: the analysis and what the trader decided."""

    tradeTaken: bool
    bias: str = "neutral"
    tradeReason: str | None = None
    tradeOutcome: str | None = Field(None, pattern="^(win|loss)$")
    timestamp: datetime
    decisionTimestamp: datetime | None = None
    analysis: str | None = None


@dataclass(frozen=True)
class EmailResult:
    sent: bool
    message: str


def _fmt(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%d %H:%M:%S")


def format_trade_email(session: TradeSession) -> tuple[str, str]:
    """Return (subject, plain-text body)."""
    decision = "TOOK TRADE" if session.tradeTaken else "DID NOT TAKE"
    if session.tradeOutcome:
        outcome = "WIN" if session.tradeOutcome == "win" else "LOSS"
    else:
        outcome = "Pending"

    lines = [
        "TRADE DECISION LOG",
        "==================",
        "",
        f"Decision: {decision}",
        f"Bias: {session.bias.upper()}",
    ]
    if session.tradeReason:
        lines.append(f"Reason: {session.tradeReason}")
    lines.append(f"Outcome: {outcome}")
    lines.append(f"Analysis Timestamp: {_fmt(session.timestamp)}")
    if session.decisionTimestamp:
        lines.append(f"Decision Timestamp: {_fmt(session.decisionTimestamp)}")
    if session.analysis:
        lines += ["", "AI Analysis:", session.analysis]
    lines += ["", "---", "TradeScope AI - Automated Trade Log"]

    return f"Trade Decision: {decision}", "\n".join(lines) + "\n"


async def send_trade_email(
    to: str,
    session: TradeSession,
    *,
    config: EmailConfig,
    client: httpx.AsyncClient,
) -> EmailResult:
    if not config.configured:
        logger.info("Trade log email not sent (RESEND_API_KEY not configured)")
        return EmailResult(False, NOT_CONFIGURED_MESSAGE)

    subject, text = format_trade_email(session)
    try:
        r = await client.post(
            config.api_url,
            json={
                "from": config.from_address,
                "to": [to],
                "subject": subject,
                "text": text,
            },
            headers={"Authorization": f"Bearer {config.resend_api_key}"},
            timeout=config.timeout,
        )
    except httpx.HTTPError as e:
        logger.warning("Trade log email failed: %s", type(e).__name__)
        return EmailResult(False, FAILED_MESSAGE)

    if r.status_code < 200 or r.status_code >= 300:
        logger.warning("Trade log email rejected: HTTP %d", r.status_code)
        return EmailResult(False, FAILED_MESSAGE)

    return EmailResult(True, SENT_MESSAGE)
