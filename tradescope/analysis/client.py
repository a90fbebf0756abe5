"""
Chart analysis via the Anthropic Messages API.

The caller's own API key goes in the ``x-api-key`` header of a single
request and is not kept anywhere else. Only ``content[0].text`` of a
well-formed response is returned; anything else is an UpstreamError.

Usage:
    async with httpx.AsyncClient() as client:
        text = await analyze_chart(api_key, image_b64, "image/png",
                                   config=get_config().anthropic, client=client)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from tradescope.config import AnthropicConfig
from tradescope.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})

ANALYSIS_PROMPT = """Analyze this trading chart image. Provide a structured analysis with:

1. TREND DIRECTION: (Bullish/Bearish/Ranging)

2. SWING HIGHS & LOWS: Identify key levels

3. FAIR VALUE GAPS: Any imbalances detected?

4. BREAK OF STRUCTURE: Has structure been broken?

5. BIAS: (Long/Short/Neutral)

6. ENTRY ZONE: Suggested entry price/zone

7. STOP LOSS: Suggested SL level

8. TAKE PROFIT: Suggested TP level(s)

9. CONFIDENCE: (High/Medium/Low)

10. NOTES: Any additional observations

Be concise and actionable. Focus on ICT concepts and price action."""

INVALID_RESPONSE_MESSAGE = "Invalid response from analysis provider"


def validate_image(image_data: Any, image_type: Any) -> None:
    """Reject missing image fields and unsupported media types."""
    if not image_data or not image_type or not isinstance(image_data, str) or not isinstance(image_type, str):
        raise ValidationError("Missing image data")
    if image_type not in SUPPORTED_IMAGE_TYPES:
        raise ValidationError(f"Unsupported image type: {image_type[:40]}")


def build_payload(image_data: str, image_type: str, config: AnthropicConfig) -> dict[str, Any]:
    return {
        "model": config.model,
        "max_tokens": config.max_tokens,
        "messages": [{
            "role": "user",
            "content": [
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": image_type,
                        "data": image_data,
                    },
                },
                {"type": "text", "text": ANALYSIS_PROMPT},
            ],
        }],
    }


def extract_analysis_text(data: Any) -> str:
    """Return content[0].text, or raise if the response is not that shape."""
    if not isinstance(data, dict):
        raise UpstreamError(INVALID_RESPONSE_MESSAGE, status_code=500)
    content = data.get("content")
    if not isinstance(content, list) or not content:
        raise UpstreamError(INVALID_RESPONSE_MESSAGE, status_code=500)
    first = content[0]
    if not isinstance(first, dict) or not isinstance(first.get("text"), str):
        raise UpstreamError(INVALID_RESPONSE_MESSAGE, status_code=500)
    return first["text"]


def _upstream_error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        message = body["error"].get("message")
        if isinstance(message, str) and message:
            return message
    return f"API error: {r.status_code}"


async def analyze_chart(
    api_key: str,
    image_data: str,
    image_type: str,
    *,
    config: AnthropicConfig,
    client: httpx.AsyncClient,
) -> str:
    """Send one chart to the analysis provider and return its text analysis."""
    try:
        r = await client.post(
            config.messages_url,
            json=build_payload(image_data, image_type, config),
            headers={
                "Content-Type": "application/json",
                "x-api-key": api_key,
                "anthropic-version": config.api_version,
            },
            timeout=config.timeout,
        )
    except httpx.TimeoutException:
        logger.warning("Analysis request timed out after %.0fs", config.timeout)
        raise UpstreamError("Analysis provider timed out", status_code=504) from None
    except httpx.HTTPError as e:
        logger.warning("Analysis request failed: %s", type(e).__name__)
        raise UpstreamError("Analysis provider unavailable", status_code=502) from None

    if r.status_code < 200 or r.status_code >= 300:
        logger.warning("Analysis provider returned HTTP %d", r.status_code)
        # 401/403 from the provider mean the user's key was rejected, not our caller's token
        status = r.status_code if 400 <= r.status_code <= 599 else 502
        if status in (401, 403):
            status = 502
        raise UpstreamError(_upstream_error_message(r), status_code=status)

    try:
        data = r.json()
    except ValueError:
        raise UpstreamError(INVALID_RESPONSE_MESSAGE, status_code=500) from None
    return extract_analysis_text(data)
