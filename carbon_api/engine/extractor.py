"""Free-text shipment extraction backed by an LLM."""
from __future__ import annotations

import logging
from typing import Dict, List

import httpx
from pydantic import ValidationError

from ..schemas import ParsedRoute
from .errors import ExtractorUnavailable

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """Extract shipping information from this request. Return JSON only.

Request: "{query}"

Extract:
- origin: The starting city (use standard city name like "Shenzhen", "Los Angeles", "NYC")
- destination: The ending city (same format)
- weight_kg: Weight in kg if mentioned, null if not
- transport_mode: "ground", "air", or "sea" if mentioned or implied, null if not
- confidence: 0-1 how confident you are in the extraction
- reasoning: Brief explanation of your interpretation

Return ONLY valid JSON, no markdown, no explanation:
{{"origin": "...", "destination": "...", "weight_kg": ..., "transport_mode": "...", "confidence": ..., "reasoning": "..."}}"""


def empty_guess(reasoning: str = "Failed to parse response") -> ParsedRoute:
    return ParsedRoute(origin="", destination="", weight_kg=None, transport_mode=None, confidence=0.0, reasoning=reasoning)


def parse_model_output(text: str) -> ParsedRoute:
    """Turn raw model text into a ``ParsedRoute``; unparseable text yields the empty guess."""
    body = text.strip()
    if body.startswith("```"):
        body = body.strip("`")
        if body.lower().startswith("json"):
            body = body[4:]
    try:
        return ParsedRoute.model_validate_json(body.strip())
    except ValidationError:
        logger.warning("extractor returned unparseable output: %s", text[:120])
        return empty_guess()


class TextExtractor:
    """Abstract free-text extractor."""

    def parse(self, query: str) -> ParsedRoute:
        raise NotImplementedError


class AnthropicExtractor(TextExtractor):
    base_url = "https://api.anthropic.com/v1/messages"
    api_version = "2023-06-01"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 500,
        timeout: float = 15.0,
    ) -> None:
        if not api_key:
            raise ValueError("Anthropic API key required")
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout

    def parse(self, query: str) -> ParsedRoute:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
        }
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": PROMPT_TEMPLATE.format(query=query)}],
        }
        try:
            response = httpx.post(self.base_url, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ExtractorUnavailable(f"extraction request failed: {exc}") from exc
        blocks: List[Dict[str, object]] = data.get("content") or []
        text = ""
        if blocks and blocks[0].get("type") == "text":
            text = str(blocks[0].get("text") or "")
        return parse_model_output(text)


class UnconfiguredExtractor(TextExtractor):
    """Stand-in used when no API key is configured; every call fails loudly."""

    def parse(self, query: str) -> ParsedRoute:
        raise ExtractorUnavailable("ANTHROPIC_API_KEY is not set")
