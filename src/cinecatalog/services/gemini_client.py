"""Gemini API client for generative title extraction."""

import logging
import re
from typing import Any

import httpx

from cinecatalog.config import settings

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """The inference service failed or returned something unusable."""


class RateLimitError(GenerationError):
    """The inference service refused the call because of its rate limit."""


def strip_code_fences(text: str) -> str:
    """
    Strip markdown code fences that Gemini sometimes wraps around JSON.

    Safe to call on text without fences.
    """
    text = re.sub(r"^```(?:json)?\s*\n?", "", text.strip())
    text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


class GeminiClient:
    """Client for the Gemini generateContent REST endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize Gemini client.

        Args:
            api_key: Gemini API key (uses settings if not provided)
            model: Model name (uses settings if not provided)
            base_url: API root (uses settings if not provided)
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self.timeout = timeout or settings.gemini_timeout
        if not self.api_key:
            logger.warning("Gemini API key not configured")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate_text(self, prompt: str, system_prompt: str | None = None) -> str:
        """
        Generate text from a prompt.

        Args:
            prompt: User prompt
            system_prompt: Optional system instruction

        Returns:
            Concatenated text of the first candidate

        Raises:
            RateLimitError: The service answered 429 / RESOURCE_EXHAUSTED
            GenerationError: Any other failure
        """
        if not self.is_configured:
            raise GenerationError("Gemini API key not configured")

        payload: dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    params={"key": self.api_key},
                    json=payload,
                )
        except httpx.HTTPError as e:
            raise GenerationError(f"Gemini request failed: {e}") from e

        if response.status_code >= 400:
            if response.status_code == 429 or "RESOURCE_EXHAUSTED" in response.text:
                raise RateLimitError(f"Gemini rate limited ({response.status_code})")
            raise GenerationError(
                f"Gemini returned {response.status_code}: {response.text[:200]}"
            )

        try:
            data = response.json()
            parts = data["candidates"][0]["content"]["parts"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationError(f"Unexpected Gemini response shape: {e}") from e

        return "".join(part.get("text", "") for part in parts)
