"""
Thin async client for the Gemini generateContent REST endpoint.

Returns the raw text of the first candidate. Every failure (missing key,
HTTP status, malformed envelope) raises ExternalServiceError; deciding what
to do about it is the caller's job.
"""

import logging
from typing import Optional

import httpx

from .config import settings
from .errors import ExternalServiceError

logger = logging.getLogger(__name__)


class GeminiClient:

    SERVICE = "gemini"
    TEMPERATURE = 0.2

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = settings.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or settings.GEMINI_MODEL
        self.base_url = (base_url or settings.GEMINI_API_BASE).rstrip("/")
        self.timeout = timeout or settings.ANALYZER_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, prompt: str) -> str:
        """Send one prompt, return the model's text reply (JSON mime type requested)."""
        if not self.is_configured:
            raise ExternalServiceError(self.SERVICE, "GEMINI_API_KEY not configured")

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.TEMPERATURE,
                "responseMimeType": "application/json",
            },
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    self.url,
                    params={"key": self.api_key},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise ExternalServiceError(
                    self.SERVICE,
                    f"HTTP {e.response.status_code}",
                    model=self.model,
                    status_code=e.response.status_code,
                ) from e
            except httpx.HTTPError as e:
                raise ExternalServiceError(
                    self.SERVICE, f"{type(e).__name__}: {e}", model=self.model,
                ) from e

        try:
            result = response.json()
            return result["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError(
                self.SERVICE, "unexpected response envelope", model=self.model,
            ) from e
