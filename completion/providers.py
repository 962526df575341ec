"""Text-completion providers.

Each provider wraps one generative-AI backend behind ``complete(prompt)``.
Any failure (timeout, transport error, non-2xx status, malformed body,
empty content) is raised as ProviderError; retrying is left to the chain.
"""

import logging
from typing import Any

import httpx

from core.exceptions import ProviderError

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
OPENAI_API_BASE = "https://api.openai.com/v1"
OPENROUTER_API_BASE = "https://openrouter.ai/api/v1"


class CompletionProvider:
    """Base class for a single completion backend."""

    name = "provider"
    base_url = ""

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: float = 60.0,
        temperature: float = 0.7,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _request(self, prompt: str) -> tuple[str, dict[str, Any], dict[str, Any]]:
        """Return (path, query params, JSON body) for a prompt."""
        raise NotImplementedError

    def _extract_text(self, data: Any) -> str:
        """Pull the generated text out of a decoded response body."""
        raise NotImplementedError

    async def complete(self, prompt: str) -> str:
        """Send a prompt and return the generated text.

        Raises:
            ProviderError: On any failure
        """
        path, params, body = self._request(prompt)
        client = await self._get_client()

        try:
            response = await client.post(path, params=params, json=body)
        except httpx.TimeoutException as e:
            raise ProviderError(self.name, f"{self.name} request timed out") from e
        except httpx.RequestError as e:
            raise ProviderError(self.name, f"{self.name} request failed: {e}") from e

        if not response.is_success:
            raise ProviderError(
                self.name,
                f"{self.name} returned HTTP {response.status_code}",
                {"status_code": response.status_code},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(self.name, f"{self.name} returned a non-JSON body") from e

        try:
            text = self._extract_text(data)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderError(self.name, f"{self.name} returned a malformed body") from e

        if not isinstance(text, str) or not text.strip():
            raise ProviderError(self.name, f"{self.name} returned empty content")

        return text


class GeminiProvider(CompletionProvider):
    """Google Gemini generateContent API."""

    name = "gemini"
    base_url = GEMINI_API_BASE

    def _request(self, prompt: str) -> tuple[str, dict[str, Any], dict[str, Any]]:
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": self.temperature},
        }
        return f"/models/{self.model}:generateContent", {"key": self.api_key}, body

    def _extract_text(self, data: Any) -> str:
        parts = data["candidates"][0]["content"]["parts"]
        return "".join(part.get("text", "") for part in parts)


class OpenAIProvider(CompletionProvider):
    """OpenAI-compatible chat completions API."""

    name = "openai"
    base_url = OPENAI_API_BASE

    def _headers(self) -> dict[str, str]:
        return {**super()._headers(), "Authorization": f"Bearer {self.api_key}"}

    def _request(self, prompt: str) -> tuple[str, dict[str, Any], dict[str, Any]]:
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
        }
        return "/chat/completions", {}, body

    def _extract_text(self, data: Any) -> str:
        return data["choices"][0]["message"]["content"]


class OpenRouterProvider(OpenAIProvider):
    """OpenRouter, which speaks the chat completions dialect plus attribution headers."""

    name = "openrouter"
    base_url = OPENROUTER_API_BASE

    def __init__(self, api_key: str, model: str, referer: str = "", title: str = "", **kwargs):
        self.referer = referer
        self.title = title
        super().__init__(api_key, model, **kwargs)

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        if self.title:
            headers["X-Title"] = self.title
        return headers
