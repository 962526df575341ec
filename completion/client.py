"""Multi-provider completion client: ordered fallback over completion backends."""

import logging
from dataclasses import dataclass
from typing import Protocol

from completion.providers import GeminiProvider, OpenAIProvider, OpenRouterProvider
from config.settings import Settings
from core.exceptions import AllProvidersExhausted, ProviderError
from core.sentry import add_completion_breadcrumb

logger = logging.getLogger(__name__)


class TextCompleter(Protocol):
    name: str

    async def complete(self, prompt: str) -> str: ...

    async def close(self) -> None: ...


@dataclass
class CompletionResult:
    """Text returned by the first provider that succeeded."""

    text: str
    provider: str


class CompletionClient:
    """Try providers strictly in order; the first non-empty answer wins.

    Providers are never called concurrently and a failed provider is never
    retried within the same request.
    """

    def __init__(self, providers: list[TextCompleter]):
        self.providers = list(providers)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CompletionClient":
        """Build the provider chain from configured credentials (Gemini, OpenAI, OpenRouter)."""
        common = {
            "timeout": settings.completion_timeout,
            "temperature": settings.completion_temperature,
        }
        providers: list[TextCompleter] = []
        if settings.gemini_api_key:
            providers.append(GeminiProvider(settings.gemini_api_key, settings.gemini_model, **common))
        if settings.openai_api_key:
            providers.append(OpenAIProvider(settings.openai_api_key, settings.openai_model, **common))
        if settings.openrouter_api_key:
            providers.append(
                OpenRouterProvider(
                    settings.openrouter_api_key,
                    settings.openrouter_model,
                    referer=settings.openrouter_referer,
                    title=settings.openrouter_title,
                    **common,
                )
            )
        return cls(providers)

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self.providers]

    async def complete(self, prompt: str) -> CompletionResult:
        """Return text from the first provider that answers.

        Raises:
            AllProvidersExhausted: When every provider failed, or none is configured
        """
        errors: dict[str, str] = {}

        for provider in self.providers:
            add_completion_breadcrumb(provider.name, {"prompt_chars": len(prompt)})
            try:
                text = await provider.complete(prompt)
            except ProviderError as e:
                errors[provider.name] = e.message
                logger.warning(f"Completion provider {provider.name} failed: {e.message}")
                add_completion_breadcrumb(provider.name, {"error": e.message}, level="warning")
                continue

            logger.info(f"Completion served by {provider.name} ({len(text)} chars)")
            logger.debug(f"Raw completion text:\n{text}")
            return CompletionResult(text=text, provider=provider.name)

        if not self.providers:
            logger.error("No completion providers configured")
            raise AllProvidersExhausted("No completion providers configured")

        raise AllProvidersExhausted(
            "All completion providers failed", details={"errors": errors}
        )

    async def close(self) -> None:
        for provider in self.providers:
            await provider.close()
