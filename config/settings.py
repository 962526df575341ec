"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.matching import MAX_RECOMMENDATIONS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Catalog (TMDB) Configuration
    tmdb_api_key: str | None = Field(None, description="TMDB API key for catalog lookups")
    tmdb_base_url: str = Field(
        default="https://api.themoviedb.org/3", description="TMDB API base URL"
    )
    tmdb_image_base_url: str = Field(
        default="https://image.tmdb.org/t/p/w500", description="Base URL for poster images"
    )
    catalog_timeout: float = Field(default=10.0, description="Catalog request timeout in seconds")

    # Catalog Rate Limiting Configuration
    catalog_rate_limit: int = Field(
        default=40, description="Max catalog API requests per 10 second window"
    )
    catalog_max_concurrent: int = Field(
        default=8, description="Max concurrent catalog API requests"
    )
    catalog_max_retries: int = Field(
        default=2, description="Max retry attempts on transient catalog failures"
    )

    # Catalog Cache Configuration
    catalog_genre_cache_ttl: int = Field(
        default=86400, description="TTL in seconds for genre list cache (default: 24 hours)"
    )
    catalog_details_cache_ttl: int = Field(
        default=3600, description="TTL in seconds for title details cache (default: 1 hour)"
    )
    catalog_cache_maxsize: int = Field(default=500, description="Maximum entries in catalog caches")

    # Completion Providers (tried in this order)
    gemini_api_key: str | None = Field(None, description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-1.5-pro", description="Gemini model id")
    openai_api_key: str | None = Field(None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-3.5-turbo", description="OpenAI chat model id")
    openrouter_api_key: str | None = Field(None, description="OpenRouter API key")
    openrouter_model: str = Field(
        default="deepseek/deepseek-chat", description="OpenRouter model id"
    )
    openrouter_referer: str = Field(
        default="https://watchwizards.vercel.app/", description="HTTP-Referer sent to OpenRouter"
    )
    openrouter_title: str = Field(default="WatchWizards", description="X-Title sent to OpenRouter")
    completion_timeout: float = Field(
        default=60.0, description="Per-provider completion timeout in seconds"
    )
    completion_temperature: float = Field(default=0.7, description="Sampling temperature")

    # Recommendation Pipeline
    max_recommendations: int = Field(
        default=MAX_RECOMMENDATIONS, ge=1, description="Maximum results per request (at most 5)"
    )
    fallback_pages: int = Field(
        default=3, description="Discover pages fetched by the popularity fallback"
    )
    fallback_year_window: int = Field(
        default=2, description="Allowed year distance for popularity fallback results"
    )

    # Application Configuration
    host: str = Field(default="0.0.0.0", description="Host to bind the server to")
    port: int = Field(default=8000, description="Port to run the server on")
    log_level: str = Field(default="INFO", description="Logging level")

    # Feature Flags
    enable_telemetry: bool = Field(default=True, description="Enable PostHog telemetry")

    # PostHog Configuration
    posthog_api_key: str | None = Field(None, description="PostHog API key for telemetry")
    posthog_host: str = Field(default="https://us.i.posthog.com", description="PostHog host URL")

    # Sentry Configuration
    sentry_dsn: str | None = Field(None, description="Sentry DSN for error tracking")

    # Application Metadata
    app_name: str = Field(default="WatchWizards-Recommender", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")

    @field_validator("max_recommendations")
    @classmethod
    def _cap_recommendations(cls, value: int) -> int:
        return min(value, MAX_RECOMMENDATIONS)

    @property
    def configured_providers(self) -> list[str]:
        """Names of completion providers that have credentials, in priority order."""
        providers = []
        if self.gemini_api_key:
            providers.append("gemini")
        if self.openai_api_key:
            providers.append("openai")
        if self.openrouter_api_key:
            providers.append("openrouter")
        return providers

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
