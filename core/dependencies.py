"""FastAPI dependency injection providers."""

import logging

from fastapi import Depends
from posthog import Posthog

from catalog.service import CatalogService
from completion.client import CompletionClient
from config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Module-level instances for lifecycle management
_catalog_service: CatalogService | None = None
_completion_client: CompletionClient | None = None
_posthog_client: Posthog | None = None


async def get_catalog_service(
    settings: Settings = Depends(get_settings),
) -> CatalogService | None:
    """Get catalog service instance.

    Args:
        settings: Application settings

    Returns:
        Optional[CatalogService]: Catalog service if configured, None otherwise
    """
    global _catalog_service

    if not settings.tmdb_api_key:
        logger.debug("TMDB_API_KEY not set - catalog service disabled")
        return None

    if _catalog_service is None:
        _catalog_service = CatalogService(
            settings.tmdb_api_key,
            base_url=settings.tmdb_base_url,
            timeout=settings.catalog_timeout,
        )
        logger.info(f"Catalog service initialized ({settings.tmdb_base_url})")

    return _catalog_service


async def close_catalog_service() -> None:
    """Close catalog service and its HTTP client."""
    global _catalog_service
    if _catalog_service:
        await _catalog_service.close()
        _catalog_service = None


async def get_completion_client(
    settings: Settings = Depends(get_settings),
) -> CompletionClient:
    """Get the completion client with every configured provider, in priority order.

    A client with no providers is still returned; it fails each request with
    AllProvidersExhausted.
    """
    global _completion_client

    if _completion_client is None:
        _completion_client = CompletionClient.from_settings(settings)
        if _completion_client.providers:
            logger.info(f"Completion providers: {', '.join(_completion_client.provider_names)}")
        else:
            logger.warning("No completion provider API keys set - AI recommendations disabled")

    return _completion_client


async def close_completion_client() -> None:
    """Close every provider's HTTP client."""
    global _completion_client
    if _completion_client:
        await _completion_client.close()
        _completion_client = None


def get_posthog_client(settings: Settings = Depends(get_settings)) -> Posthog | None:
    """Get PostHog client instance.

    Args:
        settings: Application settings

    Returns:
        Optional[Posthog]: PostHog client if configured and enabled, None otherwise
    """
    global _posthog_client

    if not settings.enable_telemetry:
        logger.debug("Telemetry disabled")
        return None

    if not settings.posthog_api_key:
        logger.debug("POSTHOG_API_KEY not set - telemetry disabled")
        return None

    if _posthog_client is None:
        _posthog_client = Posthog(
            project_api_key=settings.posthog_api_key,
            host=settings.posthog_host,
        )
        logger.info(f"PostHog client initialized (host: {settings.posthog_host})")

    return _posthog_client


def flush_posthog() -> None:
    """Flush any buffered PostHog events."""
    if _posthog_client:
        _posthog_client.flush()


def shutdown_posthog() -> None:
    """Shutdown PostHog client gracefully."""
    global _posthog_client
    if _posthog_client:
        _posthog_client.shutdown()
        _posthog_client = None
        logger.info("PostHog client shutdown")
