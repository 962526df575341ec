"""Health check router with real dependency connectivity checks."""

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from catalog.service import CatalogService
from completion.client import CompletionClient
from config.settings import Settings, get_settings
from core.dependencies import get_catalog_service, get_completion_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

CHECK_TIMEOUT = 3.0
CORE_SERVICES = {"catalog_api", "completion"}


async def _check_catalog_api(catalog_service: CatalogService | None) -> str:
    """Ping the catalog API via the service's own client."""
    if catalog_service is None:
        return "unavailable"
    return "ok" if await catalog_service.check_api() else "error"


def _check_completion(completion_client: CompletionClient) -> str:
    """Providers are not pinged (each call costs quota); report whether any is configured."""
    return "ok" if completion_client.providers else "unavailable"


async def _run_check(coro) -> str:
    """Run a single health check with a timeout."""
    try:
        return await asyncio.wait_for(coro, timeout=CHECK_TIMEOUT)
    except TimeoutError:
        return "timeout"


@router.get(
    "/health",
    summary="Health check",
    responses={
        200: {"description": "Service is healthy"},
        503: {"description": "Service is unhealthy (catalog or completion unavailable)"},
    },
)
async def health_check(
    settings: Settings = Depends(get_settings),
    catalog_service: CatalogService | None = Depends(get_catalog_service),
    completion_client: CompletionClient = Depends(get_completion_client),
):
    """Health check with a real catalog probe and the configured provider chain."""
    services = {
        "catalog_api": await _run_check(_check_catalog_api(catalog_service)),
        "completion": _check_completion(completion_client),
    }

    status = "healthy" if all(services[s] == "ok" for s in CORE_SERVICES) else "unhealthy"

    body = {
        "status": status,
        "version": settings.app_version,
        "services": services,
        "providers": completion_client.provider_names,
    }

    status_code = 200 if status == "healthy" else 503
    return JSONResponse(content=body, status_code=status_code)
