"""Recommendation API router."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from posthog import Posthog

from catalog.memory_cache import set_skip_cache
from catalog.service import CatalogService
from completion.client import CompletionClient
from core.dependencies import get_catalog_service, get_completion_client, get_posthog_client
from core.exceptions import (
    CompletionFailure,
    InvalidPreferenceSpec,
    NoMatchesFound,
    ParseFailure,
    RecommendationServiceError,
)
from core.sentry import capture_exception
from core.telemetry import RequestTelemetry, get_catalog_stats, init_catalog_stats
from recommend.models import (
    PreferenceSpec,
    RecommendationRequest,
    RecommendationResponse,
    VariantRequest,
)
from recommend.orchestrator import (
    get_different_recommendations,
    get_recommendations,
    get_similar_recommendations,
)
from recommend.variants import VariantName

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])

NO_RESULTS_DETAIL = "No titles found that match your criteria. Please try different preferences."

_ERROR_RESPONSES = {
    200: {"description": "Recommendations returned"},
    400: {"description": "Invalid preferences"},
    404: {"description": "Nothing matched the catalog"},
    500: {"description": "Internal server error"},
    503: {"description": "Completion providers or catalog unavailable"},
}


def _require_catalog(service: CatalogService | None) -> CatalogService:
    """Raise 503 if the catalog is not available."""
    if service is None:
        raise HTTPException(
            status_code=503,
            detail="Catalog service is not configured. Set TMDB_API_KEY environment variable.",
        )
    return service


def _to_http_error(error: RecommendationServiceError) -> HTTPException:
    """Map the pipeline's error taxonomy onto HTTP status codes."""
    if isinstance(error, InvalidPreferenceSpec):
        return HTTPException(status_code=400, detail=error.message)
    if isinstance(error, NoMatchesFound | ParseFailure):
        return HTTPException(status_code=404, detail=NO_RESULTS_DETAIL)
    if isinstance(error, CompletionFailure):
        return HTTPException(
            status_code=503, detail="Recommendation models are unavailable. Please try again."
        )
    return HTTPException(status_code=500, detail="Internal server error")


async def _run(
    variant: VariantName,
    call,
    posthog_client: Posthog | None,
    spec: PreferenceSpec,
    skip_cache: bool,
) -> RecommendationResponse:
    """Shared request handling: telemetry, error mapping, stats."""
    init_catalog_stats()
    if skip_cache:
        set_skip_cache(True)
    telemetry = RequestTelemetry()

    try:
        response = await call(telemetry)
    except RecommendationServiceError as e:
        logger.info(f"Recommendation request ({variant}) failed: {type(e).__name__}: {e.message}")
        if not isinstance(e, InvalidPreferenceSpec | NoMatchesFound | ParseFailure):
            capture_exception(e, {"variant": variant.value, **e.details})
        raise _to_http_error(e) from e
    except Exception as e:
        logger.error(f"Recommendation request ({variant}) failed: {e}")
        capture_exception(e, {"variant": variant.value})
        raise HTTPException(status_code=500, detail="Internal server error") from e

    response.catalog_stats = get_catalog_stats()

    if posthog_client:
        telemetry.send_to_posthog(
            posthog_client,
            {
                "variant": variant.value,
                "results_count": len(response.results),
                "languages": spec.languages,
                "had_plot": bool(spec.plot),
                "had_genres": bool(spec.genres),
            },
        )

    return response


@router.post(
    "",
    response_model=RecommendationResponse,
    summary="Recommend titles for a set of preferences",
    description="""
    Asks the completion providers for candidate titles, verifies each one
    against the catalog, enriches the survivors and ranks them.

    Falls back to popular catalog titles for the requested genres and
    languages when no suggested title can be verified. Returns at most five
    results.
    """,
    responses=_ERROR_RESPONSES,
)
async def recommend(
    request: RecommendationRequest,
    completion_client: CompletionClient = Depends(get_completion_client),
    catalog_service: CatalogService | None = Depends(get_catalog_service),
    posthog_client: Posthog | None = Depends(get_posthog_client),
    skip_cache: bool = False,
) -> RecommendationResponse:
    """Process a recommendation request."""
    catalog = _require_catalog(catalog_service)
    spec = request.to_spec()
    return await _run(
        VariantName.DEFAULT,
        lambda telemetry: get_recommendations(
            spec, completion_client, catalog, telemetry, prompt_override=request.prompt
        ),
        posthog_client,
        spec,
        skip_cache,
    )


@router.post(
    "/different",
    response_model=RecommendationResponse,
    summary="Recommend titles unlike the ones already shown",
    responses=_ERROR_RESPONSES,
)
async def recommend_different(
    request: VariantRequest,
    completion_client: CompletionClient = Depends(get_completion_client),
    catalog_service: CatalogService | None = Depends(get_catalog_service),
    posthog_client: Posthog | None = Depends(get_posthog_client),
    skip_cache: bool = False,
) -> RecommendationResponse:
    """Process a "something different" request."""
    catalog = _require_catalog(catalog_service)
    return await _run(
        VariantName.DIFFERENT,
        lambda telemetry: get_different_recommendations(
            request.current_recommendations,
            request.preferences,
            completion_client,
            catalog,
            telemetry,
        ),
        posthog_client,
        request.preferences,
        skip_cache,
    )


@router.post(
    "/similar",
    response_model=RecommendationResponse,
    summary="Recommend titles like the ones already shown",
    responses=_ERROR_RESPONSES,
)
async def recommend_similar(
    request: VariantRequest,
    completion_client: CompletionClient = Depends(get_completion_client),
    catalog_service: CatalogService | None = Depends(get_catalog_service),
    posthog_client: Posthog | None = Depends(get_posthog_client),
    skip_cache: bool = False,
) -> RecommendationResponse:
    """Process a "more like these" request."""
    catalog = _require_catalog(catalog_service)
    return await _run(
        VariantName.SIMILAR,
        lambda telemetry: get_similar_recommendations(
            request.current_recommendations,
            request.preferences,
            completion_client,
            catalog,
            telemetry,
        ),
        posthog_client,
        request.preferences,
        skip_cache,
    )
