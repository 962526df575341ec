"""FastAPI router for diagnostic catalog endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from catalog.models import CatalogDetails, CatalogSearchResponse, Genre, MediaKind
from catalog.service import CatalogService
from core.dependencies import get_catalog_service
from core.exceptions import CatalogLookupFailure

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog", tags=["catalog"])


def _require_service(service: CatalogService | None) -> CatalogService:
    """Raise 503 if service is not available."""
    if service is None:
        raise HTTPException(
            status_code=503,
            detail="Catalog service is not configured. Set TMDB_API_KEY environment variable.",
        )
    return service


def _lookup_error(error: CatalogLookupFailure) -> HTTPException:
    """Map a catalog failure to 404 (unknown id) or 502."""
    if error.status_code == 404:
        return HTTPException(status_code=404, detail="Title not found")
    return HTTPException(status_code=502, detail=error.message)


@router.get(
    "/search",
    response_model=CatalogSearchResponse,
    summary="Search catalog titles",
    responses={
        200: {"description": "Search results returned"},
        422: {"description": "Missing required query parameter"},
        502: {"description": "Catalog request failed"},
        503: {"description": "Catalog service not configured"},
    },
)
async def search_catalog(
    query: str = Query(..., min_length=1, description="Title to search for"),
    year: int | None = Query(None, description="Optional release year"),
    language: list[str] = Query([], description="Original-language filter (repeatable)"),
    media_kind: MediaKind = Query(MediaKind.MOVIE, description="movie or series"),
    service: CatalogService | None = Depends(get_catalog_service),
) -> CatalogSearchResponse:
    """Search the catalog by title."""
    svc = _require_service(service)
    try:
        results = await svc.search_titles(query, year, language or None, media_kind)
    except CatalogLookupFailure as e:
        raise _lookup_error(e) from e
    return CatalogSearchResponse(results=results, total=len(results))


@router.get(
    "/genres/{media_kind}",
    response_model=list[Genre],
    summary="List catalog genres",
    responses={
        200: {"description": "Genre list returned"},
        502: {"description": "Catalog request failed"},
        503: {"description": "Catalog service not configured"},
    },
)
async def list_genres(
    media_kind: MediaKind,
    service: CatalogService | None = Depends(get_catalog_service),
) -> list[Genre]:
    """List the genres the catalog knows for a media kind."""
    svc = _require_service(service)
    try:
        return await svc.list_genres(media_kind)
    except CatalogLookupFailure as e:
        raise _lookup_error(e) from e


@router.get(
    "/{media_kind}/{catalog_id}",
    response_model=CatalogDetails,
    summary="Get full title details",
    responses={
        200: {"description": "Title details returned"},
        404: {"description": "Title not found"},
        502: {"description": "Catalog request failed"},
        503: {"description": "Catalog service not configured"},
    },
)
async def get_title_details(
    media_kind: MediaKind,
    catalog_id: int,
    service: CatalogService | None = Depends(get_catalog_service),
) -> CatalogDetails:
    """Get full details, credits and external ids for a title."""
    svc = _require_service(service)
    try:
        return await svc.get_details(catalog_id, media_kind)
    except CatalogLookupFailure as e:
        raise _lookup_error(e) from e
