"""Detail Enricher: turn a matched catalog entry into an EnrichedResult."""

import logging

from catalog.models import CatalogEntry, EnrichedResult, MatchQuality
from catalog.service import CatalogService
from core.exceptions import CatalogLookupFailure

logger = logging.getLogger(__name__)

CATALOG_SITE_URL = "https://www.themoviedb.org"
EXTERNAL_ID_URL = "https://www.imdb.com/title"
TOP_CAST = 5


async def enrich_entry(
    service: CatalogService,
    entry: CatalogEntry,
    description: str = "",
    languages: list[str] | None = None,
    language: str | None = None,
    match_quality: MatchQuality | None = None,
    position: int = 0,
) -> EnrichedResult | None:
    """Fetch full details for an entry and assemble the output record.

    Args:
        service: Catalog service
        entry: The matched catalog entry
        description: Model-provided description; preferred over the synopsis
        languages: Requested languages, used when no language was resolved
        language: Language resolved for the candidate, if any
        match_quality: Match-quality tag copied from the candidate
        position: Relevance order hint (candidate's position in the model text)

    Returns:
        EnrichedResult, or None if the detail fetch failed (candidate dropped)
    """
    try:
        details = await service.get_details(entry.id, entry.media_kind)
    except CatalogLookupFailure as e:
        logger.warning(f"Dropping '{entry.title}' ({entry.id}): detail fetch failed: {e.message}")
        return None

    imdb_id = details.imdb_id or None
    original_language = details.original_language or entry.original_language
    resolved_language = language or original_language or (languages[0] if languages else "")

    return EnrichedResult(
        id=entry.id,
        title=details.title or entry.title,
        overview=description.strip() or details.overview or entry.overview,
        poster_url=service.poster_url(details.poster_path or entry.poster_path),
        release_date=details.release_date or entry.release_date,
        genres=[genre.name for genre in details.genres],
        original_language=original_language,
        vote_average=details.vote_average or entry.vote_average,
        cast=[member.name for member in details.cast[:TOP_CAST]],
        director=details.director,
        imdb_id=imdb_id,
        tmdb_url=f"{CATALOG_SITE_URL}/{entry.media_kind.catalog_path}/{entry.id}",
        imdb_url=f"{EXTERNAL_ID_URL}/{imdb_id}" if imdb_id else None,
        relevance_position=position,
        media_kind=entry.media_kind,
        type=entry.media_kind.content_type,
        language=resolved_language,
        match_quality=match_quality,
        adult=entry.adult,
    )
