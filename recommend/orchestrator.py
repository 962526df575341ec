"""Recommendation orchestrator.

Runs one request through the pipeline:
build prompt -> request completion -> parse candidates -> match and enrich ->
deduplicate -> rank -> (popularity fallback) -> return.

The default, "different" and "similar" requests share this pipeline and
differ only in their RecommendationVariant.
"""

import asyncio
import logging

from catalog.enricher import enrich_entry
from catalog.matcher import find_best_match
from catalog.models import CatalogEntry, EnrichedResult, MediaKind
from catalog.service import CatalogService
from completion.client import CompletionClient
from config.settings import get_settings
from core.exceptions import (
    CatalogLookupFailure,
    InvalidPreferenceSpec,
    NoMatchesFound,
    ParseFailure,
)
from core.matching import normalize_for_comparison, year_distance
from core.telemetry import RequestTelemetry, get_catalog_stats
from recommend.models import PreferenceSpec, PreviousRecommendation, RecommendationResponse
from recommend.ranking import finalize_results
from recommend.variants import (
    DEFAULT_VARIANT,
    DIFFERENT_VARIANT,
    SIMILAR_VARIANT,
    RecommendationVariant,
)
from services.parser import RawCandidate, extract_candidates

logger = logging.getLogger(__name__)

# User-facing genre names that differ from the catalog's
GENRE_ALIASES = {
    "sci-fi": "science fiction",
    "scifi": "science fiction",
    "sci fi": "science fiction",
}


def validate_spec(
    spec: PreferenceSpec,
    variant: RecommendationVariant = DEFAULT_VARIANT,
    previous: list[PreviousRecommendation] | None = None,
) -> None:
    """Reject malformed preferences before any network call.

    Raises:
        InvalidPreferenceSpec: If the preferences or variant inputs are invalid
    """
    if variant.requires_previous and not previous:
        raise InvalidPreferenceSpec(
            "No current recommendations provided", details={"variant": variant.name.value}
        )
    if spec.min_rating is not None and not 0 <= spec.min_rating <= 10:
        raise InvalidPreferenceSpec(
            "Minimum rating must be between 0 and 10", details={"min_rating": spec.min_rating}
        )
    if spec.preferred_year and spec.year_range is None:
        raise InvalidPreferenceSpec(
            "Preferred year must look like 2010, 1990-1999 or 1990s",
            details={"preferred_year": spec.preferred_year},
        )


async def resolve_genre_ids(
    service: CatalogService, genres: list[str], media_kind: MediaKind
) -> list[int]:
    """Map genre names to catalog genre ids (case-insensitive, with aliases).

    Series genres are often compound ("Action & Adventure"), so a name that
    matches no genre exactly may match one component of a compound genre.
    """
    if not genres:
        return []

    catalog_genres = await service.list_genres(media_kind)
    by_name = {genre.name.casefold(): genre.id for genre in catalog_genres}
    ids: list[int] = []

    for name in genres:
        key = name.strip().casefold()
        key = GENRE_ALIASES.get(key, key)
        genre_id = by_name.get(key)
        if genre_id is None:
            genre_id = next(
                (gid for gname, gid in by_name.items() if key in gname.split(" & ")), None
            )
        if genre_id is None:
            logger.info(f"Unknown genre '{name}' for {media_kind}")
        elif genre_id not in ids:
            ids.append(genre_id)

    return ids


async def match_and_enrich(
    service: CatalogService,
    candidate: RawCandidate,
    languages: list[str],
) -> EnrichedResult | None:
    """Verify one candidate against the catalog and enrich it. None means dropped."""
    entry = await find_best_match(
        service,
        candidate.title,
        candidate.alt_title,
        candidate.year_value,
        candidate.media_kind,
        languages,
    )
    if entry is None:
        return None

    return await enrich_entry(
        service,
        entry,
        candidate.description,
        languages,
        language=candidate.language,
        match_quality=candidate.match_quality,
        position=candidate.position,
    )


def _is_excluded(entry: CatalogEntry, spec: PreferenceSpec) -> bool:
    if entry.id in spec.exclude_ids:
        return True
    excluded = {normalize_for_comparison(title) for title in spec.exclude_titles}
    return normalize_for_comparison(entry.title) in excluded


async def popularity_fallback(
    service: CatalogService,
    spec: PreferenceSpec,
    limit: int,
) -> list[EnrichedResult]:
    """Browse the catalog by genre/language/year when no AI candidate survived.

    Fetches several discover pages sorted by popularity, keeps titles within
    the configured year window of the preferred year, and enriches the most
    popular ones with the catalog's own synopsis.
    """
    settings = get_settings()
    media_kind = spec.media_kind
    window = settings.fallback_year_window

    try:
        genre_ids = await resolve_genre_ids(service, spec.genres, media_kind)
    except CatalogLookupFailure as e:
        logger.warning(f"Genre lookup failed, browsing without genre filter: {e.message}")
        genre_ids = []
    if spec.genres and not genre_ids:
        logger.info("No requested genre resolved, browsing without genre filter")

    year_range = spec.year_range
    discover_range = (year_range[0] - window, year_range[1] + window) if year_range else None

    entries: list[CatalogEntry] = []
    for page in range(1, settings.fallback_pages + 1):
        try:
            entries.extend(
                await service.discover_by_genre(
                    genre_ids, spec.languages, discover_range, media_kind, page
                )
            )
        except CatalogLookupFailure as e:
            logger.warning(f"Discover page {page} failed: {e.message}")

    seen: set[int] = set()
    pool: list[CatalogEntry] = []
    for entry in entries:
        if entry.id in seen or entry.year is None:
            continue
        seen.add(entry.id)
        if year_range and (year_distance(entry.year, year_range) or 0) > window:
            continue
        if _is_excluded(entry, spec) or (entry.adult and not spec.allow_adult):
            continue
        pool.append(entry)

    pool.sort(key=lambda entry: entry.popularity, reverse=True)
    top = pool[:limit]
    logger.info(f"Popularity fallback: {len(entries)} discovered, {len(top)} selected")

    enriched = await asyncio.gather(
        *[
            enrich_entry(service, entry, "", spec.languages, position=index)
            for index, entry in enumerate(top)
        ]
    )
    return [result for result in enriched if result is not None]


async def run_pipeline(
    spec: PreferenceSpec,
    completion_client: CompletionClient,
    catalog_service: CatalogService,
    telemetry: RequestTelemetry | None = None,
    variant: RecommendationVariant = DEFAULT_VARIANT,
    previous: list[PreviousRecommendation] | None = None,
    prompt_override: str | None = None,
) -> RecommendationResponse:
    """Run one recommendation request through the full pipeline.

    Raises:
        InvalidPreferenceSpec: Bad preferences, before any network call
        AllProvidersExhausted: No completion provider answered
        ParseFailure: Model output unparseable and the fallback found nothing
        NoMatchesFound: Nothing matched and the fallback found nothing
    """
    telemetry = telemetry or RequestTelemetry()
    previous = previous or []
    validate_spec(spec, variant, previous)

    limit = get_settings().max_recommendations
    spec = variant.transform_spec(previous, spec)
    logger.info(
        f"Recommendation request ({variant.name}): languages={spec.languages}, "
        f"genres={spec.genres}, media={spec.media_types}"
    )

    # Step 1: Build prompt
    with telemetry.track_step("build_prompt"):
        prompt = prompt_override or variant.build_prompt(previous, spec)

    # Step 2: Request completion
    with telemetry.track_step("completion"):
        completion = await completion_client.complete(prompt)
        telemetry.record_api_call("completion")
        telemetry.provider = completion.provider

    # Step 3: Parse candidates
    candidates: list[RawCandidate] = []
    parse_error: ParseFailure | None = None
    with telemetry.track_step("parse"):
        try:
            candidates = extract_candidates(completion.text, spec.languages, spec.media_types)
        except ParseFailure as e:
            parse_error = e
            logger.warning(f"Could not parse model output, using popularity fallback: {e.message}")

    # Step 4: Match, enrich, dedupe, rank
    results: list[EnrichedResult] = []
    if candidates:
        with telemetry.track_step("match_and_enrich"):
            enriched = await asyncio.gather(
                *[match_and_enrich(catalog_service, c, spec.languages) for c in candidates]
            )
            matched = [result for result in enriched if result is not None]
            logger.info(f"Matched {len(matched)} of {len(candidates)} candidates")
            results = finalize_results(matched, spec, limit)

    # Step 5: Popularity fallback
    if not results:
        telemetry.used_fallback = True
        with telemetry.track_step("popularity_fallback"):
            fallback = await popularity_fallback(catalog_service, spec, limit)
            results = finalize_results(fallback, spec, limit)

    stats = get_catalog_stats()
    if stats:
        telemetry.record_api_call("catalog", stats["api_calls"])

    if not results:
        if parse_error is not None:
            raise parse_error
        raise NoMatchesFound(
            "No recommendations matched the catalog",
            details={"candidates": len(candidates), "variant": variant.name.value},
        )

    return RecommendationResponse(
        results=results,
        provider=completion.provider,
        used_fallback=telemetry.used_fallback,
    )


async def get_recommendations(
    spec: PreferenceSpec,
    completion_client: CompletionClient,
    catalog_service: CatalogService,
    telemetry: RequestTelemetry | None = None,
    prompt_override: str | None = None,
) -> RecommendationResponse:
    """Recommendations for a set of preferences."""
    return await run_pipeline(
        spec,
        completion_client,
        catalog_service,
        telemetry,
        variant=DEFAULT_VARIANT,
        prompt_override=prompt_override,
    )


async def get_different_recommendations(
    previous: list[PreviousRecommendation],
    spec: PreferenceSpec,
    completion_client: CompletionClient,
    catalog_service: CatalogService,
    telemetry: RequestTelemetry | None = None,
) -> RecommendationResponse:
    """Fresh recommendations that exclude the ones already shown."""
    return await run_pipeline(
        spec,
        completion_client,
        catalog_service,
        telemetry,
        variant=DIFFERENT_VARIANT,
        previous=previous,
    )


async def get_similar_recommendations(
    previous: list[PreviousRecommendation],
    spec: PreferenceSpec,
    completion_client: CompletionClient,
    catalog_service: CatalogService,
    telemetry: RequestTelemetry | None = None,
) -> RecommendationResponse:
    """Recommendations in the spirit of the ones already shown."""
    return await run_pipeline(
        spec,
        completion_client,
        catalog_service,
        telemetry,
        variant=SIMILAR_VARIANT,
        previous=previous,
    )
