"""Post-filtering, deduplication, ranking and language rebalancing of results."""

import logging
import math

from catalog.models import EnrichedResult, MatchQuality
from core.matching import MAX_RECOMMENDATIONS, normalize_for_comparison
from recommend.models import PreferenceSpec

logger = logging.getLogger(__name__)

_QUALITY_ORDER = {MatchQuality.EXACT: 0, MatchQuality.CLOSE: 1, None: 2}


def dedupe_results(results: list[EnrichedResult]) -> list[EnrichedResult]:
    """Drop results whose catalog id was already seen, keeping the first."""
    seen: set[tuple[str, int]] = set()
    unique = []
    for result in results:
        key = (result.media_kind.value, result.id)
        if key in seen:
            logger.debug(f"Dropping duplicate catalog id {result.id} ('{result.title}')")
            continue
        seen.add(key)
        unique.append(result)
    return unique


def apply_post_filters(results: list[EnrichedResult], spec: PreferenceSpec) -> list[EnrichedResult]:
    """Apply rating, adult-content and exclude-list filters."""
    excluded_titles = {normalize_for_comparison(title) for title in spec.exclude_titles}
    excluded_ids = set(spec.exclude_ids)
    kept = []

    for result in results:
        if result.id in excluded_ids or normalize_for_comparison(result.title) in excluded_titles:
            logger.info(f"Filtered '{result.title}': previously shown")
            continue
        if result.adult and not spec.allow_adult:
            logger.info(f"Filtered '{result.title}': adult content")
            continue
        # A rating of 0 means the catalog has no votes yet
        if spec.min_rating and result.vote_average and result.vote_average < spec.min_rating:
            logger.info(
                f"Filtered '{result.title}': rating {result.vote_average} < {spec.min_rating}"
            )
            continue
        kept.append(result)

    return kept


def rank_results(
    results: list[EnrichedResult], languages: list[str] | None = None
) -> list[EnrichedResult]:
    """Stable sort: match quality, then requested-language membership, then position."""

    def sort_key(result: EnrichedResult) -> tuple[int, int, int]:
        in_languages = not languages or result.language in languages
        return (
            _QUALITY_ORDER[result.match_quality],
            0 if in_languages else 1,
            result.relevance_position,
        )

    return sorted(results, key=sort_key)


def rebalance_languages(
    ranked: list[EnrichedResult],
    languages: list[str] | None,
    limit: int = MAX_RECOMMENDATIONS,
) -> list[EnrichedResult]:
    """Keep any one language from crowding out the others.

    Each requested language first gets up to ceil(limit / n) of its best
    results (languages in requested order), then remaining slots are filled
    from the highest-ranked leftovers. The output keeps ranked order.
    """
    if not languages or len(languages) < 2:
        return ranked[:limit]

    quota = math.ceil(limit / len(languages))
    chosen: set[int] = set()

    for language in languages:
        taken = 0
        for index, result in enumerate(ranked):
            if len(chosen) >= limit or taken >= quota:
                break
            if index not in chosen and result.language == language:
                chosen.add(index)
                taken += 1

    for index in range(len(ranked)):
        if len(chosen) >= limit:
            break
        chosen.add(index)

    return [result for index, result in enumerate(ranked) if index in chosen]


def finalize_results(
    results: list[EnrichedResult],
    spec: PreferenceSpec,
    limit: int = MAX_RECOMMENDATIONS,
) -> list[EnrichedResult]:
    """Dedupe, filter, rank, rebalance and cap a batch of enriched results."""
    filtered = apply_post_filters(dedupe_results(results), spec)
    ranked = rank_results(filtered, spec.languages)
    final = rebalance_languages(ranked, spec.languages, limit)
    if len(filtered) > len(final):
        logger.info(f"Trimmed {len(filtered)} results to {len(final)}")
    return final
