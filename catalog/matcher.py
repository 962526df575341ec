"""Catalog Matcher: resolve a suggested title to a single real catalog entry.

Search by the native title, retry with the secondary title, keep entries in
the requested languages, score each one, and accept the top-ranked entry only
if it clears the acceptance thresholds. A weak match is rejected rather than
guessed, since the model is known to invent plausible titles.
"""

import logging
from dataclasses import dataclass
from functools import cmp_to_key

from catalog.models import CatalogEntry, MediaKind
from catalog.service import CatalogService
from core.exceptions import CatalogLookupFailure
from core.matching import TIE_BREAK_MARGIN, calculate_similarity, is_acceptable_match

logger = logging.getLogger(__name__)

# Sort position for entries whose year difference is unknown
_UNKNOWN_YEAR_DIFF = 9999


@dataclass(frozen=True)
class MatchScore:
    """Score of one catalog entry against one candidate."""

    entry: CatalogEntry
    similarity: float
    year_diff: int | None
    language_match: bool

    @property
    def accepted(self) -> bool:
        return is_acceptable_match(self.similarity, self.year_diff, self.language_match)


def _year_key(score: MatchScore) -> int:
    return score.year_diff if score.year_diff is not None else _UNKNOWN_YEAR_DIFF


def compare_scores(a: MatchScore, b: MatchScore) -> int:
    """Ordering: language match first, then similarity, year as a near-tie break.

    Two similarities closer than TIE_BREAK_MARGIN are treated as equal and the
    entry with the smaller year difference wins.
    """
    if a.language_match != b.language_match:
        return -1 if a.language_match else 1
    if abs(a.similarity - b.similarity) < TIE_BREAK_MARGIN:
        return _year_key(a) - _year_key(b)
    return -1 if a.similarity > b.similarity else 1


def score_entries(
    entries: list[CatalogEntry],
    native_title: str,
    secondary_title: str | None = None,
    year: int | None = None,
    languages: list[str] | None = None,
) -> list[MatchScore]:
    """Score every entry against the candidate titles and year."""
    scores = []
    for entry in entries:
        year_diff = abs(entry.year - year) if entry.year is not None and year else None
        scores.append(
            MatchScore(
                entry=entry,
                similarity=calculate_similarity(
                    native_title,
                    secondary_title,
                    entry.native_title,
                    entry.title,
                    year_diff,
                ),
                year_diff=year_diff,
                language_match=not languages or entry.original_language in languages,
            )
        )
    return scores


def rank_scores(scores: list[MatchScore]) -> list[MatchScore]:
    return sorted(scores, key=cmp_to_key(compare_scores))


def select_best_match(scores: list[MatchScore]) -> MatchScore | None:
    """Return the top-ranked score if it is acceptable, else None.

    Only the top-ranked entry is considered; a lower-ranked entry is never
    promoted when the best one fails the thresholds.
    """
    if not scores:
        return None
    best = rank_scores(scores)[0]
    if not best.accepted:
        logger.debug(
            f"Rejected best entry '{best.entry.title}' "
            f"(similarity={best.similarity:.2f}, year_diff={best.year_diff}, "
            f"language_match={best.language_match})"
        )
        return None
    return best


async def find_best_match(
    service: CatalogService,
    native_title: str,
    secondary_title: str | None = None,
    year: int | None = None,
    media_kind: MediaKind = MediaKind.MOVIE,
    languages: list[str] | None = None,
) -> CatalogEntry | None:
    """Find the catalog entry for a suggested title.

    Args:
        service: Catalog service
        native_title: Original/native title as suggested
        secondary_title: Optional English/localized title
        year: Target release year
        media_kind: Movie or series
        languages: Requested original languages (empty means any)

    Returns:
        The matching CatalogEntry, or None when nothing acceptable exists.
        Catalog failures are logged and treated as "no match".
    """
    try:
        entries = await service.search_titles(native_title, year, languages, media_kind)
        if not entries and secondary_title and secondary_title != native_title:
            logger.debug(f"No results for '{native_title}', retrying with '{secondary_title}'")
            entries = await service.search_titles(secondary_title, year, languages, media_kind)
    except CatalogLookupFailure as e:
        logger.warning(f"Catalog search failed for '{native_title}': {e.message}")
        return None

    if not entries:
        logger.info(f"No catalog results for '{native_title}' ({year})")
        return None

    if languages:
        entries = [entry for entry in entries if entry.original_language in languages]
        if not entries:
            logger.info(f"No catalog results for '{native_title}' in languages {languages}")
            return None

    best = select_best_match(score_entries(entries, native_title, secondary_title, year, languages))
    if best is None:
        logger.info(f"No acceptable catalog match for '{native_title}' ({year})")
        return None

    logger.debug(
        f"Matched '{native_title}' to catalog id {best.entry.id} "
        f"(similarity={best.similarity:.2f}, year_diff={best.year_diff})"
    )
    return best.entry
