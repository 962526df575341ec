"""Shared matching constants and utilities for catalog verification.

This module centralizes the rules used to decide whether a title suggested by
the model is the same work as a catalog entry.
"""

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

# =============================================================================
# Result Limiting
# =============================================================================

MAX_RECOMMENDATIONS = 5
"""Maximum number of results returned to the caller."""


# =============================================================================
# Acceptance Thresholds
# =============================================================================

SUBSTRING_BONUS = 0.2
"""Added when one title contains the other (capped at 1.0)."""

YEAR_BONUS = 0.2
"""Added when the release year is within YEAR_BONUS_WINDOW of the target."""

YEAR_BONUS_WINDOW = 1

TIE_BREAK_MARGIN = 0.1
"""Similarities closer than this are ordered by year difference instead."""

LOOSE_SIMILARITY = 0.6
"""Minimum similarity when the year is close (within LOOSE_YEAR_WINDOW)."""

LOOSE_YEAR_WINDOW = 2

STRICT_SIMILARITY = 0.8
"""Minimum similarity when the year is off."""


# =============================================================================
# Normalization
# =============================================================================

_TITLE_PUNCTUATION = re.compile(r"[.!?…]")
_WHITESPACE = re.compile(r"\s+")


def strip_diacritics(text: str) -> str:
    """Remove diacritical marks from text, preserving base characters.

    Uses NFKD normalization to decompose characters, then filters out
    combining marks. For example: "Amélie" -> "Amelie".

    Hangul syllables decompose into jamo under NFKD, so the result is
    recomposed with NFC before returning.
    """
    nfkd = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in nfkd if not unicodedata.combining(c))
    return unicodedata.normalize("NFC", stripped)


def clean_title(title: str | None) -> str:
    """Drop sentence punctuation and collapse whitespace in a title."""
    if not title:
        return ""
    return _WHITESPACE.sub(" ", _TITLE_PUNCTUATION.sub("", title)).strip()


def normalize_for_comparison(text: str | None) -> str:
    """Normalize text for case-, accent- and punctuation-insensitive comparison.

    Returns empty string for None or empty input.
    """
    if not text:
        return ""
    return strip_diacritics(clean_title(text)).casefold()


# =============================================================================
# Similarity
# =============================================================================


def title_similarity(a: str | None, b: str | None) -> float:
    """Normalized edit-distance similarity: 1 - distance / max_length.

    Returns 1.0 for identical normalized titles and 0.0 when either is empty.
    """
    left = normalize_for_comparison(a)
    right = normalize_for_comparison(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    distance = Levenshtein.distance(left, right)
    return 1 - distance / max(len(left), len(right))


def is_substring_match(a: str | None, b: str | None) -> bool:
    """True when one normalized title contains the other."""
    left = normalize_for_comparison(a)
    right = normalize_for_comparison(b)
    if not left or not right:
        return False
    return left in right or right in left


def calculate_similarity(
    native_title: str,
    secondary_title: str | None,
    entry_native_title: str | None,
    entry_title: str | None,
    year_diff: int | None,
) -> float:
    """Score how well a candidate's titles match a catalog entry's titles.

    Scoring rules:
    - Base: best of native-vs-native and secondary-vs-localized edit similarity
      (the native title is also compared against the localized title, since the
      model often writes the English title as the "original")
    - One title contains the other: +0.2
    - Year within 1 of the target: +0.2
    - Capped at 1.0

    Args:
        native_title: Candidate's original/native title
        secondary_title: Candidate's optional English/localized title
        entry_native_title: Catalog entry's original title
        entry_title: Catalog entry's localized title
        year_diff: Absolute year difference, or None if either year is unknown

    Returns:
        Similarity between 0.0 and 1.0
    """
    similarity = max(
        title_similarity(native_title, entry_native_title),
        title_similarity(native_title, entry_title),
        title_similarity(secondary_title, entry_title),
        title_similarity(secondary_title, entry_native_title),
    )

    if similarity < 1.0 and (
        is_substring_match(native_title, entry_native_title)
        or is_substring_match(secondary_title, entry_title)
    ):
        similarity = min(1.0, similarity + SUBSTRING_BONUS)

    if year_diff is not None and year_diff <= YEAR_BONUS_WINDOW:
        similarity = min(1.0, similarity + YEAR_BONUS)

    return similarity


def is_acceptable_match(similarity: float, year_diff: int | None, language_match: bool) -> bool:
    """Decide whether a scored catalog entry is trustworthy enough to keep.

    A wrong language is always rejected. Otherwise a close year allows a lower
    similarity; an off (or unknown) year requires a high one.
    """
    if not language_match:
        return False
    if year_diff is not None and year_diff <= LOOSE_YEAR_WINDOW and similarity > LOOSE_SIMILARITY:
        return True
    return similarity > STRICT_SIMILARITY


# =============================================================================
# Years
# =============================================================================

_YEAR_RANGE = re.compile(r"^\s*(\d{4})\s*[-–]\s*(\d{4})\s*$")
_DECADE = re.compile(r"^\s*(\d{3})0\s*'?s\s*$", re.IGNORECASE)
_SINGLE_YEAR = re.compile(r"^\s*(\d{4})\s*$")


def parse_year(date_or_year: str | None) -> int | None:
    """Extract the year from "YYYY" or "YYYY-MM-DD". Returns None if absent."""
    if not date_or_year:
        return None
    match = re.match(r"\s*(\d{4})", date_or_year)
    return int(match.group(1)) if match else None


def parse_year_range(value: str | None) -> tuple[int, int] | None:
    """Parse a preferred-year value into an inclusive (start, end) range.

    Accepts "2010", "1990-1999" and "1990s". Returns None for anything else.
    """
    if not value:
        return None
    if match := _SINGLE_YEAR.match(value):
        year = int(match.group(1))
        return year, year
    if match := _YEAR_RANGE.match(value):
        start, end = int(match.group(1)), int(match.group(2))
        return (start, end) if start <= end else (end, start)
    if match := _DECADE.match(value):
        start = int(match.group(1)) * 10
        return start, start + 9
    return None


def year_distance(year: int | None, year_range: tuple[int, int]) -> int | None:
    """Distance from a year to an inclusive range (0 when inside)."""
    if year is None:
        return None
    start, end = year_range
    if year < start:
        return start - year
    if year > end:
        return year - end
    return 0
