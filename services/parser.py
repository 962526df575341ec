"""Text-Pattern Extractor: parse model output into candidate records.

The prompt asks the model to emit one recommendation per line:

    * <Original Title> (<English Title>) (<Year>) - <Description> | Genres: <G1>, <G2>

Field order and delimiters:

1. Leading marker: ``*``, ``**``, a bullet, or a list number (``1.`` / ``1)``)
2. Original title, no parentheses
3. Optional parenthesized English/localized title
4. Parenthesized 4-digit year, or a series run such as ``(2008-2013)`` or
   ``(2019-present)``
5. Separator: hyphen, en/em dash or colon
6. Free-text description, optionally carrying an ``EXACT MATCH`` /
   ``CLOSE MATCH`` annotation
7. ``| Genres:`` followed by a comma-separated genre list

Extraction is a pure function of its inputs.
"""

import logging
import re

from pydantic import BaseModel, ConfigDict

from catalog.models import MatchQuality, MediaKind, resolve_media_kind
from core.exceptions import ParseFailure
from core.languages import detect_language, normalize_languages

logger = logging.getLogger(__name__)

CANDIDATE_PATTERN = re.compile(
    r"^[ \t]*(?:[*\u2022]{1,2}|-|\d{1,2}[.)])[ \t]*"
    r"(?P<title>[^()|\n]+?)"
    r"(?:[ \t]*\((?P<alt_title>[^()\n]+?)\))?"
    r"[ \t]*\((?P<year>\d{4})(?:[ \t]*[-\u2013][ \t]*(?P<end_year>\d{4}|present|ongoing)?)?\)"
    r"[ \t]*[-\u2013\u2014:][ \t]*"
    r"(?P<description>[^|\n]+?)"
    r"[ \t]*\|[ \t]*Genres?[ \t]*:[ \t]*(?P<genres>[^\n]*)$",
    re.IGNORECASE | re.MULTILINE,
)

_MATCH_ANNOTATION = re.compile(r"\b(?P<quality>EXACT|CLOSE)[ \t]+MATCH\b", re.IGNORECASE)

# Annotation opening the description as a label ("EXACT MATCH: ...")
_LEADING_ANNOTATION = re.compile(
    r"^[ \t]*(?P<quality>EXACT|CLOSE)[ \t]+MATCH[ \t]*(?:[:\-\u2013\u2014][ \t]*|$)",
    re.IGNORECASE,
)

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])[ \t]+")

_TITLE_STRIP = " \t*_\"'`"
_TRAILING_PUNCTUATION = " \t,;:-\u2013\u2014"
_GENRE_STRIP = " \t\r*_.;:\"'"


class RawCandidate(BaseModel):
    """One unverified title parsed from model output."""

    model_config = ConfigDict(frozen=True)

    title: str
    alt_title: str | None = None
    year: str
    description: str
    genres: list[str]
    language: str
    match_quality: MatchQuality | None = None
    media_kind: MediaKind = MediaKind.MOVIE
    position: int = 0

    @property
    def year_value(self) -> int:
        return int(self.year)

    @property
    def key(self) -> tuple[str, str]:
        """Deduplication key: case-insensitive title plus year."""
        return self.title.casefold(), self.year


def _clean_title(value: str | None) -> str:
    if not value:
        return ""
    return value.strip(_TITLE_STRIP).rstrip(_TRAILING_PUNCTUATION).strip(_TITLE_STRIP)


def split_genres(value: str) -> list[str]:
    """Split a comma-separated genre list, dropping empty tokens."""
    genres = []
    for token in re.split(r"[,/]", value):
        genre = token.strip(_GENRE_STRIP)
        if genre:
            genres.append(genre)
    return genres


def extract_match_quality(description: str) -> tuple[str, MatchQuality | None]:
    """Pull an EXACT/CLOSE MATCH annotation out of a description.

    A leading label ("EXACT MATCH: ...") is removed on its own; anywhere else
    the whole sentence carrying the annotation is removed. Returns the cleaned
    description (possibly empty) and the tag, or the description unchanged and
    None when there is no annotation.
    """
    match = _MATCH_ANNOTATION.search(description)
    if match is None:
        return description, None

    quality = MatchQuality(match.group("quality").lower())

    leading = _LEADING_ANNOTATION.match(description)
    if leading:
        return description[leading.end() :].strip(), quality

    sentences = _SENTENCE_BOUNDARY.split(description)
    kept = [sentence for sentence in sentences if not _MATCH_ANNOTATION.search(sentence)]
    return " ".join(kept).strip(), quality


def _default_media_kind(media_types: list[str] | None) -> MediaKind:
    """Series only when every requested media type is a series type."""
    kinds = {resolve_media_kind(media_type) for media_type in media_types or []}
    return MediaKind.SERIES if kinds == {MediaKind.SERIES} else MediaKind.MOVIE


def extract_candidates(
    text: str,
    languages: list[str] | None = None,
    media_types: list[str] | None = None,
) -> list[RawCandidate]:
    """Parse model output into candidates, earliest first.

    Args:
        text: Raw model output
        languages: Requested languages (codes or English names); when given,
            only candidates whose detected language is requested are kept
        media_types: Requested media types, used to pick the media kind

    Returns:
        Deduplicated candidates in text order

    Raises:
        ParseFailure: If no well-formed candidate survives
    """
    requested = normalize_languages(languages)
    default_kind = _default_media_kind(media_types)
    candidates: list[RawCandidate] = []
    seen: set[tuple[str, str]] = set()
    skipped = 0

    for match in CANDIDATE_PATTERN.finditer(text or ""):
        title = _clean_title(match.group("title"))
        alt_title = _clean_title(match.group("alt_title")) or None
        year = match.group("year")
        description, quality = extract_match_quality(match.group("description").strip())
        description = description.strip().rstrip(_TRAILING_PUNCTUATION).strip()
        genres = split_genres(match.group("genres"))

        # An annotation-only description is still a candidate; the catalog synopsis fills in
        if not (title and year and genres) or not (description or quality):
            skipped += 1
            continue

        language = detect_language(title, requested)
        if requested and language not in requested:
            logger.debug(f"Skipping '{title}': detected language {language} not in {requested}")
            skipped += 1
            continue

        key = (title.casefold(), year)
        if key in seen:
            logger.debug(f"Skipping duplicate candidate '{title}' ({year})")
            continue
        seen.add(key)

        candidates.append(
            RawCandidate(
                title=title,
                alt_title=alt_title if alt_title != title else None,
                year=year,
                description=description,
                genres=genres,
                language=language,
                match_quality=quality,
                media_kind=MediaKind.SERIES if match.group("end_year") else default_kind,
                position=len(candidates),
            )
        )

    if not candidates:
        raise ParseFailure(
            "No well-formed recommendations found in model output",
            details={"skipped": skipped, "chars": len(text or "")},
        )

    logger.info(f"Extracted {len(candidates)} candidates ({skipped} skipped)")
    return candidates
