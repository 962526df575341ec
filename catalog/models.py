"""Pydantic models for catalog (TMDB) API responses."""

from enum import StrEnum

from pydantic import BaseModel


class MediaKind(StrEnum):
    MOVIE = "movie"
    SERIES = "series"

    @property
    def catalog_path(self) -> str:
        """Path segment the catalog uses for this kind ("movie" or "tv")."""
        return "tv" if self is MediaKind.SERIES else "movie"

    @property
    def content_type(self) -> str:
        """Coarse type tag exposed to clients ("movie" or "webseries")."""
        return "webseries" if self is MediaKind.SERIES else "movie"


_SERIES_TYPES = {"webseries", "series", "tv", "show", "tv show", "tv series"}


def resolve_media_kind(media_type: str | None) -> MediaKind:
    """Map a user-facing media type ("movie", "anime", "webseries", ...) to a MediaKind.

    Anything that is not a series type is searched as a movie.
    """
    if media_type and media_type.strip().lower() in _SERIES_TYPES:
        return MediaKind.SERIES
    return MediaKind.MOVIE


class Genre(BaseModel):
    id: int
    name: str


class CatalogEntry(BaseModel):
    """A single search/discover result. Read-only input to the pipeline."""

    id: int
    media_kind: MediaKind = MediaKind.MOVIE
    title: str = ""
    original_title: str = ""
    overview: str = ""
    release_date: str | None = None
    popularity: float = 0.0
    vote_average: float = 0.0
    vote_count: int = 0
    poster_path: str | None = None
    original_language: str = ""
    genre_ids: list[int] = []
    adult: bool = False

    @property
    def native_title(self) -> str:
        return self.original_title or self.title

    @property
    def year(self) -> int | None:
        if self.release_date and len(self.release_date) >= 4 and self.release_date[:4].isdigit():
            return int(self.release_date[:4])
        return None


class CastMember(BaseModel):
    id: int | None = None
    name: str
    character: str | None = None


class CrewMember(BaseModel):
    id: int | None = None
    name: str
    job: str | None = None


class CatalogDetails(BaseModel):
    """Full detail record for a title, including credits and external ids."""

    id: int
    media_kind: MediaKind = MediaKind.MOVIE
    title: str = ""
    original_title: str = ""
    overview: str = ""
    release_date: str | None = None
    poster_path: str | None = None
    original_language: str = ""
    vote_average: float = 0.0
    genres: list[Genre] = []
    cast: list[CastMember] = []
    crew: list[CrewMember] = []
    imdb_id: str | None = None
    cached: bool = False

    @property
    def director(self) -> str:
        return next((member.name for member in self.crew if member.job == "Director"), "")


class CatalogSearchResponse(BaseModel):
    """Response for the diagnostic catalog search endpoint."""

    results: list[CatalogEntry] = []
    total: int = 0


class MatchQuality(StrEnum):
    """Model-declared confidence that a title fits the requested plot."""

    EXACT = "exact"
    CLOSE = "close"


class EnrichedResult(BaseModel):
    """A verified, enriched recommendation as returned to the caller."""

    id: int
    title: str
    overview: str = ""
    poster_url: str | None = None
    release_date: str | None = None
    genres: list[str] = []
    original_language: str = ""
    vote_average: float = 0.0
    cast: list[str] = []
    director: str = ""
    imdb_id: str | None = None
    tmdb_url: str
    imdb_url: str | None = None
    relevance_position: int = 0
    media_kind: MediaKind = MediaKind.MOVIE
    type: str = "movie"
    language: str = ""
    match_quality: MatchQuality | None = None
    adult: bool = False
