"""Models for the recommendation API contract."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from catalog.models import EnrichedResult, MediaKind, resolve_media_kind
from core.languages import normalize_languages
from core.matching import parse_year, parse_year_range


def _split_list(value):
    """Accept a list or a comma-separated string; drop blank items."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


class PreferenceSpec(BaseModel):
    """What the user asked for. Immutable once built.

    Field names follow this service's snake_case API; the camelCase names the
    web client sends are accepted as aliases.
    """

    model_config = ConfigDict(frozen=True)

    media_types: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("media_types", "contentType", "mediaType"),
    )
    languages: list[str] = []
    genres: list[str] = []
    plot: str = Field("", validation_alias=AliasChoices("plot", "plotPreference"))
    similar_titles: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("similar_titles", "similarMovies")
    )
    preferred_year: str | None = Field(
        None, validation_alias=AliasChoices("preferred_year", "preferredYear")
    )
    cast: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("cast", "preferredCast")
    )
    min_rating: float | None = Field(
        None, validation_alias=AliasChoices("min_rating", "minImdbRating", "rating")
    )
    allow_adult: bool = Field(
        False, validation_alias=AliasChoices("allow_adult", "allowAdult", "mature")
    )
    exclude_titles: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("exclude_titles", "excludeMovies")
    )
    exclude_ids: list[int] = []

    @field_validator(
        "media_types", "genres", "similar_titles", "cast", "exclude_titles", mode="before"
    )
    @classmethod
    def _coerce_list(cls, value):
        return _split_list(value)

    @field_validator("languages", mode="before")
    @classmethod
    def _coerce_languages(cls, value):
        return normalize_languages(_split_list(value))

    @field_validator("plot", mode="before")
    @classmethod
    def _coerce_plot(cls, value):
        return (value or "").strip()

    @field_validator("preferred_year", mode="before")
    @classmethod
    def _coerce_year(cls, value):
        if value is None:
            return None
        return str(value).strip() or None

    @field_validator("min_rating", mode="before")
    @classmethod
    def _coerce_rating(cls, value):
        if isinstance(value, str):
            value = value.strip()
        # 0 or blank means no threshold
        return value or None

    @property
    def media_kind(self) -> MediaKind:
        """Media kind of the first requested media type (movie by default)."""
        if not self.media_types:
            return MediaKind.MOVIE
        return resolve_media_kind(self.media_types[0])

    @property
    def year_range(self) -> tuple[int, int] | None:
        return parse_year_range(self.preferred_year)

    def with_exclusions(self, titles: list[str], ids: list[int]) -> "PreferenceSpec":
        return self.model_copy(
            update={
                "exclude_titles": [*self.exclude_titles, *titles],
                "exclude_ids": [*self.exclude_ids, *ids],
            }
        )

    def with_similar(self, titles: list[str]) -> "PreferenceSpec":
        merged = [*self.similar_titles, *(t for t in titles if t not in self.similar_titles)]
        return self.model_copy(update={"similar_titles": merged})


class RecommendationRequest(PreferenceSpec):
    """Request body for POST /recommendations."""

    model_config = ConfigDict(frozen=True)

    prompt: str | None = Field(None, description="Optional prompt replacing the generated one")

    def to_spec(self) -> PreferenceSpec:
        return PreferenceSpec.model_validate(self.model_dump(exclude={"prompt"}))


class PreviousRecommendation(BaseModel):
    """A result the caller was shown earlier (variant requests)."""

    id: int | None = None
    title: str
    overview: str = ""
    release_date: str | None = Field(
        None, validation_alias=AliasChoices("release_date", "releaseDate")
    )

    @property
    def year(self) -> int | None:
        return parse_year(self.release_date)


class VariantRequest(BaseModel):
    """Request body for the different/similar endpoints."""

    current_recommendations: list[PreviousRecommendation] = Field(
        default_factory=list,
        validation_alias=AliasChoices("current_recommendations", "currentRecommendations"),
    )
    preferences: PreferenceSpec = Field(default_factory=PreferenceSpec)


class RecommendationResponse(BaseModel):
    """Response from the recommendation endpoints."""

    results: list[EnrichedResult] = []
    provider: str | None = None
    used_fallback: bool = False
    catalog_stats: dict | None = None
