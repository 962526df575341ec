"""Catalog (TMDB) API service with caching, rate limiting and bounded retry."""

import asyncio
import logging
import time
from typing import Any

import httpx
from pydantic import ValidationError

from catalog.memory_cache import async_cached, get_details_cache, get_genre_cache
from catalog.models import (
    CastMember,
    CatalogDetails,
    CatalogEntry,
    CrewMember,
    Genre,
    MediaKind,
)
from catalog.ratelimit import get_rate_limiter, get_semaphore
from config.settings import get_settings
from core.exceptions import CatalogLookupFailure
from core.sentry import add_catalog_breadcrumb
from core.telemetry import (
    record_api_time,
    record_catalog_api_call,
    record_catalog_failure,
    record_catalog_retry,
)

logger = logging.getLogger(__name__)

SEARCH_LANGUAGE = "en-US"

# TV records use different field names for the same concepts
_TV_FIELD_MAP = {
    "name": "title",
    "original_name": "original_title",
    "first_air_date": "release_date",
}


def _is_transient(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def _normalize_record(raw: dict[str, Any], media_kind: MediaKind) -> dict[str, Any]:
    """Map a raw movie/TV record onto the shared field names."""
    record = dict(raw)
    if media_kind is MediaKind.SERIES:
        for source, target in _TV_FIELD_MAP.items():
            if source in record and not record.get(target):
                record[target] = record[source]
    record["media_kind"] = media_kind
    # The API sends null for several string fields
    for key in ("title", "original_title", "overview", "original_language"):
        if record.get(key) is None:
            record[key] = ""
    if not record.get("release_date"):
        record["release_date"] = None
    for key in ("popularity", "vote_average"):
        if record.get(key) is None:
            record[key] = 0.0
    if record.get("vote_count") is None:
        record["vote_count"] = 0
    if record.get("genre_ids") is None:
        record["genre_ids"] = []
    if record.get("adult") is None:
        record["adult"] = False
    return record


def _malformed(path: str, error: Exception) -> CatalogLookupFailure:
    record_catalog_failure()
    return CatalogLookupFailure(
        f"Malformed catalog record for {path}", details={"error": str(error)}
    )


def _parse_entries(data: dict[str, Any], media_kind: MediaKind, path: str) -> list[CatalogEntry]:
    entries: list[CatalogEntry] = []
    for raw in data.get("results") or []:
        if not isinstance(raw, dict) or raw.get("id") is None:
            continue
        try:
            entries.append(CatalogEntry.model_validate(_normalize_record(raw, media_kind)))
        except ValidationError as e:
            raise _malformed(path, e) from e
    return entries


def _parse_details(data: dict[str, Any], catalog_id: int, media_kind: MediaKind) -> CatalogDetails:
    record = _normalize_record(data, media_kind)
    credits = data.get("credits") or {}
    external_ids = data.get("external_ids") or {}

    return CatalogDetails(
        id=record.get("id", catalog_id),
        media_kind=media_kind,
        title=record["title"],
        original_title=record["original_title"],
        overview=record["overview"],
        release_date=record["release_date"],
        poster_path=record.get("poster_path"),
        original_language=record["original_language"],
        vote_average=record["vote_average"],
        genres=[Genre.model_validate(g) for g in record.get("genres") or []],
        cast=[
            CastMember(id=c.get("id"), name=c["name"], character=c.get("character"))
            for c in credits.get("cast") or []
            if c.get("name")
        ],
        crew=[
            CrewMember(id=c.get("id"), name=c["name"], job=c.get("job"))
            for c in credits.get("crew") or []
            if c.get("name")
        ],
        imdb_id=record.get("imdb_id") or external_ids.get("imdb_id") or None,
    )


def _year_params(year_range: tuple[int, int], media_kind: MediaKind) -> dict[str, Any]:
    start, end = year_range
    if media_kind is MediaKind.SERIES:
        if start == end:
            return {"first_air_date_year": start}
        return {
            "first_air_date.gte": f"{start}-01-01",
            "first_air_date.lte": f"{end}-12-31",
        }
    if start == end:
        return {"primary_release_year": start}
    return {
        "primary_release_date.gte": f"{start}-01-01",
        "primary_release_date.lte": f"{end}-12-31",
    }


class CatalogService:
    """Service for all catalog API interactions.

    Every call is a GET with the API key as a query parameter. Transient
    failures (429, 5xx, timeouts, transport errors) are retried with
    exponential backoff; anything else raises CatalogLookupFailure at once.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the service.

        Args:
            api_key: Catalog API key
            base_url: API base URL (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
            transport: Optional httpx transport, used to stub the API in tests
        """
        settings = get_settings()
        self.api_key = api_key
        self.base_url = base_url or settings.tmdb_base_url
        self.timeout = timeout if timeout is not None else settings.catalog_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def check_api(self) -> bool:
        """Check catalog API connectivity."""
        try:
            client = await self._get_client()
            resp = await client.get("/configuration", params={"api_key": self.api_key})
            return bool(resp.status_code == 200)
        except Exception:
            return False

    async def _request_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        max_retries: int | None = None,
    ) -> dict[str, Any]:
        """GET a catalog path and return the decoded JSON body.

        Args:
            path: API path (e.g., "/search/movie")
            params: Query parameters, without the API key
            max_retries: Retries after the first attempt (defaults to settings)

        Raises:
            CatalogLookupFailure: On a non-transient error, a non-JSON body, or
                when the retry budget is exhausted
        """
        if max_retries is None:
            max_retries = get_settings().catalog_max_retries

        query = {**(params or {}), "api_key": self.api_key}
        client = await self._get_client()
        semaphore = get_semaphore()
        rate_limiter = get_rate_limiter()
        last_error = "no attempt made"

        async with semaphore:
            for attempt in range(max_retries + 1):
                await rate_limiter.acquire()
                start = time.perf_counter()

                try:
                    response = await client.get(path, params=query)
                except httpx.TimeoutException:
                    last_error = "timeout"
                except httpx.RequestError as e:
                    last_error = f"{type(e).__name__}: {e}"
                else:
                    record_api_time((time.perf_counter() - start) * 1000)
                    record_catalog_api_call()

                    if not _is_transient(response.status_code):
                        if response.status_code >= 400:
                            record_catalog_failure()
                            add_catalog_breadcrumb(
                                "http_error",
                                {"path": path, "status": response.status_code},
                                level="warning",
                            )
                            raise CatalogLookupFailure(
                                f"Catalog returned {response.status_code} for {path}",
                                status_code=response.status_code,
                            )
                        try:
                            data = response.json()
                        except ValueError as e:
                            record_catalog_failure()
                            raise CatalogLookupFailure(
                                f"Catalog returned a non-JSON body for {path}"
                            ) from e
                        if not isinstance(data, dict):
                            record_catalog_failure()
                            raise CatalogLookupFailure(f"Unexpected catalog payload for {path}")
                        return data

                    last_error = f"HTTP {response.status_code}"

                if attempt < max_retries:
                    # Exponential backoff: 1s, 2s, 4s...
                    delay = 2**attempt
                    logger.warning(
                        f"Catalog request to {path} failed ({last_error}), retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries + 1})"
                    )
                    record_catalog_retry()
                    await asyncio.sleep(delay)

        logger.error(f"Catalog request to {path} failed after {max_retries + 1} attempts")
        record_catalog_failure()
        add_catalog_breadcrumb(
            "retries_exhausted", {"path": path, "error": last_error}, level="error"
        )
        raise CatalogLookupFailure(
            f"Catalog request to {path} failed: {last_error}",
            details={"attempts": max_retries + 1},
        )

    async def search_titles(
        self,
        query: str,
        year: int | None = None,
        languages: list[str] | None = None,
        media_kind: MediaKind = MediaKind.MOVIE,
    ) -> list[CatalogEntry]:
        """Search the catalog by title.

        Args:
            query: Title to search for
            year: Optional release (or first-air) year
            languages: Optional original-language filter (ISO-639-1 codes)
            media_kind: Movie or series

        Returns:
            Catalog entries in the catalog's own relevance order
        """
        params: dict[str, Any] = {
            "query": query,
            "language": SEARCH_LANGUAGE,
            "include_adult": "false",
            "page": 1,
        }
        if year:
            params["first_air_date_year" if media_kind is MediaKind.SERIES else "year"] = year
        if languages:
            params["with_original_language"] = "|".join(languages)

        add_catalog_breadcrumb(
            "search_titles", {"query": query, "year": year, "media_kind": str(media_kind)}
        )
        path = f"/search/{media_kind.catalog_path}"
        data = await self._request_json(path, params)
        entries = _parse_entries(data, media_kind, path)
        logger.debug(f"Catalog search '{query}' ({year}) returned {len(entries)} results")
        return entries

    @async_cached(get_details_cache)
    async def get_details(
        self, catalog_id: int, media_kind: MediaKind = MediaKind.MOVIE
    ) -> CatalogDetails:
        """Fetch the full record for a title, including credits and external ids."""
        add_catalog_breadcrumb(
            "get_details", {"catalog_id": catalog_id, "media_kind": str(media_kind)}
        )
        path = f"/{media_kind.catalog_path}/{catalog_id}"
        data = await self._request_json(
            path, {"append_to_response": "credits,external_ids", "language": SEARCH_LANGUAGE}
        )
        try:
            return _parse_details(data, catalog_id, media_kind)
        except (ValidationError, KeyError, TypeError, AttributeError) as e:
            raise _malformed(path, e) from e

    async def discover_by_genre(
        self,
        genre_ids: list[int],
        languages: list[str] | None = None,
        year_range: tuple[int, int] | None = None,
        media_kind: MediaKind = MediaKind.MOVIE,
        page: int = 1,
    ) -> list[CatalogEntry]:
        """Browse the catalog by genre, most popular first.

        Args:
            genre_ids: Genre ids, OR-combined; empty means no genre filter
            languages: Optional original-language filter
            year_range: Optional inclusive (start, end) release-year range
            media_kind: Movie or series
            page: 1-based result page
        """
        params: dict[str, Any] = {
            "sort_by": "popularity.desc",
            "include_adult": "false",
            "language": SEARCH_LANGUAGE,
            "page": page,
        }
        if genre_ids:
            params["with_genres"] = "|".join(str(g) for g in genre_ids)
        if languages:
            params["with_original_language"] = "|".join(languages)
        if year_range:
            params.update(_year_params(year_range, media_kind))

        add_catalog_breadcrumb(
            "discover_by_genre",
            {"genre_ids": genre_ids, "page": page, "media_kind": str(media_kind)},
        )
        path = f"/discover/{media_kind.catalog_path}"
        data = await self._request_json(path, params)
        return _parse_entries(data, media_kind, path)

    @async_cached(get_genre_cache)
    async def list_genres(self, media_kind: MediaKind = MediaKind.MOVIE) -> list[Genre]:
        """List the catalog's genres for a media kind."""
        add_catalog_breadcrumb("list_genres", {"media_kind": str(media_kind)})
        path = f"/genre/{media_kind.catalog_path}/list"
        data = await self._request_json(path, {"language": SEARCH_LANGUAGE})
        try:
            return [Genre.model_validate(g) for g in data.get("genres") or []]
        except ValidationError as e:
            raise _malformed(path, e) from e

    def poster_url(self, poster_path: str | None) -> str | None:
        """Absolute poster URL for a poster path, or None."""
        if not poster_path:
            return None
        return f"{get_settings().tmdb_image_base_url}{poster_path}"
