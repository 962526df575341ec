"""Integration test fixtures.

Provides a real CatalogService and real completion providers whose HTTP
traffic is served by httpx.MockTransport handlers over a small fixed catalog.
"""

from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio

from catalog.memory_cache import clear_all_caches, set_skip_cache
from catalog.ratelimit import reset_rate_limiting
from catalog.service import CatalogService
from completion.client import CompletionClient
from completion.providers import GeminiProvider, OpenAIProvider
from config.settings import Settings

CATALOG_BASE_URL = "https://catalog.test/3"


# ---------------------------------------------------------------------------
# Seed data -- a small catalog
# ---------------------------------------------------------------------------


def _movie(id, title, original_title, release_date, popularity, **kwargs):
    record = {
        "id": id,
        "title": title,
        "original_title": original_title,
        "overview": f"{title} synopsis from the catalog.",
        "release_date": release_date,
        "popularity": popularity,
        "vote_average": 8.0,
        "vote_count": 1000,
        "poster_path": f"/{id}.jpg",
        "original_language": "ko",
        "genre_ids": [18, 53],
        "adult": False,
    }
    record.update(kwargs)
    return record


SEED_MOVIES = {
    496243: _movie(496243, "Parasite", "기생충", "2019-05-30", 80.0),
    670: _movie(670, "Oldboy", "올드보이", "2003-11-21", 40.0),
    6: _movie(6, "Mother", "마더", "2009-05-28", 20.0),
    4550: _movie(4550, "Memories of Murder", "살인의 추억", "2003-05-02", 30.0),
    99: _movie(99, "The Host", "괴물", "2006-07-27", 25.0, genre_ids=[27, 878]),
}

GENRES = [
    {"id": 18, "name": "Drama"},
    {"id": 27, "name": "Horror"},
    {"id": 53, "name": "Thriller"},
    {"id": 878, "name": "Science Fiction"},
]


def _search(query: str) -> list[dict]:
    needle = query.casefold()
    return [
        movie
        for movie in SEED_MOVIES.values()
        if needle in (movie["title"].casefold(), movie["original_title"].casefold())
    ]


def _details(movie: dict) -> dict:
    return {
        **movie,
        "genres": [g for g in GENRES if g["id"] in movie["genre_ids"]],
        "credits": {
            "cast": [{"id": i, "name": f"{movie['title']} Actor {i}"} for i in range(1, 8)],
            "crew": [{"id": 100, "name": "Bong Joon-ho", "job": "Director"}],
        },
        "external_ids": {"imdb_id": f"tt{movie['id']:07d}"},
    }


def _discover(params: dict) -> list[dict]:
    wanted = {int(g) for g in params.get("with_genres", [""])[0].split("|") if g}
    page = int(params.get("page", ["1"])[0])
    if page > 1:
        return []
    return [
        movie
        for movie in SEED_MOVIES.values()
        if not wanted or wanted & set(movie["genre_ids"])
    ]


def catalog_handler(request: httpx.Request) -> httpx.Response:
    """Serve the seed catalog the way the catalog API would."""
    params = parse_qs(request.url.query.decode())
    path = request.url.path.removeprefix("/3")

    if params.get("api_key") != ["test-key"]:
        return httpx.Response(401, json={"status_message": "Invalid API key"})
    if path == "/configuration":
        return httpx.Response(200, json={"images": {}})
    if path == "/search/movie":
        return httpx.Response(200, json={"results": _search(params["query"][0])})
    if path == "/genre/movie/list":
        return httpx.Response(200, json={"genres": GENRES})
    if path == "/discover/movie":
        return httpx.Response(200, json={"results": _discover(params)})
    if path.startswith("/movie/"):
        movie = SEED_MOVIES.get(int(path.rsplit("/", 1)[1]))
        if movie is None:
            return httpx.Response(404, json={"status_message": "Not found"})
        return httpx.Response(200, json=_details(movie))
    return httpx.Response(404, json={"status_message": "Unknown path"})


def gemini_answer(text: str):
    """Handler for a Gemini backend that answers with fixed text."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})

    return handler


def openai_answer(text: str):
    """Handler for an OpenAI backend that answers with fixed text."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"content": text}}]})

    return handler


def failing(status_code: int):
    """Handler for a backend that always fails with a status code."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"error": "unavailable"})

    return handler


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_state():
    """Clear caches and rate limiting state between tests."""
    set_skip_cache(False)
    yield
    clear_all_caches()
    reset_rate_limiting()


@pytest.fixture
def test_settings():
    """Settings with no real keys, telemetry disabled."""
    return Settings(
        tmdb_api_key="test-key",
        gemini_api_key=None,
        openai_api_key=None,
        openrouter_api_key=None,
        sentry_dsn=None,
        posthog_api_key=None,
        enable_telemetry=False,
    )


@pytest_asyncio.fixture
async def catalog_service():
    """Real CatalogService over the seed catalog."""
    service = CatalogService(
        "test-key",
        base_url=CATALOG_BASE_URL,
        timeout=5.0,
        transport=httpx.MockTransport(catalog_handler),
    )
    yield service
    await service.close()


@pytest.fixture
def make_completion_client():
    """Build a CompletionClient from (gemini handler, openai handler)."""

    def _make(gemini_handler, openai_handler=None):
        providers = [
            GeminiProvider("g-key", "gemini-test", transport=httpx.MockTransport(gemini_handler))
        ]
        if openai_handler is not None:
            providers.append(
                OpenAIProvider("o-key", "gpt-test", transport=httpx.MockTransport(openai_handler))
            )
        return CompletionClient(providers)

    return _make


@pytest_asyncio.fixture
async def app_client(catalog_service, test_settings):
    """httpx AsyncClient with a real CatalogService over the seed catalog, PostHog disabled."""
    from httpx import ASGITransport, AsyncClient

    from config.settings import get_settings
    from core.dependencies import get_catalog_service, get_posthog_client
    from main import app

    app.dependency_overrides[get_catalog_service] = lambda: catalog_service
    app.dependency_overrides[get_posthog_client] = lambda: None
    app.dependency_overrides[get_settings] = lambda: test_settings

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def use_completion(make_completion_client):
    """Install a CompletionClient built from provider handlers as the app's dependency."""
    from core.dependencies import get_completion_client
    from main import app

    clients: list[CompletionClient] = []

    def _use(gemini_handler, openai_handler=None) -> CompletionClient:
        client = make_completion_client(gemini_handler, openai_handler)
        clients.append(client)
        app.dependency_overrides[get_completion_client] = lambda: client
        return client

    yield _use

    for client in clients:
        await client.close()
