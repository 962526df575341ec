"""Unit tests for recommend/router.py."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException
from httpx import ASGITransport, AsyncClient

from core.exceptions import (
    AllProvidersExhausted,
    CatalogLookupFailure,
    InvalidPreferenceSpec,
    NoMatchesFound,
    ParseFailure,
)
from recommend.models import RecommendationResponse
from recommend.router import NO_RESULTS_DETAIL, _require_catalog, _to_http_error
from tests.factories import RECOMMEND_BODY, make_result
from tests.unit.conftest import override_deps

PREVIOUS_BODY = {
    "currentRecommendations": [{"id": 670, "title": "Oldboy", "releaseDate": "2003-11-21"}],
    "preferences": RECOMMEND_BODY,
}

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestRequireCatalog:
    def test_none_raises_503(self):
        with pytest.raises(HTTPException) as exc_info:
            _require_catalog(None)
        assert exc_info.value.status_code == 503


class TestToHttpError:
    @pytest.mark.parametrize(
        "error, status_code",
        [
            (InvalidPreferenceSpec("bad rating"), 400),
            (NoMatchesFound("nothing"), 404),
            (ParseFailure("garbled"), 404),
            (AllProvidersExhausted("all down"), 503),
            (CatalogLookupFailure("boom"), 500),
        ],
        ids=["invalid", "no_matches", "parse_failure", "providers_exhausted", "other"],
    )
    def test_status_mapping(self, error, status_code):
        assert _to_http_error(error).status_code == status_code

    def test_invalid_spec_message_passed_through(self):
        assert _to_http_error(InvalidPreferenceSpec("bad rating")).detail == "bad rating"

    def test_no_results_message(self):
        assert _to_http_error(NoMatchesFound("x")).detail == NO_RESULTS_DETAIL


# ---------------------------------------------------------------------------
# Endpoint tests
# ---------------------------------------------------------------------------


@pytest.fixture
def app_with_services(mock_catalog_service, mock_completion_client, mock_settings, mock_posthog_client):
    from config.settings import get_settings
    from core.dependencies import (
        get_catalog_service,
        get_completion_client,
        get_posthog_client,
    )
    from main import app

    with override_deps(
        app,
        {
            get_catalog_service: mock_catalog_service,
            get_completion_client: mock_completion_client,
            get_posthog_client: mock_posthog_client,
            get_settings: mock_settings,
        },
    ):
        yield app


@pytest.fixture
def app_without_catalog(mock_completion_client, mock_settings):
    from config.settings import get_settings
    from core.dependencies import (
        get_catalog_service,
        get_completion_client,
        get_posthog_client,
    )
    from main import app

    with override_deps(
        app,
        {
            get_catalog_service: None,
            get_completion_client: mock_completion_client,
            get_posthog_client: None,
            get_settings: mock_settings,
        },
    ):
        yield app


async def _post(app, path, body, **params):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.post(path, json=body, params=params)


class TestRecommend:
    @pytest.mark.asyncio
    async def test_success(self, app_with_services, mock_posthog_client):
        with patch(
            "recommend.router.get_recommendations",
            new_callable=AsyncMock,
            return_value=RecommendationResponse(results=[make_result(id=670)], provider="gemini"),
        ):
            resp = await _post(app_with_services, "/api/v1/recommendations", RECOMMEND_BODY)

        assert resp.status_code == 200
        data = resp.json()
        assert data["results"][0]["id"] == 670
        assert data["results"][0]["tmdb_url"] == "https://www.themoviedb.org/movie/670"
        assert data["provider"] == "gemini"
        assert data["used_fallback"] is False
        assert data["catalog_stats"]["api_calls"] == 0

        events = [c.kwargs["event"] for c in mock_posthog_client.capture.call_args_list]
        assert events[-1] == "recommend_completed"
        props = mock_posthog_client.capture.call_args_list[-1].kwargs["properties"]
        assert props["variant"] == "default"
        assert props["results_count"] == 1

    @pytest.mark.asyncio
    async def test_camel_case_body(self, app_with_services):
        body = {
            "contentType": "movie",
            "languages": ["Korean"],
            "plotPreference": "revenge",
            "similarMovies": "Oldboy, Mother",
            "prompt": "custom prompt",
        }
        with patch(
            "recommend.router.get_recommendations",
            new_callable=AsyncMock,
            return_value=RecommendationResponse(results=[make_result()]),
        ) as mock_get:
            resp = await _post(app_with_services, "/api/v1/recommendations", body)

        assert resp.status_code == 200
        spec = mock_get.call_args.args[0]
        assert spec.languages == ["ko"]
        assert spec.plot == "revenge"
        assert spec.similar_titles == ["Oldboy", "Mother"]
        assert mock_get.call_args.kwargs["prompt_override"] == "custom prompt"

    @pytest.mark.asyncio
    async def test_skip_cache(self, app_with_services):
        with (
            patch(
                "recommend.router.get_recommendations",
                new_callable=AsyncMock,
                return_value=RecommendationResponse(results=[make_result()]),
            ),
            patch("recommend.router.set_skip_cache") as mock_skip,
        ):
            await _post(app_with_services, "/api/v1/recommendations", RECOMMEND_BODY, skip_cache="true")

        mock_skip.assert_called_once_with(True)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, status_code, captured",
        [
            (InvalidPreferenceSpec("Minimum rating must be between 0 and 10"), 400, False),
            (NoMatchesFound("nothing"), 404, False),
            (ParseFailure("garbled"), 404, False),
            (AllProvidersExhausted("all down"), 503, True),
            (RuntimeError("unexpected"), 500, True),
        ],
        ids=["invalid", "no_matches", "parse_failure", "providers_exhausted", "unexpected"],
    )
    async def test_error_mapping(self, app_with_services, error, status_code, captured):
        with (
            patch("recommend.router.get_recommendations", new_callable=AsyncMock, side_effect=error),
            patch("recommend.router.capture_exception") as mock_capture,
        ):
            resp = await _post(app_with_services, "/api/v1/recommendations", RECOMMEND_BODY)

        assert resp.status_code == status_code
        assert mock_capture.called is captured

    @pytest.mark.asyncio
    async def test_invalid_rating_rejected_end_to_end(self, app_with_services, mock_completion_client):
        resp = await _post(app_with_services, "/api/v1/recommendations", {"minImdbRating": 42})

        assert resp.status_code == 400
        mock_completion_client.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_catalog_returns_503(self, app_without_catalog):
        resp = await _post(app_without_catalog, "/api/v1/recommendations", RECOMMEND_BODY)
        assert resp.status_code == 503


class TestVariantEndpoints:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path, target, variant",
        [
            ("/api/v1/recommendations/different", "get_different_recommendations", "different"),
            ("/api/v1/recommendations/similar", "get_similar_recommendations", "similar"),
        ],
        ids=["different", "similar"],
    )
    async def test_success(self, app_with_services, mock_posthog_client, path, target, variant):
        with patch(
            f"recommend.router.{target}",
            new_callable=AsyncMock,
            return_value=RecommendationResponse(results=[make_result(id=2, title="Mother")]),
        ) as mock_get:
            resp = await _post(app_with_services, path, PREVIOUS_BODY)

        assert resp.status_code == 200
        previous, spec = mock_get.call_args.args[:2]
        assert previous[0].title == "Oldboy"
        assert previous[0].year == 2003
        assert spec.languages == ["ko"]
        props = mock_posthog_client.capture.call_args_list[-1].kwargs["properties"]
        assert props["variant"] == variant

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path", ["/api/v1/recommendations/different", "/api/v1/recommendations/similar"]
    )
    async def test_no_previous_returns_400(self, app_with_services, mock_completion_client, path):
        resp = await _post(app_with_services, path, {"currentRecommendations": [], "preferences": {}})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "No current recommendations provided"
        mock_completion_client.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_catalog_returns_503(self, app_without_catalog):
        resp = await _post(app_without_catalog, "/api/v1/recommendations/similar", PREVIOUS_BODY)
        assert resp.status_code == 503
