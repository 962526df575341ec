"""Unit tests for catalog/matcher.py."""

from unittest.mock import AsyncMock

import httpx
import pytest

from catalog.matcher import (
    MatchScore,
    compare_scores,
    find_best_match,
    rank_scores,
    score_entries,
    select_best_match,
)
from catalog.models import MediaKind
from catalog.service import CatalogService
from core.exceptions import CatalogLookupFailure
from tests.factories import make_entry

OLDBOY_2003 = make_entry(id=670, title="Oldboy", original_title="올드보이", release_date="2003-11-21")
OLDBOY_2013 = make_entry(
    id=87516, title="Oldboy", original_title="Oldboy", release_date="2013-11-27", original_language="en"
)


def _score(similarity, year_diff=0, language_match=True, id=1):
    return MatchScore(
        entry=make_entry(id=id), similarity=similarity, year_diff=year_diff, language_match=language_match
    )


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestCompareScores:
    def test_language_match_first(self):
        ranked = rank_scores([_score(1.0, language_match=False, id=1), _score(0.7, id=2)])
        assert [s.entry.id for s in ranked] == [2, 1]

    def test_higher_similarity_wins_outside_margin(self):
        ranked = rank_scores([_score(0.7, year_diff=0, id=1), _score(0.9, year_diff=5, id=2)])
        assert [s.entry.id for s in ranked] == [2, 1]

    def test_year_breaks_near_ties(self):
        ranked = rank_scores([_score(0.95, year_diff=4, id=1), _score(0.9, year_diff=0, id=2)])
        assert [s.entry.id for s in ranked] == [2, 1]

    def test_unknown_year_sorts_after_known(self):
        a = _score(0.9, year_diff=None, id=1)
        b = _score(0.9, year_diff=8, id=2)
        assert compare_scores(a, b) > 0


class TestScoreEntries:
    def test_year_diff_and_language(self):
        scores = score_entries([OLDBOY_2003, OLDBOY_2013], "올드보이", "Oldboy", 2003, ["ko"])
        assert [s.year_diff for s in scores] == [0, 10]
        assert [s.language_match for s in scores] == [True, False]
        assert scores[0].similarity == 1.0

    def test_no_languages_means_any(self):
        scores = score_entries([OLDBOY_2013], "Oldboy", year=2003)
        assert scores[0].language_match is True

    def test_unknown_entry_year(self):
        scores = score_entries([make_entry(release_date=None)], "Oldboy", year=2003)
        assert scores[0].year_diff is None


class TestSelectBestMatch:
    def test_empty(self):
        assert select_best_match([]) is None

    def test_weak_match_rejected(self):
        assert select_best_match([_score(0.5, year_diff=3)]) is None

    def test_accepts_close_year_loose_similarity(self):
        best = select_best_match([_score(0.65, year_diff=1)])
        assert best is not None

    def test_lower_ranked_entry_never_promoted(self):
        # The top entry fails the strict threshold; the second would pass the loose one
        top = _score(0.79, year_diff=5, id=1)
        second = _score(0.65, year_diff=0, id=2)
        assert second.accepted
        assert select_best_match([second, top]) is None


# ---------------------------------------------------------------------------
# find_best_match
# ---------------------------------------------------------------------------


class TestFindBestMatch:
    @pytest.mark.asyncio
    async def test_original_preferred_over_remake(self, mock_catalog_service):
        mock_catalog_service.search_titles.return_value = [OLDBOY_2013, OLDBOY_2003]

        entry = await find_best_match(mock_catalog_service, "올드보이", "Oldboy", 2003)

        assert entry.id == 670

    @pytest.mark.asyncio
    async def test_language_filter_applied(self, mock_catalog_service):
        mock_catalog_service.search_titles.return_value = [OLDBOY_2013, OLDBOY_2003]

        entry = await find_best_match(mock_catalog_service, "Oldboy", None, 2013, languages=["ko"])

        assert entry.id == 670
        mock_catalog_service.search_titles.assert_called_once_with(
            "Oldboy", 2013, ["ko"], MediaKind.MOVIE
        )

    @pytest.mark.asyncio
    async def test_all_entries_in_wrong_language(self, mock_catalog_service):
        mock_catalog_service.search_titles.return_value = [OLDBOY_2013]
        assert await find_best_match(mock_catalog_service, "Oldboy", None, 2013, languages=["ko"]) is None

    @pytest.mark.asyncio
    async def test_retries_with_secondary_title(self, mock_catalog_service):
        mock_catalog_service.search_titles = AsyncMock(side_effect=[[], [OLDBOY_2003]])

        entry = await find_best_match(
            mock_catalog_service, "Oldeuboi", "Oldboy", 2003, media_kind=MediaKind.MOVIE
        )

        assert entry.id == 670
        assert mock_catalog_service.search_titles.call_count == 2
        assert mock_catalog_service.search_titles.call_args_list[1].args[0] == "Oldboy"

    @pytest.mark.asyncio
    async def test_no_retry_when_secondary_is_same(self, mock_catalog_service):
        assert await find_best_match(mock_catalog_service, "Oldboy", "Oldboy", 2003) is None
        mock_catalog_service.search_titles.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_results(self, mock_catalog_service):
        assert await find_best_match(mock_catalog_service, "Nonexistent Film", None, 2020) is None

    @pytest.mark.asyncio
    async def test_invented_title_rejected(self, mock_catalog_service):
        mock_catalog_service.search_titles.return_value = [
            make_entry(id=5, title="The Handmaiden", original_title="아가씨", release_date="2016-06-01")
        ]
        assert await find_best_match(mock_catalog_service, "The Silent Harbor", None, 2005) is None

    @pytest.mark.asyncio
    async def test_catalog_failure_is_no_match(self, mock_catalog_service):
        mock_catalog_service.search_titles = AsyncMock(side_effect=CatalogLookupFailure("down"))
        assert await find_best_match(mock_catalog_service, "Oldboy", None, 2003) is None

    @pytest.mark.asyncio
    async def test_malformed_search_record_is_no_match(self):
        def handler(request):
            return httpx.Response(200, json={"results": [{"id": 5, "popularity": "very"}]})

        service = CatalogService(
            "test-key", base_url="https://api.test/3", transport=httpx.MockTransport(handler)
        )
        try:
            assert await find_best_match(service, "Oldboy", None, 2003) is None
        finally:
            await service.close()

    @pytest.mark.asyncio
    async def test_series_kind_passed_through(self, mock_catalog_service):
        await find_best_match(mock_catalog_service, "Kingdom", None, 2019, media_kind=MediaKind.SERIES)
        assert mock_catalog_service.search_titles.call_args.args[3] is MediaKind.SERIES
