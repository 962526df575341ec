"""Unit tests for core/exceptions.py."""

import pytest

from core.exceptions import (
    AllProvidersExhausted,
    CatalogLookupFailure,
    CompletionFailure,
    InvalidPreferenceSpec,
    NoMatchesFound,
    ParseFailure,
    ProviderError,
    RecommendationServiceError,
)


class TestRecommendationServiceError:
    """Tests for the base exception class."""

    def test_message_attribute(self):
        err = RecommendationServiceError("something went wrong")
        assert err.message == "something went wrong"

    def test_str_output(self):
        err = RecommendationServiceError("something went wrong")
        assert str(err) == "something went wrong"

    def test_details_default_empty(self):
        err = RecommendationServiceError("msg")
        assert err.details == {}

    def test_details_provided(self):
        err = RecommendationServiceError("msg", details={"key": "val"})
        assert err.details == {"key": "val"}


SUBCLASSES = [
    InvalidPreferenceSpec,
    CompletionFailure,
    AllProvidersExhausted,
    ParseFailure,
    NoMatchesFound,
]


@pytest.mark.parametrize("cls", SUBCLASSES, ids=lambda c: c.__name__)
class TestExceptionSubclasses:
    """All subclasses inherit from RecommendationServiceError and carry message/details."""

    def test_inherits_from_base(self, cls):
        err = cls("test")
        assert isinstance(err, RecommendationServiceError)

    def test_message_and_details(self, cls):
        err = cls("detail msg", details={"a": 1})
        assert err.message == "detail msg"
        assert err.details == {"a": 1}
        assert str(err) == "detail msg"


class TestSpecificErrors:
    def test_all_providers_exhausted_is_completion_failure(self):
        assert isinstance(AllProvidersExhausted("x"), CompletionFailure)

    def test_provider_error_carries_provider(self):
        err = ProviderError("gemini", "timed out", {"status_code": 504})
        assert err.provider == "gemini"
        assert err.message == "timed out"
        assert err.details == {"status_code": 504}

    def test_catalog_lookup_failure_status_code(self):
        err = CatalogLookupFailure("not found", status_code=404)
        assert err.status_code == 404
        assert err.details == {}

    def test_catalog_lookup_failure_status_defaults_none(self):
        assert CatalogLookupFailure("boom").status_code is None
