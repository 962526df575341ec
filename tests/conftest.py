"""Shared test fixtures for pytest."""

from unittest.mock import AsyncMock, Mock

import pytest

from catalog.service import CatalogService
from completion.client import CompletionClient, CompletionResult
from recommend.models import PreferenceSpec
from tests.factories import make_details, make_entry


@pytest.fixture
def mock_catalog_service():
    """Create a mock catalog service."""
    service = AsyncMock(spec=CatalogService)
    service.search_titles = AsyncMock(return_value=[])
    service.get_details = AsyncMock(return_value=make_details())
    service.discover_by_genre = AsyncMock(return_value=[])
    service.list_genres = AsyncMock(return_value=[])
    service.check_api = AsyncMock(return_value=True)
    service.poster_url = Mock(side_effect=lambda path: f"https://img.test{path}" if path else None)
    return service


@pytest.fixture
def mock_completion_client():
    """Create a mock completion client that answers with an empty string."""
    client = AsyncMock(spec=CompletionClient)
    client.complete = AsyncMock(return_value=CompletionResult(text="", provider="gemini"))
    client.providers = [Mock(name="gemini")]
    client.provider_names = ["gemini"]
    return client


@pytest.fixture
def sample_entry():
    """Create a sample catalog entry for testing."""
    return make_entry(id=670, title="Oldboy", original_title="올드보이")


@pytest.fixture
def sample_spec():
    """Create sample preferences for testing."""
    return PreferenceSpec(languages=["ko"], genres=["Thriller"], plot="revenge")
