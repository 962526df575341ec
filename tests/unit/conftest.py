"""Unit test fixtures."""

from contextlib import contextmanager
from unittest.mock import Mock

import pytest

from catalog.memory_cache import clear_all_caches, set_skip_cache
from catalog.ratelimit import reset_rate_limiting
from config.settings import Settings


@contextmanager
def override_deps(app, overrides):
    """Set FastAPI dependency overrides and clear them on exit.

    Args:
        app: The FastAPI application.
        overrides: A dict mapping dependency functions to their replacement values.
    """

    def _make_override(val):
        return lambda: val

    for dep_fn, provider in overrides.items():
        app.dependency_overrides[dep_fn] = _make_override(provider)
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def mock_settings(monkeypatch):
    """Settings with safe test defaults (no real keys/DSNs)."""
    for name in (
        "TMDB_API_KEY",
        "GEMINI_API_KEY",
        "OPENAI_API_KEY",
        "OPENROUTER_API_KEY",
        "SENTRY_DSN",
        "POSTHOG_API_KEY",
    ):
        monkeypatch.setenv(name, "")
    monkeypatch.setenv("ENABLE_TELEMETRY", "false")
    return Settings(
        tmdb_api_key=None,
        gemini_api_key=None,
        openai_api_key=None,
        openrouter_api_key=None,
        sentry_dsn=None,
        posthog_api_key=None,
        enable_telemetry=False,
    )


@pytest.fixture
def mock_posthog_client():
    """Mock PostHog client."""
    client = Mock()
    client.capture = Mock()
    client.flush = Mock()
    client.shutdown = Mock()
    return client


@pytest.fixture(autouse=True)
def reset_caches():
    """Clear all in-memory caches, rate limiting state, and ContextVars between tests."""
    from core.telemetry import _catalog_stats_var

    catalog_stats_token = _catalog_stats_var.set(None)
    set_skip_cache(False)
    yield
    clear_all_caches()
    reset_rate_limiting()
    _catalog_stats_var.reset(catalog_stats_token)
