"""Rate limiting utilities for catalog API requests.

Implements:
- Semaphore for concurrent request limiting
- Token bucket rate limiter (TMDB allows roughly 40 requests per 10 seconds)
- Reset function for testing
"""

import asyncio
import logging

from aiolimiter import AsyncLimiter

logger = logging.getLogger(__name__)

RATE_WINDOW_SECONDS = 10

# Lazily-initialized rate limiting primitives, stored per event loop
_rate_limiters: dict[asyncio.AbstractEventLoop, AsyncLimiter] = {}
_semaphores: dict[asyncio.AbstractEventLoop, asyncio.Semaphore] = {}


def _new_limiter() -> AsyncLimiter:
    from config.settings import get_settings

    return AsyncLimiter(get_settings().catalog_rate_limit, RATE_WINDOW_SECONDS)


def _new_semaphore() -> asyncio.Semaphore:
    from config.settings import get_settings

    return asyncio.Semaphore(get_settings().catalog_max_concurrent)


def get_rate_limiter() -> AsyncLimiter:
    """Get or create the rate limiter for the current event loop."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return _new_limiter()

    if loop not in _rate_limiters:
        _rate_limiters[loop] = _new_limiter()
        logger.debug(f"Created catalog rate limiter: {_rate_limiters[loop].max_rate} req/window")
    return _rate_limiters[loop]


def get_semaphore() -> asyncio.Semaphore:
    """Get or create the concurrency semaphore for the current event loop."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return _new_semaphore()

    if loop not in _semaphores:
        _semaphores[loop] = _new_semaphore()
        logger.debug("Created catalog semaphore")
    return _semaphores[loop]


def reset_rate_limiting() -> None:
    """Reset rate limiting state for testing."""
    _rate_limiters.clear()
    _semaphores.clear()
    logger.debug("Reset rate limiting state")
