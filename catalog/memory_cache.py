"""TTL caches for catalog metadata (genre lists and title details).

Only catalog responses are cached here. Parsed model output never is.
"""

import hashlib
import json
import logging
from collections.abc import Callable
from contextvars import ContextVar
from functools import wraps
from typing import Any, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]
from pydantic import BaseModel

from core.telemetry import record_memory_cache_hit

logger = logging.getLogger(__name__)

# Registry of all caches for bulk operations
_cache_registry: list[TTLCache] = []

_genre_cache: TTLCache | None = None
_details_cache: TTLCache | None = None

T = TypeVar("T")

# Per-request flag to bypass the caches
_skip_cache_var: ContextVar[bool] = ContextVar("skip_cache", default=False)


def set_skip_cache(skip: bool) -> None:
    """Set the per-request skip_cache flag."""
    _skip_cache_var.set(skip)


def should_skip_cache() -> bool:
    """Check whether caches should be bypassed for the current request."""
    return _skip_cache_var.get(False)


def make_cache_key(func_name: str, *args, **kwargs) -> str:
    """Generate a deterministic cache key from function name and arguments.

    Returns:
        MD5 hash of the serialized arguments
    """
    key_data = {
        "fn": func_name,
        "args": list(args),
        "kwargs": dict(sorted(kwargs.items())),
    }
    key_string = json.dumps(key_data, sort_keys=True, default=str)
    return hashlib.md5(key_string.encode()).hexdigest()


def create_ttl_cache(maxsize: int, ttl: int) -> TTLCache:
    """Create a TTL cache and register it for bulk operations."""
    cache = TTLCache(maxsize=maxsize, ttl=ttl)
    _cache_registry.append(cache)
    return cache


def clear_all_caches() -> None:
    """Clear all registered caches and reset lazy caches."""
    global _genre_cache, _details_cache
    for cache in _cache_registry:
        cache.clear()
    _genre_cache = None
    _details_cache = None


def _set_cached_flag(result: Any, cached: bool) -> Any:
    """Set the cached flag on a result if it has one."""
    if isinstance(result, BaseModel) and "cached" in type(result).model_fields:
        return result.model_copy(update={"cached": cached})
    return result


def async_cached(get_cache: Callable[[], TTLCache]) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for caching async function results.

    The cache is resolved lazily through ``get_cache`` on each call so it picks
    up current settings after ``clear_all_caches()``. None and empty results
    are not cached.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            if should_skip_cache():
                return await func(*args, **kwargs)  # type: ignore[misc, no-any-return]

            # Skip 'self' if present (first arg of instance methods)
            cache_args = args
            if args and hasattr(args[0], func.__name__):
                cache_args = args[1:]

            cache = get_cache()
            key = make_cache_key(func.__name__, *cache_args, **kwargs)

            if key in cache:
                logger.debug(f"Cache hit for {func.__name__}")
                record_memory_cache_hit()
                return _set_cached_flag(cache[key], cached=True)  # type: ignore[no-any-return]

            logger.debug(f"Cache miss for {func.__name__}")
            result = await func(*args, **kwargs)  # type: ignore[misc]

            if result:
                cache[key] = result

            return result  # type: ignore[no-any-return]

        return wrapper  # type: ignore[return-value]

    return decorator


def get_genre_cache() -> TTLCache:
    """Get or create the genre list cache using settings."""
    global _genre_cache
    if _genre_cache is None:
        from config.settings import get_settings

        settings = get_settings()
        _genre_cache = create_ttl_cache(maxsize=8, ttl=settings.catalog_genre_cache_ttl)
    return _genre_cache


def get_details_cache() -> TTLCache:
    """Get or create the title details cache using settings."""
    global _details_cache
    if _details_cache is None:
        from config.settings import get_settings

        settings = get_settings()
        _details_cache = create_ttl_cache(
            maxsize=settings.catalog_cache_maxsize,
            ttl=settings.catalog_details_cache_ttl,
        )
    return _details_cache
