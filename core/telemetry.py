"""Telemetry module for tracking recommendation request performance with PostHog."""

import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from posthog import Posthog

logger = logging.getLogger(__name__)

DISTINCT_ID = "watchwizards-recommender-service"


@dataclass
class StepResult:
    """Result of a tracked step."""

    duration_ms: float
    success: bool = True
    error_type: str | None = None


@dataclass
class RequestTelemetry:
    """Tracks performance metrics for a single recommendation request."""

    steps: dict[str, StepResult] = field(default_factory=dict)
    api_calls: dict[str, int] = field(default_factory=lambda: {"catalog": 0, "completion": 0})
    start_time: float = field(default_factory=time.perf_counter)
    provider: str | None = None
    used_fallback: bool = False

    @contextmanager
    def track_step(self, step_name: str):
        """Context manager to time a pipeline step.

        Args:
            step_name: Name of the step being tracked

        Yields:
            None
        """
        step_start = time.perf_counter()
        error_type = None

        try:
            yield
        except Exception as e:
            error_type = type(e).__name__
            raise
        finally:
            duration_ms = (time.perf_counter() - step_start) * 1000
            self.steps[step_name] = StepResult(
                duration_ms=duration_ms,
                success=error_type is None,
                error_type=error_type,
            )

    def record_api_call(self, service: str, count: int = 1) -> None:
        """Increment API call counter for a service.

        Args:
            service: Name of the service ("catalog" or "completion")
            count: Number of calls to add
        """
        if service in self.api_calls:
            self.api_calls[service] += count
        else:
            logger.warning(f"Unknown service for API call tracking: {service}")

    def get_total_duration_ms(self) -> float:
        """Get total elapsed time since telemetry was created."""
        return (time.perf_counter() - self.start_time) * 1000

    def get_step_timings(self) -> dict[str, float]:
        """Get timing for each step in milliseconds."""
        return {f"{name}_ms": step.duration_ms for name, step in self.steps.items()}

    def send_to_posthog(
        self,
        posthog_client: Posthog,
        extra_properties: dict[str, Any] | None = None,
    ) -> None:
        """Send all telemetry events to PostHog.

        Args:
            posthog_client: PostHog client instance
            extra_properties: Additional properties to include in the completed event
        """
        extra_properties = extra_properties or {}

        for step_name, step_result in self.steps.items():
            posthog_client.capture(
                distinct_id=DISTINCT_ID,
                event=f"recommend_{step_name}",
                properties={
                    "step": step_name,
                    "duration_ms": round(step_result.duration_ms, 2),
                    "success": step_result.success,
                    "error_type": step_result.error_type,
                },
            )

        catalog_props = get_catalog_stats() or empty_catalog_stats()

        posthog_client.capture(
            distinct_id=DISTINCT_ID,
            event="recommend_completed",
            properties={
                "total_duration_ms": round(self.get_total_duration_ms(), 2),
                "steps": self.get_step_timings(),
                "api_calls": self.api_calls.copy(),
                "provider": self.provider,
                "used_fallback": self.used_fallback,
                "catalog": catalog_props,
                **extra_properties,
            },
        )

        logger.debug(
            f"Sent telemetry: {len(self.steps)} steps, total {self.get_total_duration_ms():.1f}ms"
        )


# ---------------------------------------------------------------------------
# Per-request catalog stats via ContextVar
# ---------------------------------------------------------------------------

_catalog_stats_var: ContextVar[dict | None] = ContextVar("catalog_stats", default=None)


def empty_catalog_stats() -> dict:
    return {
        "memory_hits": 0,
        "api_calls": 0,
        "retries": 0,
        "failures": 0,
        "api_time_ms": 0.0,
    }


def init_catalog_stats() -> None:
    """Initialize catalog stats for the current request context."""
    _catalog_stats_var.set(empty_catalog_stats())


def _bump(key: str, amount: float = 1) -> None:
    stats = _catalog_stats_var.get()
    if stats is not None:
        stats[key] += amount


def record_memory_cache_hit() -> None:
    """Record an in-memory TTL cache hit in the current request context."""
    _bump("memory_hits")


def record_catalog_api_call() -> None:
    """Record a catalog API call in the current request context."""
    _bump("api_calls")


def record_catalog_retry() -> None:
    """Record a retried catalog call in the current request context."""
    _bump("retries")


def record_catalog_failure() -> None:
    """Record a catalog call that failed for good."""
    _bump("failures")


def record_api_time(ms: float) -> None:
    """Accumulate catalog API call time in the current request context."""
    _bump("api_time_ms", ms)


def get_catalog_stats() -> dict | None:
    """Get catalog stats for the current request context, or None if not initialized."""
    return _catalog_stats_var.get()
