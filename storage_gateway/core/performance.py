"""
Performance monitoring utilities.
"""

import time
from typing import Any, Callable

import structlog
from fastapi import Request
from prometheus_client import Histogram

from storage_gateway.config import settings
from storage_gateway.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

logger = structlog.get_logger(__name__)


class PerformanceMonitor:
    """
    Time an operation and log the outcome.

    When a histogram is given it is observed with ``operation`` and
    ``status`` labels.

    Usage:
        async with PerformanceMonitor("object_put", file_key=key):
            await store.put(...)
    """

    def __init__(
        self,
        operation_name: str,
        histogram: Histogram | None = None,
        **tags: Any,
    ):
        self.operation_name = operation_name
        self.histogram = histogram
        self.tags = tags
        self.start_time: float | None = None
        self.end_time: float | None = None

    async def __aenter__(self) -> "PerformanceMonitor":
        self.start_time = time.time()

        logger.debug(
            "operation_started",
            operation=self.operation_name,
            **self.tags,
        )

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.time()
        duration_ms = (self.end_time - self.start_time) * 1000
        status = "success" if exc_type is None else "error"

        if self.histogram is not None:
            self.histogram.labels(
                operation=self.operation_name,
                status=status,
            ).observe(duration_ms / 1000)

        if exc_type is None:
            logger.info(
                "operation_completed",
                operation=self.operation_name,
                duration_ms=round(duration_ms, 2),
                **self.tags,
            )
        else:
            logger.warning(
                "operation_failed",
                operation=self.operation_name,
                duration_ms=round(duration_ms, 2),
                error=str(exc_val),
                **self.tags,
            )

    @property
    def duration_ms(self) -> float | None:
        """Get duration in milliseconds."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time) * 1000
        return None


def _endpoint_label(request: Request) -> str:
    """
    Route template for metric labels.

    Object keys are part of the download/delete paths, so raw paths would
    give every stored file its own time series.
    """
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or "unmatched"


async def track_http_metrics(request: Request, call_next: Callable):
    """
    Middleware to track HTTP metrics.

    Records:
    - Request count by endpoint and status
    - Request duration histogram
    - Requests in progress gauge
    - A warning for requests slower than the configured threshold
    """
    method = request.method
    in_progress = http_requests_in_progress.labels(method=method, endpoint="all")
    in_progress.inc()

    start_time = time.time()

    try:
        response = await call_next(request)

        duration = time.time() - start_time
        endpoint = _endpoint_label(request)

        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration)

        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        if duration * 1000 > settings.slow_request_threshold_ms:
            logger.warning(
                "slow_request_detected",
                method=method,
                endpoint=endpoint,
                duration_ms=round(duration * 1000, 2),
                threshold_ms=settings.slow_request_threshold_ms,
            )

        return response

    finally:
        in_progress.dec()
