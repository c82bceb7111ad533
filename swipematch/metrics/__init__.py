"""
Metrics collection package.

This package provides functionality for collecting and reporting metrics
for the HTTP layer, the database and the swipe/match engine.
"""

from swipematch.metrics.core import (
    MetricNames,
    increment_counter,
    report_gauge,
    report_timing,
    timing,
    async_timer,
    async_sql_query_timer,
)
from swipematch.metrics.middleware import (
    MetricsMiddleware,
    add_timing_header_middleware,
)


def init_app(app) -> None:
    """
    Attach metrics middleware to a FastAPI application.

    Args:
        app: FastAPI application
    """
    from swipematch.core.config import settings
    from swipematch.log.logging import logger

    if not settings.metrics_enabled:
        logger.info("Metrics collection is disabled")
        return

    app.add_middleware(MetricsMiddleware)
    logger.info("Added metrics middleware to application")

    if settings.include_timing_header:
        add_timing_header_middleware(app)


__all__ = [
    "MetricNames",
    "increment_counter",
    "report_gauge",
    "report_timing",
    "timing",
    "async_timer",
    "async_sql_query_timer",
    "MetricsMiddleware",
    "add_timing_header_middleware",
    "init_app",
]
