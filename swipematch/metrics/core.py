"""
Core metrics module.

This module contains the infrastructure for collecting and reporting metrics:
timing functions, counters and gauges. Metrics go to a StatsD server over UDP
or, with ``METRICS_BACKEND=logging``, to the application log.
"""

import functools
import random
import socket
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, TypeVar

from swipematch.core.config import settings
from swipematch.log.logging import logger


F = TypeVar("F", bound=Callable[..., Any])


class MetricNames:
    """
    Standardized metric names for the application.
    """

    # API metrics
    API_REQUEST_DURATION = "http.request.duration"
    API_REQUEST_COUNT = "http.requests"

    # Database metrics
    DB_QUERY_DURATION = "db.query.duration"
    DB_QUERY_CALLS = "db.query.calls"
    DB_QUERY_ERRORS = "db.query.errors"

    # Engine metrics
    SWIPES_RECORDED = "swipes.recorded"
    SWIPES_REJECTED = "swipes.rejected"
    MATCHES_CREATED = "matches.created"
    MATCH_EVALUATION_FAILED = "matches.evaluation.failed"
    MATCH_CONFLICT_RETRIES = "matches.conflict.retries"
    NOTIFICATIONS_SENT = "notifications.sent"
    NOTIFICATIONS_FAILED = "notifications.failed"
    CARDS_SERVED = "cards.served"


class StatsDBackend:
    """
    StatsD metrics backend.

    Sends counters, gauges and timers over UDP. Tags are appended in the
    DogStatsD ``|#key:value`` form, which plain StatsD servers ignore.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 8125, prefix: Optional[str] = None):
        self.host = host
        self.port = port
        self.prefix = prefix
        self.socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def _name(self, name: str) -> str:
        return f"{self.prefix}.{name}" if self.prefix else name

    @staticmethod
    def _format_tags(tags: Optional[Dict[str, str]]) -> str:
        if not tags:
            return ""
        return "|#" + ",".join(f"{k}:{v}" for k, v in tags.items())

    def _send_metric(self, metric_str: str) -> None:
        try:
            self.socket.sendto(metric_str.encode("utf-8"), (self.host, self.port))
        except Exception as e:
            logger.error(
                "Failed to send metric to StatsD server",
                error=str(e),
                host=self.host,
                port=self.port,
            )

    def timing(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        # StatsD expects milliseconds
        self._send_metric(f"{self._name(name)}:{value * 1000}|ms{self._format_tags(tags)}")

    def gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        self._send_metric(f"{self._name(name)}:{value}|g{self._format_tags(tags)}")

    def incr(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None) -> None:
        self._send_metric(f"{self._name(name)}:{value}|c{self._format_tags(tags)}")


def _log_metric(
    metric_type: str, name: str, value: float, tags: Optional[Dict[str, str]] = None
) -> None:
    """Write a metric to the application log (logging backend)."""
    logger.debug(
        "metric {metric_type} {name}={value}",
        metric_type=metric_type,
        name=name,
        value=value,
        tags=tags or {},
    )


_metrics_backend: Optional[StatsDBackend] = None


def _get_statsd_client() -> Optional[StatsDBackend]:
    """
    Get or initialize the StatsD client.

    Returns:
        The StatsD backend, or None when metrics are disabled or the
        logging backend is selected
    """
    global _metrics_backend

    if _metrics_backend is None and settings.metrics_enabled and settings.metrics_backend == "statsd":
        _metrics_backend = StatsDBackend(
            host=settings.metrics_statsd_host,
            port=settings.metrics_statsd_port,
            prefix=settings.metrics_prefix,
        )
        logger.info(
            "Initialized StatsD metrics backend",
            host=settings.metrics_statsd_host,
            port=settings.metrics_statsd_port,
        )
    return _metrics_backend


def _should_sample() -> bool:
    if not settings.metrics_enabled:
        return False
    if settings.metrics_sample_rate >= 1.0:
        return True
    return random.random() < settings.metrics_sample_rate


def _report(metric_type: str, name: str, value: float, tags: Optional[Dict[str, str]]) -> None:
    if not _should_sample():
        return

    if settings.metrics_backend == "logging":
        _log_metric(metric_type, name, value, tags)
        return

    client = _get_statsd_client()
    if client is None:
        return
    if metric_type == "timing":
        client.timing(name, value, tags)
    elif metric_type == "gauge":
        client.gauge(name, value, tags)
    else:
        client.incr(name, int(value), tags)


def report_timing(name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
    """
    Report a timing metric.

    Args:
        name: Metric name
        value: Timing value in seconds
        tags: Optional tags to include with the metric
    """
    _report("timing", name, value, tags)


def report_gauge(name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
    """Report a gauge metric."""
    _report("gauge", name, value, tags)


def increment_counter(name: str, tags: Optional[Dict[str, str]] = None, value: int = 1) -> None:
    """
    Increment a counter metric.

    Example:
        increment_counter(MetricNames.SWIPES_RECORDED, {"direction": "like"})
    """
    _report("counter", name, value, tags)


@contextmanager
def timing(name: str, tags: Optional[Dict[str, str]] = None):
    """Context manager that reports the duration of its block."""
    start_time = time.time()
    try:
        yield
    finally:
        report_timing(name, time.time() - start_time, tags)


def async_timer(metric_name: str, tags: Optional[Dict[str, str]] = None) -> Callable[[F], F]:
    """
    Decorator to time async function execution.

    Example:
        @async_timer("matches.evaluation.duration")
        async def evaluate_for_match(self, swipe): ...
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not settings.metrics_enabled:
                return await func(*args, **kwargs)
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            finally:
                report_timing(metric_name, time.time() - start_time, tags)

        return wrapper  # type: ignore[return-value]
    return decorator


def async_sql_query_timer(query_name: str) -> Callable[[F], F]:
    """
    Decorator to time async SQL query execution and count failures.

    Args:
        query_name: Name of the query, used as the ``query`` tag
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not settings.metrics_enabled:
                return await func(*args, **kwargs)

            metric_tags = {"query": query_name}
            increment_counter(MetricNames.DB_QUERY_CALLS, metric_tags)
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                increment_counter(
                    MetricNames.DB_QUERY_ERRORS,
                    {**metric_tags, "error_type": type(e).__name__},
                )
                raise
            finally:
                report_timing(MetricNames.DB_QUERY_DURATION, time.time() - start_time, metric_tags)

        return wrapper  # type: ignore[return-value]
    return decorator


def reset_backend() -> None:
    """Drop the cached backend so the next report re-reads settings."""
    global _metrics_backend
    _metrics_backend = None


__all__: List[str] = [
    "MetricNames",
    "StatsDBackend",
    "report_timing",
    "report_gauge",
    "increment_counter",
    "timing",
    "async_timer",
    "async_sql_query_timer",
    "reset_backend",
]
