"""
FastAPI middleware for metrics collection.

This module provides middleware for collecting metrics related
to HTTP requests and responses.
"""

import time
from typing import Optional

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from swipematch.core.config import settings
from swipematch.log.logging import logger
from swipematch.metrics.core import MetricNames, increment_counter, report_timing


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for collecting request/response metrics."""

    def __init__(
        self,
        app: ASGIApp,
        exclude_paths: Optional[list[str]] = None
    ) -> None:
        super().__init__(app)
        self.exclude_paths = exclude_paths or ["/healthcheck"]

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        if not settings.metrics_enabled:
            return await call_next(request)

        path = request.url.path
        if any(path.startswith(exclude) for exclude in self.exclude_paths):
            return await call_next(request)

        tags = {"method": request.method, "path": path}
        increment_counter(MetricNames.API_REQUEST_COUNT, tags)
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            tags["error_type"] = type(e).__name__
            increment_counter("http.errors", tags)
            raise

        duration = time.time() - start_time
        status_code = response.status_code
        tags.update({
            "status_code": str(status_code),
            "status_range": f"{status_code // 100}xx",
        })
        report_timing(MetricNames.API_REQUEST_DURATION, duration, tags)

        duration_ms = duration * 1000.0
        if duration_ms > settings.slow_request_threshold_ms:
            logger.warning(
                "Slow request {method} {path} took {duration_ms:.1f}ms",
                method=request.method,
                path=path,
                duration_ms=duration_ms,
                status_code=status_code,
            )
        return response


def add_timing_header_middleware(app: FastAPI) -> None:
    """Add an ``X-Process-Time`` header (seconds) to every response."""

    @app.middleware("http")
    async def timing_header(request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = f"{time.time() - start_time:.6f}"
        return response
