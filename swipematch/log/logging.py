"""Loguru setup for the Swipe Match Service.

Records go to stdout (pretty, or one JSON object per line with
``LOG_FORMAT=json``), WARNING and above are shipped to Datadog when
``DD_API_KEY`` is set, and standard-library ``logging`` records from
uvicorn, psycopg and aio_pika are routed into the same logger.

Call sites pass context as keyword arguments::

    logger.info("Recorded swipe {direction}", direction="like", swipe_id=swipe.id)
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Dict

import uvicorn
from datadog_api_client.v2 import ApiClient, Configuration
from datadog_api_client.v2.api.logs_api import LogsApi
from datadog_api_client.v2.model.content_encoding import ContentEncoding
from datadog_api_client.v2.model.http_log import HTTPLog
from datadog_api_client.v2.model.http_log_item import HTTPLogItem
from loguru import logger as loguru_logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS Z}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level> | <level>{extra}</level>"
)

# Chatty third-party loggers capped at this level
QUIET_LOGGERS = {
    "aio_pika": "WARNING",
    "aiormq": "WARNING",
    "psycopg.pool": "INFO",
    "uvicorn.access": "INFO",
}


def _env_settings() -> Dict[str, str]:
    environment = os.getenv("ENVIRONMENT", "development").lower()
    return {
        "environment": environment,
        "service": os.getenv("SERVICE_NAME", "swipe_match_service"),
        "hostname": os.getenv("HOSTNAME", "unknown"),
        "level": os.getenv("LOG_LEVEL", "DEBUG" if environment == "development" else "INFO"),
        "datadog_level": os.getenv("LOGLEVEL_DATADOG", "WARNING"),
        "format": os.getenv("LOG_FORMAT", "pretty").lower(),
    }


class InterceptHandler(logging.Handler):
    """Forwards standard-library records to Loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        loguru_logger.opt(depth=depth, exception=record.exc_info).bind(
            stdlib_logger=record.name
        ).log(level, record.getMessage())


class DatadogSink:
    """Loguru sink submitting each record to the Datadog Logs API."""

    def __init__(self, service: str, environment: str, hostname: str) -> None:
        # DD_SITE / DD_API_KEY are read from the environment by the client
        self.api = LogsApi(ApiClient(Configuration()))
        self.service = service
        self.environment = environment
        self.hostname = hostname

    def __call__(self, message: Any) -> None:
        record = message.record
        level = record["level"].name
        extras = {
            key: str(value) for key, value in record["extra"].items() if key != "service"
        }

        item = HTTPLogItem(
            ddsource="loguru",
            ddtags=f"level:{level},env:{self.environment}",
            hostname=self.hostname,
            message=record["message"],
            service=self.service,
            status=level,
            logger_name=record["name"] or "",
            **extras,
        )
        try:
            self.api.submit_log(content_encoding=ContentEncoding.DEFLATE, body=HTTPLog([item]))
        except Exception as exc:  # noqa: BLE001
            sys.stderr.write(f"[LOGGING] Datadog submission failed: {exc}\n")


def init_logging():
    """Configure Loguru once and return it."""
    if getattr(init_logging, "_configured", False):
        return loguru_logger

    env = _env_settings()
    loguru_logger.remove()
    loguru_logger.configure(extra={"service": env["service"], "env": env["environment"]})

    if env["format"] == "json":
        loguru_logger.add(sys.stdout, level=env["level"], serialize=True)
    else:
        loguru_logger.add(sys.stdout, level=env["level"], format=CONSOLE_FORMAT)

    if os.getenv("DD_API_KEY"):
        loguru_logger.add(
            DatadogSink(env["service"], env["environment"], env["hostname"]),
            level=env["datadog_level"],
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    # Uvicorn must not install its own dictConfig on startup
    uvicorn.config.LOGGING_CONFIG = None

    init_logging._configured = True  # type: ignore[attr-defined]
    return loguru_logger


logger = init_logging()
