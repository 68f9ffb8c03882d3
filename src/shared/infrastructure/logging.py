"""
Structured Logging
==================

JSON log lines for the SLA engine, written to stdout.

Every record carries ``timestamp`` and ``environment``. Records emitted
inside a sweep also carry ``sweep_id`` so one run's lines can be grouped,
and HTTP records carry the request's ``correlation_id``.

Usage:
    from shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("SLA paused", extra={"ticket_id": "7f3c..."})
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger


# Attributes copied from ``extra`` to the top level of the JSON object
PROMOTED_FIELDS = ("sweep_id", "correlation_id")

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "apscheduler")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping each record with time, environment and run ids."""

    def __init__(self, *args: Any, environment: str = "unknown", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.environment = environment

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        log_record["environment"] = self.environment

        for field in PROMOTED_FIELDS:
            value = getattr(record, field, None)
            if value:
                log_record[field] = value


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """
    Route all logging through a single JSON handler on stdout.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        environment: Copied into every record
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(CustomJsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        environment=environment,
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **extra_context: Any):
    """
    Log how long the wrapped block took, at DEBUG.

    Usage:
        with log_latency(logger, "holiday_reload"):
            holidays = await repo.list_holidays()
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.debug(
            f"{operation} finished in {elapsed_ms}ms",
            extra={"operation": operation, "latency_ms": elapsed_ms, **extra_context},
        )
